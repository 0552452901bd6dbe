"""Lexical scope analysis for ES2015+ JavaScript ASTs."""

from .errors import MalformedAstError, ScopeAnalysisError, ScopeInvariantError
from .find_scopes import find_scopes, visible_bindings
from .model import (
    Binding,
    BindingKind,
    BindingMeta,
    Location,
    MetaType,
    Range,
    Reference,
    Scope,
    ScopeType,
)
from .scope_tracker import analyze_scopes

__all__ = [
    "Binding",
    "BindingKind",
    "BindingMeta",
    "Location",
    "MalformedAstError",
    "MetaType",
    "Range",
    "Reference",
    "Scope",
    "ScopeAnalysisError",
    "ScopeInvariantError",
    "ScopeType",
    "analyze_scopes",
    "find_scopes",
    "visible_bindings",
]
