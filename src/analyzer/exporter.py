"""
Finishing pass over the internal scope graph.

`export_scopes` first decides whether the synthetic "Module" scope layer is
worth showing, dissolving it into the global scopes for plain scripts, then
copies the graph into the immutable, parent-free `Scope` tree.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Optional

from .errors import ScopeInvariantError
from .model import Binding, BindingKind, BindingMeta, Location, MetaType, Range, Reference, Scope, ScopeType

logger = logging.getLogger(__name__)

COMMONJS_GLOBALS = ("module", "exports", "__dirname", "__filename", "require")


def looks_like_commonjs(root) -> bool:
    """True when any CommonJS placeholder on the root scope was referenced."""
    for name in COMMONJS_GLOBALS:
        binding = root.bindings.get(name)
        if binding is not None and binding.refs:
            return True
    return False


def strip_module_scope(root) -> None:
    """Fold the "Module" scope into "Lexical Global" and "Global"."""
    if not root.children:
        raise ScopeInvariantError("Global scope has no lexical global scope.")
    lexical = root.children[0]
    if not lexical.children or lexical.children[0].scope_type is not ScopeType.MODULE:
        raise ScopeInvariantError("Lexical global scope does not start with the module scope.")
    module = lexical.children[0]

    for name, binding in module.bindings.items():
        if binding.kind in (BindingKind.LET, BindingKind.CONST):
            lexical.bindings[name] = binding
        else:
            root.bindings[name] = binding
    lexical.children = module.children
    for child in lexical.children:
        child.parent = lexical


def export_scopes(
    root,
    *,
    is_module: bool,
    generated: bool = False,
    source_id: str = "<input>",
) -> Scope:
    if root is None:
        raise ScopeInvariantError("Traversal finished without a global scope.")
    keep_module = is_module or (not generated and looks_like_commonjs(root))
    if keep_module:
        logger.debug("Keeping module scope for %s", source_id)
    else:
        logger.debug("Stripping module scope for %s", source_id)
        strip_module_scope(root)
    return _export_scope(root)


def _location(raw: Dict[str, Any]) -> Location:
    return Location(line=raw["line"], column=raw["column"])


def _range(raw: Dict[str, Any]) -> Range:
    return Range(start=_location(raw["start"]), end=_location(raw["end"]))


def _export_meta(raw: Optional[Dict[str, Any]]) -> Optional[BindingMeta]:
    chain = []
    while raw:
        chain.append(raw)
        raw = raw.get("parent")
    exported: Optional[BindingMeta] = None
    for entry in reversed(chain):
        exported = BindingMeta(
            type=MetaType(entry["type"]),
            range=_range(entry),
            parent=exported,
            property=entry.get("property"),
        )
    return exported


def _export_binding(binding) -> Binding:
    return Binding(
        kind=binding.kind,
        declarations=tuple(_range(decl) for decl in binding.declarations),
        refs=tuple(
            Reference(range=_range(ref), meta=_export_meta(ref.get("meta")))
            for ref in binding.refs
        ),
    )


def _export_scope(scope) -> Scope:
    scope_type = scope.scope_type
    if scope_type is ScopeType.MODULE:
        scope_type = ScopeType.BLOCK
    return Scope(
        type=scope_type,
        display_name=scope.display_name,
        range=_range(scope.loc),
        bindings=MappingProxyType(
            {name: _export_binding(binding) for name, binding in scope.bindings.items()}
        ),
        children=tuple(_export_scope(child) for child in scope.children),
    )


__all__ = [
    "COMMONJS_GLOBALS",
    "export_scopes",
    "looks_like_commonjs",
    "strip_module_scope",
]
