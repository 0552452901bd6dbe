"""
Public result types for lexical scope analysis.

Everything in this module is immutable once built: the exporter creates these
objects from the internal scope graph and consumers only ever read them. Each
type exposes `to_dict()` returning the JSON-compatible shape used by the CLI
and any other serialising consumer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class BindingKind(str, Enum):
    IMPLICIT = "implicit"
    VAR = "var"
    LET = "let"
    CONST = "const"
    IMPORT = "import"


class ScopeType(str, Enum):
    FUNCTION = "function"
    BLOCK = "block"
    OBJECT = "object"
    # Only exists while the tree is being built; exported as BLOCK.
    MODULE = "module"


class MetaType(str, Enum):
    INHERIT = "inherit"
    CALL = "call"
    MEMBER = "member"


@dataclass(frozen=True, order=True)
class Location:
    line: int
    column: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "column": self.column}


@dataclass(frozen=True)
class Range:
    start: Location
    end: Location

    def contains(self, location: Location) -> bool:
        """Inclusive containment test used by cursor lookups."""
        return self.start <= location <= self.end

    def encloses(self, other: "Range") -> bool:
        return self.start <= other.start and other.end <= self.end


@dataclass(frozen=True)
class BindingMeta:
    """Syntactic wrapping around a reference, innermost form first."""

    type: MetaType
    range: Range
    parent: Optional["BindingMeta"] = None
    property: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        head: Optional[Dict[str, Any]] = None
        tail: Optional[Dict[str, Any]] = None
        meta: Optional[BindingMeta] = self
        while meta is not None:
            payload: Dict[str, Any] = {
                "type": meta.type.value,
                "start": meta.range.start.to_dict(),
                "end": meta.range.end.to_dict(),
            }
            if meta.type is MetaType.MEMBER:
                payload["property"] = meta.property
            payload["parent"] = None
            if tail is None:
                head = payload
            else:
                tail["parent"] = payload
            tail = payload
            meta = meta.parent
        return head


@dataclass(frozen=True)
class Reference:
    range: Range
    meta: Optional[BindingMeta] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.range.start.to_dict(),
            "end": self.range.end.to_dict(),
            "meta": self.meta.to_dict() if self.meta else None,
        }


@dataclass(frozen=True)
class Binding:
    kind: BindingKind
    declarations: Tuple[Range, ...] = ()
    refs: Tuple[Reference, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "declarations": [
                {"start": decl.start.to_dict(), "end": decl.end.to_dict()}
                for decl in self.declarations
            ],
            "refs": [ref.to_dict() for ref in self.refs],
        }


@dataclass(frozen=True)
class Scope:
    """A lexical scope in the exported, parent-free scope tree."""

    type: ScopeType
    display_name: str
    range: Range
    bindings: Mapping[str, Binding] = field(default_factory=lambda: MappingProxyType({}))
    children: Tuple["Scope", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "displayName": self.display_name,
            "start": self.range.start.to_dict(),
            "end": self.range.end.to_dict(),
            "bindings": {name: binding.to_dict() for name, binding in self.bindings.items()},
            "children": [child.to_dict() for child in self.children],
        }

    def walk(self):
        """Yield this scope and its descendants in depth-first order."""
        stack = [self]
        while stack:
            scope = stack.pop()
            yield scope
            stack.extend(reversed(scope.children))


__all__ = [
    "Binding",
    "BindingKind",
    "BindingMeta",
    "Location",
    "MetaType",
    "Range",
    "Reference",
    "Scope",
    "ScopeType",
]
