"""
Describe the expression shape immediately wrapping a binding reference.

The chain starts at the form closest to the identifier and follows `parent`
outwards, so `foo.bar()` yields a `member` entry for `.bar` whose parent is the
`call` entry for the zero-argument call.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from .model import MetaType
from .traversal import (
    CALL_TYPES,
    MEMBER_TYPES,
    NodePath,
    is_node,
    is_numeric_literal,
    is_string_literal,
    node_loc,
)

# Internal form: {"type", "start", "end", "parent"[, "property"]} holding raw
# AST locations. The exporter turns these into `BindingMeta`.
RawMeta = Dict[str, Any]


def build_meta_bindings(path: NodePath) -> Optional[RawMeta]:
    """Return the meta chain for the reference at `path`, or None."""
    head: Optional[RawMeta] = None
    tail: Optional[RawMeta] = None
    while True:
        matched = _match_wrapper(path)
        if matched is None:
            break
        meta, path = matched
        if tail is None:
            head = meta
        else:
            tail["parent"] = meta
        tail = meta
    return head


def _match_wrapper(path: NodePath) -> Optional[Tuple[RawMeta, NodePath]]:
    parent_path = path.parent_path
    if parent_path is None:
        return None
    parent = parent_path.node
    parent_type = parent.get("type")

    # `(0, foo)` behaves like `foo`.
    if parent_type == "SequenceExpression":
        expressions = parent.get("expressions") or []
        if (
            len(expressions) == 2
            and is_numeric_literal(expressions[0])
            and path.key == "expressions"
            and path.index == 1
        ):
            loc = node_loc(parent)
            start = loc["start"]
            end = loc["end"]
            if parent_path.is_child_of(CALL_TYPES, "callee"):
                # Stretch over the parentheses of `(0, foo.bar)()`.
                start = node_loc(parent_path.parent)["start"]
                end = dict(end, column=end["column"] + 1)
            return _meta(MetaType.INHERIT, start, end), parent_path

    # `Object(foo)` behaves like `foo`.
    if (
        parent_type in CALL_TYPES
        and path.key == "arguments"
        and is_node(parent.get("callee"), "Identifier")
        and parent["callee"].get("name") == "Object"
        and len(parent.get("arguments") or []) == 1
    ):
        loc = node_loc(parent)
        return _meta(MetaType.INHERIT, loc["start"], loc["end"]), parent_path

    if parent_type in MEMBER_TYPES and path.key == "object":
        prop = parent.get("property")
        loc = node_loc(parent)
        if parent.get("computed"):
            if is_string_literal(prop):
                meta = _meta(MetaType.MEMBER, loc["start"], loc["end"], prop.get("value"))
                return meta, parent_path
        else:
            meta = _meta(MetaType.MEMBER, loc["start"], loc["end"], prop.get("name"))
            return meta, parent_path

    if (
        parent_type in CALL_TYPES
        and path.key == "callee"
        and len(parent.get("arguments") or []) == 0
    ):
        loc = node_loc(parent)
        return _meta(MetaType.CALL, loc["start"], loc["end"]), parent_path

    return None


def _meta(
    meta_type: MetaType,
    start: Dict[str, int],
    end: Dict[str, int],
    prop: Optional[str] = None,
) -> RawMeta:
    meta: RawMeta = {"type": meta_type, "start": start, "end": end}
    if meta_type is MetaType.MEMBER:
        meta["property"] = prop
    meta["parent"] = None
    return meta


__all__ = ["RawMeta", "build_meta_bindings"]
