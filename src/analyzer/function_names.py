"""Display names for function scopes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .traversal import CLASS_PROPERTY_TYPES, MEMBER_TYPES, OBJECT_PROPERTY_TYPES, is_node


def _key_name(key: Any) -> Optional[str]:
    if is_node(key, "Identifier"):
        return key.get("name")
    if is_node(key, "StringLiteral", "NumericLiteral", "Literal"):
        value = key.get("value")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)
    return None


def get_function_name(node: Dict[str, Any], parent: Optional[Dict[str, Any]]) -> str:
    """
    Infer the name a debugger should show for a function.

    Follows the usual ES name inference (own id, property keys, declarators)
    and also names functions assigned to `obj.prop`, which is not standard
    but helpful when reading a paused stack.
    """
    identifier = node.get("id")
    if is_node(identifier, "Identifier"):
        return identifier.get("name")

    if is_node(node, "ObjectMethod", "ClassMethod") and not node.get("computed"):
        name = _key_name(node.get("key"))
        if name is not None:
            return name

    if parent is None:
        return "anonymous"
    parent_type = parent.get("type")

    if (
        parent_type in OBJECT_PROPERTY_TYPES
        or parent_type in CLASS_PROPERTY_TYPES
        or parent_type == "MethodDefinition"
    ) and parent.get("value") is node and not parent.get("computed"):
        name = _key_name(parent.get("key"))
        if name is not None:
            return name

    if parent_type == "AssignmentExpression" and parent.get("right") is node:
        if parent.get("operator", "=") == "=":
            left = parent.get("left")
            if is_node(left, "Identifier"):
                return left.get("name")
            if _is_plain_member(left):
                return left["property"].get("name")

    if (
        parent_type == "AssignmentPattern"
        and parent.get("right") is node
        and is_node(parent.get("left"), "Identifier")
    ):
        return parent["left"].get("name")

    if (
        parent_type == "VariableDeclarator"
        and parent.get("init") is node
        and is_node(parent.get("id"), "Identifier")
    ):
        return parent["id"].get("name")

    if (
        parent_type == "ExportDefaultDeclaration"
        and parent.get("declaration") is node
        and is_node(node, "FunctionDeclaration")
    ):
        return "default"

    return "anonymous"


def _is_plain_member(node: Any) -> bool:
    return (
        isinstance(node, dict)
        and node.get("type") in MEMBER_TYPES
        and not node.get("computed")
        and is_node(node.get("property"), "Identifier")
    )


__all__ = ["get_function_name"]
