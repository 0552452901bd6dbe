"""Exceptions raised by scope analysis."""

from __future__ import annotations

from typing import Any, Dict, Optional


def format_node_location(node: Optional[Dict[str, Any]]) -> str:
    if not node or not isinstance(node, dict):
        return ""
    loc_meta = node.get("loc") or {}
    start = loc_meta.get("start") or {}
    line = start.get("line")
    column = start.get("column")
    if line is None or column is None:
        return ""
    return f" (line {line}, column {column})"


class ScopeAnalysisError(RuntimeError):
    """Base class for failures that abort the analysis of one source."""

    def __init__(self, message: str, node: Optional[Dict[str, Any]] = None):
        super().__init__(f"{message}{format_node_location(node)}")
        self.node = node


class MalformedAstError(ScopeAnalysisError):
    """The input AST lacks a child the grammar guarantees."""


class ScopeInvariantError(ScopeAnalysisError):
    """The scope builder produced a graph that breaks its own invariants."""


__all__ = [
    "MalformedAstError",
    "ScopeAnalysisError",
    "ScopeInvariantError",
    "format_node_location",
]
