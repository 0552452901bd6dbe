"""Locate the scopes enclosing a source position."""

from __future__ import annotations

from typing import List

from .model import Location, Scope


def find_scopes(root: Scope, location: Location) -> List[Scope]:
    """
    Return every scope whose range contains `location`, innermost first.

    The root "Global" scope is always included last, even when the location
    falls outside the program's own range (e.g. trailing whitespace).
    """
    found: List[Scope] = []
    scope = root
    while True:
        found.append(scope)
        inner = next((child for child in scope.children if child.range.contains(location)), None)
        if inner is None:
            break
        scope = inner
    found.reverse()
    return found


def visible_bindings(root: Scope, location: Location) -> dict:
    """Map each name visible at `location` to the innermost scope binding it."""
    visible = {}
    for scope in find_scopes(root, location):
        for name, binding in scope.bindings.items():
            visible.setdefault(name, (scope, binding))
    return visible


__all__ = ["find_scopes", "visible_bindings"]
