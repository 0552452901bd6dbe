"""
Lexical scope analysis for ESTree / Babel JavaScript ASTs.

The analyzer walks an AST once, maintaining a stack of lexical scopes through
`enter` / `exit` hooks. It records every binding introduced by declarations,
parameters, imports and implicit names (`this`, `arguments`, CommonJS globals),
and attaches each identifier read to the binding it resolves to. Once the walk
is done the exporter decides whether the synthetic module layer is kept and
produces an immutable `Scope` tree.

The internal scope graph built here keeps parent links for lookups and never
leaves this package.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import MalformedAstError
from .exporter import COMMONJS_GLOBALS, export_scopes
from .function_names import get_function_name
from .meta import RawMeta, build_meta_bindings
from .model import BindingKind, Scope, ScopeType
from .traversal import (
    CLASS_PROPERTY_TYPES,
    FUNCTION_TYPES,
    NodePath,
    is_lexical_declaration,
    is_node,
    is_referenced_identifier,
    node_loc,
    traverse_ast,
)

logger = logging.getLogger(__name__)

_DECLARATION_KINDS = {
    "var": BindingKind.VAR,
    "let": BindingKind.LET,
    "const": BindingKind.CONST,
    "using": BindingKind.CONST,
    "await using": BindingKind.CONST,
}


@dataclass
class BindingData:
    """Mutable binding record; locations are raw AST `loc` dicts."""

    kind: BindingKind
    declarations: List[Dict[str, Any]] = field(default_factory=list)
    refs: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(eq=False)
class TempScope:
    """A scope while the tree is under construction."""

    scope_type: ScopeType
    display_name: str
    loc: Dict[str, Any]
    parent: Optional["TempScope"] = field(default=None, repr=False)
    bindings: Dict[str, BindingData] = field(default_factory=dict)
    children: List["TempScope"] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if self.parent is not None:
            self.parent.children.append(self)

    def declare(self, name: str, kind: BindingKind, loc: Optional[Dict[str, Any]] = None) -> BindingData:
        """Add a declaration site, reusing the entry when the name is redeclared."""
        binding = self.bindings.get(name)
        if binding is None:
            binding = BindingData(kind=kind)
            self.bindings[name] = binding
        if loc is not None:
            binding.declarations.append(loc)
        return binding

    def declare_implicit(self, *names: str) -> None:
        for name in names:
            if name not in self.bindings:
                self.bindings[name] = BindingData(kind=BindingKind.IMPLICIT)

    def var_scope(self) -> "TempScope":
        """Nearest scope that `var` declarations hoist to."""
        scope = self
        while scope.scope_type not in (ScopeType.FUNCTION, ScopeType.MODULE):
            if scope.parent is None:
                return scope
            scope = scope.parent
        return scope

    def resolve(self, name: str) -> Optional["TempScope"]:
        scope: Optional[TempScope] = self
        while scope is not None:
            if name in scope.bindings:
                return scope
            scope = scope.parent
        return None


def declare_pattern(target: Any, scope: TempScope, kind: BindingKind) -> None:
    """Bind every identifier in a declaration target, destructuring patterns."""
    if is_node(target, "Identifier"):
        scope.declare(target.get("name"), kind, node_loc(target))
    elif is_node(target, "ObjectPattern"):
        for prop in target.get("properties") or []:
            if not isinstance(prop, dict):
                raise MalformedAstError("ObjectPattern has an empty property slot.", target)
            if is_node(prop, "RestElement"):
                declare_pattern(prop.get("argument"), scope, kind)
            else:
                declare_pattern(prop.get("value"), scope, kind)
    elif is_node(target, "ArrayPattern"):
        for element in target.get("elements") or []:
            declare_pattern(element, scope, kind)
    elif is_node(target, "AssignmentPattern"):
        declare_pattern(target.get("left"), scope, kind)
    elif is_node(target, "RestElement"):
        declare_pattern(target.get("argument"), scope, kind)


def _function_range(node: Dict[str, Any]) -> Dict[str, Any]:
    loc = node_loc(node)
    params = node.get("params") or []
    # The name and keyword of a function are not inside it.
    start = node_loc(params[0])["start"] if params else loc["start"]
    return {"start": start, "end": loc["end"]}


def _has_lexical_declaration(path: NodePath) -> bool:
    return any(
        is_lexical_declaration(statement)
        or is_node(statement, "FunctionDeclaration", "ClassDeclaration")
        for statement in path.node.get("body") or []
    )


class _ScopeVisitor:
    def __init__(self, source_id: str) -> None:
        self.source_id = source_id
        self.root: Optional[TempScope] = None
        self.is_unambiguous_module = False
        self._current: Optional[TempScope] = None
        self._saved_parents: "weakref.WeakKeyDictionary[NodePath, TempScope]" = (
            weakref.WeakKeyDictionary()
        )

    # ------------------------------------------------------------------ hooks

    def enter(self, path: NodePath) -> None:
        if path.type == "Program":
            self._enter_program(path)
            return

        before = self._current
        if path.is_child_of(CLASS_PROPERTY_TYPES, "value"):
            self._enter_class_field(path)
        handler = getattr(self, f"_enter_{path.type}", None)
        if handler:
            handler(path)
        if self._current is not before:
            self._saved_parents[path] = before

    def exit(self, path: NodePath) -> None:
        if path.type == "Program":
            self._current = self.root
            return
        saved = self._saved_parents.pop(path, None)
        if saved is not None:
            self._current = saved

    # ----------------------------------------------------------------- scopes

    def _push(self, scope_type: ScopeType, name: str, loc: Dict[str, Any]) -> TempScope:
        self._current = TempScope(scope_type, name, loc, parent=self._current)
        return self._current

    def _enter_program(self, path: NodePath) -> None:
        loc = node_loc(path.node)
        self.root = self._push(ScopeType.OBJECT, "Global", loc)
        # Placeholders that collect references to CommonJS globals.
        self.root.declare_implicit(*COMMONJS_GLOBALS)
        self._push(ScopeType.BLOCK, "Lexical Global", loc)
        module = self._push(ScopeType.MODULE, "Module", loc)
        module.declare_implicit("this")

    def _enter_function(self, path: NodePath) -> None:
        node = path.node
        identifier = node.get("id")
        if is_node(node, "FunctionExpression") and is_node(identifier, "Identifier"):
            wrapper = self._push(ScopeType.BLOCK, "Function Expression", node_loc(node))
            wrapper.declare(identifier.get("name"), BindingKind.CONST, node_loc(identifier))

        if is_node(node, "FunctionDeclaration") and is_node(identifier, "Identifier"):
            # Annex B hoisting of block-level functions is not modelled.
            current = self._current
            kind = BindingKind.VAR if current.var_scope() is current else BindingKind.LET
            current.declare(identifier.get("name"), kind, node_loc(identifier))

        scope = self._push(
            ScopeType.FUNCTION,
            get_function_name(node, path.parent),
            _function_range(node),
        )
        for param in node.get("params") or []:
            declare_pattern(param, scope, BindingKind.VAR)
        if not is_node(node, "ArrowFunctionExpression"):
            scope.declare_implicit("this", "arguments")

    _enter_FunctionDeclaration = _enter_function
    _enter_FunctionExpression = _enter_function
    _enter_ArrowFunctionExpression = _enter_function
    _enter_ObjectMethod = _enter_function
    _enter_ClassMethod = _enter_function
    _enter_ClassPrivateMethod = _enter_function

    def _enter_class(self, path: NodePath) -> None:
        node = path.node
        identifier = node.get("id")
        if not is_node(identifier, "Identifier"):
            return
        name = identifier.get("name")
        if is_node(node, "ClassDeclaration"):
            self._current.declare(name, BindingKind.LET, node_loc(identifier))
        scope = self._push(ScopeType.BLOCK, "Class", node_loc(node))
        scope.declare(name, BindingKind.CONST, node_loc(identifier))

    _enter_ClassDeclaration = _enter_class
    _enter_ClassExpression = _enter_class

    def _enter_for(self, path: NodePath) -> None:
        node = path.node
        init = node.get("init") or node.get("left")
        if is_lexical_declaration(init):
            # Each iteration gets a fresh lexical environment; the loop
            # keyword is not inside it.
            self._push(
                ScopeType.BLOCK,
                "For",
                {"start": node_loc(init)["start"], "end": node_loc(node)["end"]},
            )

    _enter_ForStatement = _enter_for
    _enter_ForInStatement = _enter_for
    _enter_ForOfStatement = _enter_for

    def _enter_CatchClause(self, path: NodePath) -> None:
        scope = self._push(ScopeType.BLOCK, "Catch", node_loc(path.node))
        declare_pattern(path.node.get("param"), scope, BindingKind.VAR)

    def _enter_BlockStatement(self, path: NodePath) -> None:
        # A function body shares the function's own scope.
        if path.is_child_of(FUNCTION_TYPES, "body"):
            return
        if _has_lexical_declaration(path):
            self._push(ScopeType.BLOCK, "Block", node_loc(path.node))

    def _enter_SwitchStatement(self, path: NodePath) -> None:
        cases = path.node.get("cases") or []
        for case in cases:
            if not is_node(case, "SwitchCase"):
                raise MalformedAstError("SwitchStatement has a non-case entry.", path.node)
        if any(
            is_lexical_declaration(statement)
            for case in cases
            for statement in case.get("consequent") or []
        ):
            self._push(ScopeType.BLOCK, "Switch", node_loc(path.node))

    def _enter_class_field(self, path: NodePath) -> None:
        scope = self._push(ScopeType.FUNCTION, "Class Field", node_loc(path.node))
        scope.declare_implicit("this", "arguments")

    # --------------------------------------------------------------- bindings

    def _enter_VariableDeclaration(self, path: NodePath) -> None:
        node = path.node
        kind = _DECLARATION_KINDS.get(node.get("kind"))
        if kind is None:
            raise MalformedAstError(f"Unknown declaration kind {node.get('kind')!r}.", node)
        # Lexical declarations in a for head land in the "For" scope pushed above.
        target = self._current.var_scope() if kind is BindingKind.VAR else self._current
        for declarator in node.get("declarations") or []:
            identifier = declarator.get("id")
            if identifier is None:
                raise MalformedAstError("VariableDeclarator missing id.", declarator)
            declare_pattern(identifier, target, kind)

    def _enter_ImportDeclaration(self, path: NodePath) -> None:
        self.is_unambiguous_module = True
        for specifier in path.node.get("specifiers") or []:
            local = specifier.get("local")
            if not is_node(local, "Identifier"):
                raise MalformedAstError(f"{specifier.get('type')} missing local name.", specifier)
            # Namespace objects are plain const bindings, not live imports.
            kind = (
                BindingKind.CONST
                if is_node(specifier, "ImportNamespaceSpecifier")
                else BindingKind.IMPORT
            )
            self._current.declare(local.get("name"), kind, node_loc(local))

    def _enter_export(self, path: NodePath) -> None:
        self.is_unambiguous_module = True

    _enter_ExportNamedDeclaration = _enter_export
    _enter_ExportDefaultDeclaration = _enter_export
    _enter_ExportAllDeclaration = _enter_export

    # ------------------------------------------------------------- references

    def _enter_Identifier(self, path: NodePath) -> None:
        if is_referenced_identifier(path):
            self._add_reference(path.node.get("name"), path)

    def _enter_ThisExpression(self, path: NodePath) -> None:
        self._add_reference("this", path)

    def _add_reference(self, name: str, path: NodePath) -> None:
        scope = self._current.resolve(name)
        if scope is None:
            return
        loc = node_loc(path.node)
        meta: Optional[RawMeta] = build_meta_bindings(path)
        scope.bindings[name].refs.append({"start": loc["start"], "end": loc["end"], "meta": meta})


def analyze_scopes(
    ast: Dict[str, Any],
    *,
    source_id: str = "<input>",
    generated: bool = False,
) -> Scope:
    """
    Build the lexical scope tree of a parsed program.

    Args:
        ast: ESTree or Babel `Program` node as plain dicts (e.g. `parse_js` output).
        source_id: Label for the source, used in diagnostics.
        generated: True when the source is bundler / compiler output; such
            sources never keep a module scope on CommonJS evidence alone.

    Returns:
        The root `Scope` ("Global") of an immutable scope tree.

    Raises:
        MalformedAstError: The AST lacks a required child or location.
        ScopeInvariantError: The built scope graph is inconsistent.
    """
    if not is_node(ast, "Program"):
        raise MalformedAstError("Expected Program node at the root.", ast if isinstance(ast, dict) else None)

    visitor = _ScopeVisitor(source_id)
    traverse_ast(ast, visitor)
    logger.debug("Collected scopes for %s", source_id)
    return export_scopes(
        visitor.root,
        is_module=visitor.is_unambiguous_module,
        generated=generated,
        source_id=source_id,
    )


__all__ = [
    "BindingData",
    "COMMONJS_GLOBALS",
    "TempScope",
    "analyze_scopes",
    "declare_pattern",
]
