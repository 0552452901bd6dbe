"""
Depth-first traversal of ESTree / Babel style dict ASTs.

`traverse_ast` walks the tree in document order and calls `visitor.enter(path)`
before descending into a node and `visitor.exit(path)` afterwards. A `NodePath`
links a node to the path of its parent and remembers which field of the parent
holds it, which is what the structural predicates below need.

Both esprima (ESTree) and Babel spellings of node types are understood.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional, Tuple

from .errors import MalformedAstError

Node = Dict[str, Any]

VISITOR_KEYS: Dict[str, Tuple[str, ...]] = {
    "Program": ("body",),
    "ExpressionStatement": ("expression",),
    "BlockStatement": ("body",),
    "StaticBlock": ("body",),
    "EmptyStatement": (),
    "DebuggerStatement": (),
    "WithStatement": ("object", "body"),
    "ReturnStatement": ("argument",),
    "LabeledStatement": ("label", "body"),
    "BreakStatement": ("label",),
    "ContinueStatement": ("label",),
    "IfStatement": ("test", "consequent", "alternate"),
    "SwitchStatement": ("discriminant", "cases"),
    "SwitchCase": ("test", "consequent"),
    "ThrowStatement": ("argument",),
    "TryStatement": ("block", "handler", "finalizer"),
    "CatchClause": ("param", "body"),
    "WhileStatement": ("test", "body"),
    "DoWhileStatement": ("body", "test"),
    "ForStatement": ("init", "test", "update", "body"),
    "ForInStatement": ("left", "right", "body"),
    "ForOfStatement": ("left", "right", "body"),
    "FunctionDeclaration": ("id", "params", "body"),
    "FunctionExpression": ("id", "params", "body"),
    "ArrowFunctionExpression": ("params", "body"),
    "VariableDeclaration": ("declarations",),
    "VariableDeclarator": ("id", "init"),
    "ThisExpression": (),
    "Super": (),
    "Identifier": (),
    "Literal": (),
    "ArrayExpression": ("elements",),
    "ObjectExpression": ("properties",),
    "Property": ("key", "value"),
    "ObjectProperty": ("key", "value"),
    "ObjectMethod": ("key", "params", "body"),
    "ClassDeclaration": ("id", "superClass", "body"),
    "ClassExpression": ("id", "superClass", "body"),
    "ClassBody": ("body",),
    "MethodDefinition": ("key", "value"),
    "ClassMethod": ("key", "params", "body"),
    "ClassPrivateMethod": ("key", "params", "body"),
    "ClassProperty": ("key", "value"),
    "ClassPrivateProperty": ("key", "value"),
    "PrivateName": ("id",),
    "PropertyDefinition": ("key", "value"),
    "SequenceExpression": ("expressions",),
    "ParenthesizedExpression": ("expression",),
    "UnaryExpression": ("argument",),
    "UpdateExpression": ("argument",),
    "BinaryExpression": ("left", "right"),
    "LogicalExpression": ("left", "right"),
    "AssignmentExpression": ("left", "right"),
    "ConditionalExpression": ("test", "consequent", "alternate"),
    "CallExpression": ("callee", "arguments"),
    "OptionalCallExpression": ("callee", "arguments"),
    "NewExpression": ("callee", "arguments"),
    "MemberExpression": ("object", "property"),
    "OptionalMemberExpression": ("object", "property"),
    "ChainExpression": ("expression",),
    "TemplateLiteral": ("quasis", "expressions"),
    "TaggedTemplateExpression": ("tag", "quasi"),
    "YieldExpression": ("argument",),
    "AwaitExpression": ("argument",),
    "SpreadElement": ("argument",),
    "RestElement": ("argument",),
    "AssignmentPattern": ("left", "right"),
    "ArrayPattern": ("elements",),
    "ObjectPattern": ("properties",),
    "MetaProperty": ("meta", "property"),
    "ImportDeclaration": ("specifiers", "source"),
    "ImportSpecifier": ("imported", "local"),
    "ImportDefaultSpecifier": ("local",),
    "ImportNamespaceSpecifier": ("local",),
    "ExportNamedDeclaration": ("declaration", "specifiers", "source"),
    "ExportDefaultDeclaration": ("declaration",),
    "ExportAllDeclaration": ("exported", "source"),
    "ExportSpecifier": ("local", "exported"),
}

# Fields that never hold child nodes, skipped when falling back to a generic walk.
_NON_CHILD_KEYS = frozenset(
    {
        "type",
        "loc",
        "range",
        "start",
        "end",
        "extra",
        "comments",
        "leadingComments",
        "trailingComments",
        "innerComments",
        "tokens",
        "errors",
    }
)

FUNCTION_TYPES = frozenset(
    {
        "FunctionDeclaration",
        "FunctionExpression",
        "ArrowFunctionExpression",
        "ObjectMethod",
        "ClassMethod",
        "ClassPrivateMethod",
    }
)
CLASS_TYPES = frozenset({"ClassDeclaration", "ClassExpression"})
CLASS_PROPERTY_TYPES = frozenset({"ClassProperty", "ClassPrivateProperty", "PropertyDefinition"})
OBJECT_PROPERTY_TYPES = frozenset({"Property", "ObjectProperty"})
CALL_TYPES = frozenset({"CallExpression", "OptionalCallExpression"})
MEMBER_TYPES = frozenset({"MemberExpression", "OptionalMemberExpression"})


class NodePath:
    """A node together with its position in the tree."""

    __slots__ = ("node", "parent_path", "key", "index", "__weakref__")

    def __init__(
        self,
        node: Node,
        parent_path: Optional["NodePath"] = None,
        key: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        self.node = node
        self.parent_path = parent_path
        self.key = key
        self.index = index

    def __repr__(self) -> str:
        return f"NodePath({self.type!r}, key={self.key!r}, index={self.index!r})"

    @property
    def type(self) -> Optional[str]:
        return self.node.get("type")

    @property
    def parent(self) -> Optional[Node]:
        return self.parent_path.node if self.parent_path else None

    def is_child_of(self, parent_types, key: str) -> bool:
        """True when this node sits in field `key` of a parent of one of `parent_types`."""
        parent = self.parent
        if parent is None or self.key != key:
            return False
        return parent.get("type") in parent_types


def node_type(node: Any) -> Optional[str]:
    return node.get("type") if isinstance(node, dict) else None


def is_node(node: Any, *types: str) -> bool:
    return node_type(node) in types


def is_numeric_literal(node: Any) -> bool:
    if is_node(node, "NumericLiteral"):
        return True
    if not is_node(node, "Literal"):
        return False
    value = node.get("value")
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_string_literal(node: Any) -> bool:
    if is_node(node, "StringLiteral"):
        return True
    return is_node(node, "Literal") and isinstance(node.get("value"), str)


def is_lexical_declaration(node: Any) -> bool:
    return is_node(node, "VariableDeclaration") and node.get("kind") in ("let", "const")


def node_loc(node: Node) -> Dict[str, Any]:
    """Return the `loc` of a node, which every analysed node must carry."""
    loc = node.get("loc")
    if not isinstance(loc, dict) or not loc.get("start") or not loc.get("end"):
        raise MalformedAstError(f"{node.get('type')} node has no source location.", node)
    return loc


def is_referenced_identifier(path: NodePath) -> bool:
    """
    Decide whether an Identifier reads a binding, as opposed to declaring
    one, naming a property or labelling a statement.
    """
    if path.type != "Identifier":
        return False
    parent = path.parent
    if parent is None:
        return True
    parent_type = parent.get("type")
    key = path.key

    if parent_type in MEMBER_TYPES:
        if key == "property":
            return bool(parent.get("computed"))
        return True
    if parent_type == "MetaProperty":
        return False
    if parent_type in OBJECT_PROPERTY_TYPES:
        if key == "key":
            return bool(parent.get("computed"))
        grandparent = path.parent_path.parent
        return not is_node(grandparent, "ObjectPattern")
    if parent_type in CLASS_PROPERTY_TYPES or parent_type in (
        "MethodDefinition",
        "ObjectMethod",
        "ClassMethod",
        "ClassPrivateMethod",
    ):
        if key == "key":
            return bool(parent.get("computed"))
        return key == "value"
    if parent_type == "VariableDeclarator":
        return key == "init"
    if parent_type in FUNCTION_TYPES:
        return key == "body"
    if parent_type in CLASS_TYPES:
        return key == "superClass"
    if parent_type in ("AssignmentExpression", "AssignmentPattern"):
        return key == "right"
    if parent_type in (
        "LabeledStatement",
        "BreakStatement",
        "ContinueStatement",
        "CatchClause",
        "RestElement",
        "ArrayPattern",
        "ObjectPattern",
        "ImportDefaultSpecifier",
        "ImportNamespaceSpecifier",
        "ImportSpecifier",
        "ExportNamespaceSpecifier",
        "ExportDefaultSpecifier",
        "ExportAllDeclaration",
        "PrivateName",
    ):
        return False
    if parent_type == "ExportSpecifier":
        grandparent = path.parent_path.parent
        if grandparent and grandparent.get("source"):
            return False
        return key == "local"
    return True


def child_keys(node: Node) -> Tuple[str, ...]:
    keys = VISITOR_KEYS.get(node.get("type"))
    if keys is not None:
        return keys
    return tuple(
        key
        for key, value in node.items()
        if key not in _NON_CHILD_KEYS and _holds_nodes(value)
    )


def _holds_nodes(value: Any) -> bool:
    if isinstance(value, dict):
        return "type" in value
    if isinstance(value, list):
        return any(isinstance(item, dict) and "type" in item for item in value)
    return False


def iter_children(path: NodePath) -> Iterator[NodePath]:
    """Yield the child paths of `path` in document order."""
    node = path.node
    for key in child_keys(node):
        value = node.get(key)
        if isinstance(value, list):
            for index, element in enumerate(value):
                # Array holes are stored as None.
                if isinstance(element, dict) and "type" in element:
                    yield NodePath(element, path, key, index)
        elif isinstance(value, dict) and "type" in value:
            yield NodePath(value, path, key)


def traverse_ast(ast: Node, visitor) -> None:
    """
    Walk `ast` depth-first, invoking `visitor.enter` and `visitor.exit`.

    The walk keeps its own stack of `(path, children)` frames, so bundled code
    with very long operator chains does not hit the interpreter's recursion
    limit.
    """
    root = NodePath(ast)
    visitor.enter(root)
    stack = [(root, iter_children(root))]
    while stack:
        path, children = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            visitor.exit(path)
            continue
        visitor.enter(child)
        stack.append((child, iter_children(child)))


__all__ = [
    "NodePath",
    "VISITOR_KEYS",
    "child_keys",
    "is_lexical_declaration",
    "is_node",
    "is_numeric_literal",
    "is_referenced_identifier",
    "is_string_literal",
    "iter_children",
    "node_loc",
    "node_type",
    "traverse_ast",
]
