from analyzer import Location, MetaType, analyze_scopes
from parser import parse_js


def _root_refs(source: str, name: str):
    ast = parse_js(source, tolerant=False).ast
    root = analyze_scopes(ast)
    return ast, root.bindings[name].refs


def _find_node(node, node_type):
    if isinstance(node, dict):
        if node.get("type") == node_type:
            return node
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None
    for child in children:
        found = _find_node(child, node_type)
        if found is not None:
            return found
    return None


def test_plain_reference_has_no_meta():
    _, refs = _root_refs("var foo;\nfoo;", "foo")
    assert refs[0].meta is None
    assert refs[0].range.start == Location(line=2, column=0)
    assert refs[0].range.end == Location(line=2, column=3)


def test_member_access():
    _, refs = _root_refs("var foo;\nfoo.bar;", "foo")
    meta = refs[0].meta
    assert meta.type == MetaType.MEMBER
    assert meta.property == "bar"
    assert meta.parent is None
    assert meta.range.start == Location(line=2, column=0)
    assert meta.range.end == Location(line=2, column=7)


def test_computed_string_member_access():
    _, refs = _root_refs("var foo;\nfoo['baz'];", "foo")
    assert refs[0].meta.type == MetaType.MEMBER
    assert refs[0].meta.property == "baz"


def test_computed_non_literal_member_ends_chain():
    _, refs = _root_refs("var foo, key;\nfoo[key];", "foo")
    assert refs[0].meta is None


def test_zero_argument_call():
    _, refs = _root_refs("var foo;\nfoo();", "foo")
    meta = refs[0].meta
    assert meta.type == MetaType.CALL
    assert meta.parent is None
    assert meta.range.end == Location(line=2, column=5)


def test_call_with_arguments_has_no_meta():
    _, refs = _root_refs("var foo;\nfoo(1);", "foo")
    assert refs[0].meta is None


def test_member_chain_into_call():
    _, refs = _root_refs("var foo;\nfoo.bar.baz();", "foo")
    meta = refs[0].meta
    assert meta.type == MetaType.MEMBER and meta.property == "bar"
    assert meta.parent.type == MetaType.MEMBER and meta.parent.property == "baz"
    assert meta.parent.parent.type == MetaType.CALL
    assert meta.parent.parent.parent is None


def test_comma_boxing_in_call_expands_over_parenthesis():
    ast, refs = _root_refs("var foo;\n(0, foo)();", "foo")
    sequence = _find_node(ast, "SequenceExpression")
    call = _find_node(ast, "CallExpression")

    meta = refs[0].meta
    assert meta.type == MetaType.INHERIT
    assert meta.range.start.line == call["loc"]["start"]["line"]
    assert meta.range.start.column == call["loc"]["start"]["column"]
    assert meta.range.end.column == sequence["loc"]["end"]["column"] + 1
    # The boxed callee is itself called without arguments.
    assert meta.parent.type == MetaType.CALL
    assert meta.parent.parent is None


def test_comma_boxing_of_member_access():
    _, refs = _root_refs("var foo;\n(0, foo.bar)();", "foo")
    meta = refs[0].meta
    assert meta.type == MetaType.MEMBER
    assert meta.property == "bar"
    assert meta.parent.type == MetaType.INHERIT
    assert meta.parent.parent.type == MetaType.CALL


def test_comma_boxing_outside_call_keeps_sequence_range():
    ast, refs = _root_refs("var foo;\nx = (0, foo);", "foo")
    sequence = _find_node(ast, "SequenceExpression")
    meta = refs[0].meta
    assert meta.type == MetaType.INHERIT
    assert meta.range.end.column == sequence["loc"]["end"]["column"]
    assert meta.parent is None


def test_longer_sequences_are_not_boxing():
    _, refs = _root_refs("var foo;\n(0, 1, foo);", "foo")
    assert refs[0].meta is None
    _, refs = _root_refs("var foo;\n('a', foo);", "foo")
    assert refs[0].meta is None


def test_object_boxing_call():
    _, refs = _root_refs("var foo;\nObject(foo).bar;", "foo")
    meta = refs[0].meta
    assert meta.type == MetaType.INHERIT
    assert meta.range.start == Location(line=2, column=0)
    assert meta.range.end == Location(line=2, column=11)
    assert meta.parent.type == MetaType.MEMBER
    assert meta.parent.property == "bar"


def test_other_builtin_calls_are_not_boxing():
    _, refs = _root_refs("var foo;\nString(foo);", "foo")
    assert refs[0].meta is None


def test_meta_serialises_with_chain():
    _, refs = _root_refs("var foo;\nfoo.bar();", "foo")
    payload = refs[0].to_dict()
    assert payload["meta"]["type"] == "member"
    assert payload["meta"]["property"] == "bar"
    assert payload["meta"]["parent"]["type"] == "call"
    assert payload["meta"]["parent"]["parent"] is None
    assert "property" not in payload["meta"]["parent"]
