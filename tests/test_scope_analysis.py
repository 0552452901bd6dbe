from pathlib import Path

import pytest

from analyzer import BindingKind, Location, MetaType, ScopeType, analyze_scopes
from parser import parse_js

CASES = Path(__file__).parent / "cases"


def _analyze(source: str, *, source_type: str = "script", generated: bool = False):
    result = parse_js(source, source_name="<test>", tolerant=False, source_type=source_type)
    return analyze_scopes(result.ast, source_id="<test>", generated=generated)


def _analyze_case(name: str, **kwargs):
    return _analyze((CASES / name).read_text(encoding="utf-8"), **kwargs)


def _lexical_global(root):
    assert len(root.children) == 1
    return root.children[0]


def _child(scope, display_name: str):
    matches = [child for child in scope.children if child.display_name == display_name]
    assert matches, f"no child scope named {display_name!r} in {scope.display_name!r}"
    return matches[0]


def _all_scopes(root):
    return list(root.walk())


def test_root_is_global_object_scope():
    root = _analyze("1;")
    assert root.type == ScopeType.OBJECT
    assert root.display_name == "Global"
    lexical = _lexical_global(root)
    assert lexical.type == ScopeType.BLOCK
    assert lexical.display_name == "Lexical Global"
    for name in ("module", "exports", "__dirname", "__filename", "require"):
        assert root.bindings[name].kind == BindingKind.IMPLICIT
        assert root.bindings[name].declarations == ()


def test_closures_end_to_end():
    root = _analyze_case("closures.js")
    lexical = _lexical_global(root)

    assert not any(scope.display_name == "Module" for scope in _all_scopes(root))
    assert [child.display_name for child in lexical.children] == ["outer"]
    assert root.bindings["outer"].kind == BindingKind.VAR

    outer = lexical.children[0]
    assert outer.type == ScopeType.FUNCTION
    assert outer.bindings["a"].kind == BindingKind.VAR
    assert outer.bindings["b"].kind == BindingKind.LET
    assert outer.bindings["inner"].kind == BindingKind.VAR
    assert outer.bindings["this"].kind == BindingKind.IMPLICIT
    assert outer.bindings["arguments"].kind == BindingKind.IMPLICIT

    assert [child.display_name for child in outer.children] == ["inner"]
    inner = outer.children[0]
    assert set(inner.bindings) == {"this", "arguments"}
    assert inner.children == ()

    a_refs = outer.bindings["a"].refs
    assert [ref.range.start.line for ref in a_refs] == [2, 4]
    assert [ref.range.start.line for ref in outer.bindings["b"].refs] == [4]
    assert [ref.range.start.line for ref in outer.bindings["inner"].refs] == [6]


def test_function_scope_starts_at_first_parameter():
    root = _analyze("function outer(a) { return a; }")
    outer = _lexical_global(root).children[0]
    assert outer.range.start == Location(line=1, column=15)
    assert outer.range.end == Location(line=1, column=31)

    root = _analyze("function none() {}")
    none = _lexical_global(root).children[0]
    assert none.range.start == Location(line=1, column=0)


def test_var_hoists_out_of_blocks():
    root = _analyze(
        "function f() {\n"
        "  if (true) {\n"
        "    let local = 1;\n"
        "    var hoisted = local;\n"
        "  }\n"
        "  return hoisted;\n"
        "}\n"
    )
    fn = _lexical_global(root).children[0]
    assert fn.bindings["hoisted"].kind == BindingKind.VAR
    assert len(fn.bindings["hoisted"].refs) == 1
    block = _child(fn, "Block")
    assert set(block.bindings) == {"local"}


def test_top_level_var_in_block_hoists_to_global():
    root = _analyze("{ let a = 1; var b = a; }")
    lexical = _lexical_global(root)
    block = _child(lexical, "Block")
    assert "b" not in block.bindings
    assert root.bindings["b"].kind == BindingKind.VAR


def test_blocks_without_declarations_create_no_scope():
    root = _analyze("function f(x) { if (x) { x(); } { x += 1; } while (x) { x--; } }")
    fn = _lexical_global(root).children[0]
    assert fn.children == ()


def test_block_function_declarations_are_block_scoped():
    root = _analyze("function f() { if (true) { function g() {} } function h() {} }")
    fn = _lexical_global(root).children[0]
    assert fn.bindings["h"].kind == BindingKind.VAR
    block = _child(fn, "Block")
    assert block.bindings["g"].kind == BindingKind.LET
    assert [child.display_name for child in block.children] == ["g"]


def test_block_with_class_declaration_gets_scope():
    root = _analyze("if (true) { class K {} }")
    block = _child(_lexical_global(root), "Block")
    assert block.bindings["K"].kind == BindingKind.LET
    assert _child(block, "Class").bindings["K"].kind == BindingKind.CONST


def test_named_function_expression_binds_itself_inside_only():
    root = _analyze("const f = function g() { return g; };")
    lexical = _lexical_global(root)
    assert lexical.bindings["f"].kind == BindingKind.CONST
    assert "g" not in lexical.bindings
    assert "g" not in root.bindings

    wrapper = _child(lexical, "Function Expression")
    assert wrapper.type == ScopeType.BLOCK
    assert wrapper.bindings["g"].kind == BindingKind.CONST
    assert len(wrapper.bindings["g"].refs) == 1
    assert [child.display_name for child in wrapper.children] == ["g"]
    assert "g" not in wrapper.children[0].bindings


def test_anonymous_function_names_come_from_context():
    root = _analyze(
        "var byVar = function () {};\n"
        "var obj = { byKey: function () {}, 'quoted': () => 1 };\n"
        "obj.byMember = function () {};\n"
        "setTimeout(function () {});\n"
    )
    names = [child.display_name for child in _lexical_global(root).children]
    assert names == ["byVar", "byKey", "quoted", "byMember", "anonymous"]


def test_arrow_functions_have_no_this_or_arguments():
    root = _analyze("function f() { return () => this; }")
    fn = _lexical_global(root).children[0]
    arrow = fn.children[0]
    assert "this" not in arrow.bindings
    assert "arguments" not in arrow.bindings
    assert len(fn.bindings["this"].refs) == 1


def test_top_level_this_resolves_to_global_for_scripts():
    root = _analyze("this.x = 1;")
    assert root.bindings["this"].kind == BindingKind.IMPLICIT
    ref = root.bindings["this"].refs[0]
    assert ref.meta.type == MetaType.MEMBER
    assert ref.meta.property == "x"


def test_destructured_parameters_are_var_bindings():
    root = _analyze("function f({ a, b: [c, , ...d] }, e = 1, ...rest) { return a; }")
    fn = _lexical_global(root).children[0]
    for name in ("a", "c", "d", "e", "rest"):
        assert fn.bindings[name].kind == BindingKind.VAR, name
    assert "b" not in fn.bindings
    assert len(fn.bindings["a"].refs) == 1


def test_destructured_declarations():
    root = _analyze("const { x, y: [z = 2] } = obj; let [p, ...q] = list;")
    lexical = _lexical_global(root)
    assert {"x", "z", "p", "q"} <= set(lexical.bindings)
    assert lexical.bindings["x"].kind == BindingKind.CONST
    assert lexical.bindings["q"].kind == BindingKind.LET


def test_for_loops_with_lexical_heads_get_a_scope():
    root = _analyze_case("let_const.js")
    counter = _lexical_global(root).children[0]
    assert counter.display_name == "counter"
    assert counter.bindings["total"].kind == BindingKind.LET
    assert counter.bindings["step"].kind == BindingKind.CONST
    assert [child.display_name for child in counter.children] == ["For", "Block"]

    for_scope = counter.children[0]
    assert for_scope.bindings["i"].kind == BindingKind.LET
    assert len(for_scope.bindings["i"].refs) == 2
    # The scope begins at the `let`, not at the `for` keyword.
    assert for_scope.range.start == Location(line=4, column=7)

    block = counter.children[1]
    assert block.bindings["inside"].kind == BindingKind.LET
    # Assignment targets are not reads.
    assert len(counter.bindings["total"].refs) == 3


def test_for_var_head_is_hoisted():
    root = _analyze("function f(o) { for (var k in o) {} for (const v of o) { v; } }")
    fn = _lexical_global(root).children[0]
    assert fn.bindings["k"].kind == BindingKind.VAR
    for_scope = _child(fn, "For")
    assert for_scope.bindings["v"].kind == BindingKind.CONST
    assert len(for_scope.bindings["v"].refs) == 1


def test_catch_clause_scope():
    root = _analyze("try { run(); } catch (err) { log(err); }\ntry {} catch ({ message }) {}")
    lexical = _lexical_global(root)
    catches = [child for child in lexical.children if child.display_name == "Catch"]
    assert len(catches) == 2
    assert catches[0].bindings["err"].kind == BindingKind.VAR
    assert len(catches[0].bindings["err"].refs) == 1
    assert catches[1].bindings["message"].kind == BindingKind.VAR


def test_switch_with_lexical_case_gets_scope():
    root = _analyze(
        "switch (x) { case 1: let y = 1; break; default: y; }\n"
        "switch (x) { case 1: foo(); }"
    )
    lexical = _lexical_global(root)
    switches = [child for child in lexical.children if child.display_name == "Switch"]
    assert len(switches) == 1
    assert switches[0].bindings["y"].kind == BindingKind.LET
    assert len(switches[0].bindings["y"].refs) == 1


def test_class_declaration_scopes():
    root = _analyze_case("class_declaration.js")
    lexical = _lexical_global(root)
    assert lexical.bindings["Person"].kind == BindingKind.LET
    assert len(lexical.bindings["Person"].refs) == 1
    assert root.bindings["makePerson"].kind == BindingKind.VAR

    class_scope = _child(lexical, "Class")
    assert class_scope.bindings["Person"].kind == BindingKind.CONST
    assert len(class_scope.bindings["Person"].refs) == 1
    assert [child.display_name for child in class_scope.children] == ["constructor", "greet"]

    constructor = class_scope.children[0]
    assert constructor.bindings["name"].kind == BindingKind.VAR
    this_ref = constructor.bindings["this"].refs[0]
    assert this_ref.meta.type == MetaType.MEMBER
    assert this_ref.meta.property == "name"


def test_class_expression_binds_only_inner_name():
    root = _analyze("var K = class Inner { m() { return Inner; } };")
    lexical = _lexical_global(root)
    assert "Inner" not in lexical.bindings
    assert "Inner" not in root.bindings
    class_scope = _child(lexical, "Class")
    assert class_scope.bindings["Inner"].kind == BindingKind.CONST
    assert len(class_scope.bindings["Inner"].refs) == 1


def test_anonymous_class_creates_no_scope():
    root = _analyze("var K = class { m() {} };")
    assert [child.display_name for child in _lexical_global(root).children] == ["m"]


def test_redeclaration_extends_single_binding():
    root = _analyze("var a = 1;\nvar a = 2;\na;")
    binding = root.bindings["a"]
    assert len(binding.declarations) == 2
    assert [decl.start.line for decl in binding.declarations] == [1, 2]
    assert len(binding.refs) == 1


def test_unresolved_references_are_dropped():
    root = _analyze("undeclaredThing(); window.alert;")
    for scope in root.walk():
        assert "undeclaredThing" not in scope.bindings
        assert "window" not in scope.bindings


def test_labels_and_property_keys_are_not_references():
    root = _analyze(
        "var a = 1;\n"
        "a: for (;;) { break a; }\n"
        "var o = { a: 1 };\n"
        "o.a;\n"
    )
    assert len(root.bindings["a"].refs) == 0


def test_shorthand_property_counts_once():
    root = _analyze("var a = 1; var o = { a };")
    assert len(root.bindings["a"].refs) == 1


def test_default_parameter_reads_are_resolved():
    root = _analyze("var fallback = 1; function f(x = fallback) { return x; }")
    assert len(root.bindings["fallback"].refs) == 1


def test_script_globals_are_redistributed():
    root = _analyze_case("script_globals.js")
    lexical = _lexical_global(root)
    assert {"count", "tick", "this"} <= set(root.bindings)
    assert set(lexical.bindings) == {"label", "limit"}
    assert [child.display_name for child in lexical.children] == ["tick", "Block"]
    assert len(lexical.bindings["limit"].refs) == 1
    assert len(root.bindings["count"].refs) == 1


def test_commonjs_source_keeps_module_scope():
    root = _analyze_case("commonjs.js")
    lexical = _lexical_global(root)
    module = _child(lexical, "Module")
    assert module.type == ScopeType.BLOCK
    assert module.bindings["path"].kind == BindingKind.VAR
    assert module.bindings["resolveConfig"].kind == BindingKind.VAR
    assert module.bindings["this"].kind == BindingKind.IMPLICIT
    assert [child.display_name for child in module.children] == ["resolveConfig"]

    assert len(root.bindings["require"].refs) == 1
    assert len(root.bindings["__dirname"].refs) == 1
    module_ref = root.bindings["module"].refs[0]
    assert module_ref.meta.type == MetaType.MEMBER
    assert module_ref.meta.property == "exports"
    assert module_ref.meta.parent is None


def test_single_module_exports_reference_keeps_module_scope():
    root = _analyze("var x = 1;\nmodule.exports = x;")
    module = _child(_lexical_global(root), "Module")
    assert "x" in module.bindings
    assert "x" not in root.bindings


def test_generated_sources_ignore_commonjs_signals():
    root = _analyze_case("commonjs.js", generated=True)
    lexical = _lexical_global(root)
    assert all(child.display_name != "Module" for child in lexical.children)
    assert root.bindings["path"].kind == BindingKind.VAR


def test_es_module_keeps_module_scope():
    root = _analyze_case("module_import.js", source_type="module")
    module = _child(_lexical_global(root), "Module")
    assert module.bindings["joinPath"].kind == BindingKind.IMPORT
    assert module.bindings["fs"].kind == BindingKind.IMPORT
    assert module.bindings["util"].kind == BindingKind.CONST
    assert module.bindings["load"].kind == BindingKind.VAR
    assert "join" not in module.bindings

    fs_ref = module.bindings["fs"].refs[0]
    assert fs_ref.meta.property == "readFileSync"
    assert len(module.bindings["joinPath"].refs) == 1
    assert module.bindings["joinPath"].refs[0].meta is None


def test_es_module_is_kept_even_when_generated():
    root = _analyze("export const x = 1;", source_type="module", generated=True)
    module = _child(_lexical_global(root), "Module")
    assert module.bindings["x"].kind == BindingKind.CONST


def test_export_specifiers_reference_local_bindings():
    root = _analyze("const a = 1;\nexport { a as b };", source_type="module")
    module = _child(_lexical_global(root), "Module")
    assert len(module.bindings["a"].refs) == 1
    assert "b" not in module.bindings


def test_analysis_is_deterministic():
    source = (CASES / "class_declaration.js").read_text(encoding="utf-8")
    ast = parse_js(source).ast
    first = analyze_scopes(ast, source_id="a.js")
    second = analyze_scopes(ast, source_id="a.js")
    assert first == second
    assert first.to_dict() == second.to_dict()


@pytest.mark.parametrize(
    "name, source_type",
    [
        ("closures.js", "script"),
        ("commonjs.js", "script"),
        ("module_import.js", "module"),
        ("let_const.js", "script"),
        ("class_declaration.js", "script"),
        ("script_globals.js", "script"),
    ],
)
def test_scope_ranges_contain_children_and_bindings(name, source_type):
    root = _analyze_case(name, source_type=source_type)
    for scope in root.walk():
        for child in scope.children:
            assert scope.range.encloses(child.range), (scope.display_name, child.display_name)
        for binding in scope.bindings.values():
            for decl in binding.declarations:
                assert scope.range.encloses(decl)
            for ref in binding.refs:
                assert scope.range.encloses(ref.range)


def test_reference_lists_are_in_document_order():
    root = _analyze("var a;\na; a;\nfunction f() { a; }\na;")
    starts = [ref.range.start for ref in root.bindings["a"].refs]
    assert starts == sorted(starts)
    assert len(starts) == 4


def test_long_operator_chains_are_analysed():
    # Bundlers emit very long `+` chains; each term nests one level deeper.
    source = "var a = 1; var s = " + " + ".join(["a"] * 2000) + ";"
    root = _analyze(source)
    assert len(root.bindings["a"].refs) == 2000


def test_long_member_chains_keep_their_meta():
    source = "var a = {}; a" + ".b" * 1500 + ";"
    root = _analyze(source)
    (ref,) = root.bindings["a"].refs

    depth = 0
    meta = ref.meta
    while meta is not None:
        assert meta.type == MetaType.MEMBER
        assert meta.property == "b"
        depth += 1
        meta = meta.parent
    assert depth == 1500

    payload = ref.to_dict()["meta"]
    assert payload["type"] == "member"
    assert payload["parent"]["property"] == "b"
