import pytest

from tsdoclet.compiler import compile_doclets
from tsdoclet.diagnostics import CompilationError, DiagnosticKind, DiagnosticSink
from tsdoclet.emitter import DeclarationEmitter
from tsdoclet.models import SymbolKind, SymbolNode
from tsdoclet.settings import CompilerSettings
from tsdoclet.tree import SymbolTree
from tsdoclet.typeexpr import translate


def _settings(**kwargs):
    kwargs.setdefault("output", {"emit_comments": False})
    return CompilerSettings(**kwargs)


def _compile(records, **kwargs):
    result = compile_doclets(records, _settings(**kwargs))
    return result.text, result.diagnostics


def _kinds(diagnostics):
    return [d.kind for d in diagnostics]


def _fmt(expression, **kwargs):
    emitter = DeclarationEmitter(SymbolTree(), _settings(**kwargs), DiagnosticSink())
    return emitter.format_type(translate(expression))


# --------------------------------------------------------------------------- #
# Type rendering
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    "expression, expected",
    [
        ("string|boolean", "string | boolean"),
        ("Array<any>", "any[]"),
        ("Array", "any[]"),
        ("(string|number)[]", "(string | number)[]"),
        ("Object.<string, number>", "{ [key: string]: number }"),
        ("Object.<Date>", "{ [key: string]: Date }"),
        ("Promise.<string>", "Promise<string>"),
        ("function(string, number=): boolean", "(arg0: string, arg1?: number) => boolean"),
        ("function(this:Element, ...number)", "(this: Element, ...arg0: number[]) => void"),
        ("function(new:Date)", "new () => Date"),
        ("{a: string, b: number=, 'c-d'}", '{ a: string; b?: number; "c-d": any }'),
        ("{}", "{}"),
        ('"on"|"off"', '"on" | "off"'),
        ("?", "any"),
        ("Array<", "any"),
    ],
)
def test_format_type(expression, expected):
    assert _fmt(expression) == expected


def test_unresolved_type_policy():
    sink = DiagnosticSink()
    emitter = DeclarationEmitter(SymbolTree(), _settings(), sink)
    assert emitter.format_type(translate("Missing")) == "any"
    assert emitter.format_type(translate("Missing.<string>")) == "any"
    # reported once per name
    assert _kinds(sink.items) == [DiagnosticKind.UNRESOLVED_TYPE]

    assert _fmt("Missing", unresolved_types="keep") == "Missing"
    assert _fmt("module:lib/util.Thing", unresolved_types="keep") == 'import("lib/util").Thing'


def test_known_types_are_configurable():
    assert _fmt("HTMLElement") == "HTMLElement"
    assert _fmt("Vector", known_types={"Vector"}) == "Vector"


# --------------------------------------------------------------------------- #
# Declarations
# --------------------------------------------------------------------------- #
def test_empty_input_emits_nothing():
    text, diagnostics = _compile([])
    assert text == ""
    assert diagnostics == []


def test_namespace_members():
    text, _ = _compile(
        [
            {"kind": "namespace", "name": "ns", "longname": "ns"},
            {"kind": "constant", "name": "LIMIT", "longname": "ns.LIMIT", "memberof": "ns", "scope": "static", "type": {"names": ["number"]}},
            {"kind": "member", "name": "label", "longname": "ns.label", "memberof": "ns", "scope": "static", "type": {"names": ["?string"]}},
            {"kind": "namespace", "name": "inner", "longname": "ns.inner", "memberof": "ns", "scope": "static"},
            {"kind": "function", "name": "go", "longname": "ns.inner.go", "memberof": "ns.inner", "scope": "static"},
        ]
    )
    assert text == (
        "declare namespace ns {\n"
        "\tconst LIMIT: number;\n"
        "\tvar label: string | null;\n"
        "\tnamespace inner {\n"
        "\t\tfunction go(): void;\n"
        "\t}\n"
        "}\n"
    )


def test_top_level_blocks_are_separated_by_blank_lines():
    text, _ = _compile(
        [
            {"kind": "function", "name": "a", "longname": "a"},
            {"kind": "member", "name": "b", "longname": "b", "type": {"names": ["string"]}},
        ]
    )
    assert text == "declare function a(): void;\n\ndeclare var b: string;\n"


def test_class_members_and_modifiers():
    text, _ = _compile(
        [
            {
                "kind": "class",
                "name": "Shape",
                "longname": "Shape",
                "virtual": True,
                "params": [{"name": "id", "type": {"names": ["string"]}}],
            },
            {"kind": "member", "name": "id", "longname": "Shape#id", "memberof": "Shape", "scope": "instance", "readonly": True, "type": {"names": ["string"]}},
            {"kind": "member", "name": "cache", "longname": "Shape#cache", "memberof": "Shape", "scope": "instance", "access": "private", "type": {"names": ["Object"]}},
            {"kind": "function", "name": "area", "longname": "Shape#area", "memberof": "Shape", "scope": "instance", "access": "protected", "returns": [{"type": {"names": ["number"]}}]},
            {"kind": "function", "name": "create", "longname": "Shape.create", "memberof": "Shape", "scope": "static", "returns": [{"type": {"names": ["Shape"]}}]},
        ]
    )
    assert text == (
        "declare abstract class Shape {\n"
        "\tconstructor(id: string);\n"
        "\treadonly id: string;\n"
        "\tprivate cache: Object;\n"
        "\tprotected area(): number;\n"
        "\tstatic create(): Shape;\n"
        "}\n"
    )


def test_private_members_can_be_left_out():
    text, _ = _compile(
        [
            {"kind": "class", "name": "C", "longname": "C", "hideconstructor": True},
            {"kind": "member", "name": "secret", "longname": "C#secret", "memberof": "C", "scope": "instance", "access": "private"},
        ],
        include_private=False,
    )
    assert text == "declare class C {\n}\n"


def test_heritage_clauses():
    text, diagnostics = _compile(
        [
            {"kind": "class", "name": "A", "longname": "A", "hideconstructor": True},
            {"kind": "interface", "name": "B", "longname": "B"},
            {"kind": "mixin", "name": "M", "longname": "M"},
            {"kind": "class", "name": "C", "longname": "C", "hideconstructor": True, "augments": ["A", "B"], "mixes": ["M"]},
            {"kind": "interface", "name": "I", "longname": "I", "augments": ["B"], "mixes": ["M"]},
        ]
    )
    assert "declare class C extends A implements B, M {" in text
    assert "declare interface I extends B, M {" in text
    assert _kinds(diagnostics) == [DiagnosticKind.MULTIPLE_INHERITANCE]


def test_unresolved_supertype_is_emitted_verbatim():
    text, diagnostics = _compile(
        [
            {"kind": "class", "name": "D", "longname": "D", "hideconstructor": True, "augments": ["Missing"]},
            {"kind": "class", "name": "E", "longname": "E", "hideconstructor": True, "augments": ["EventTarget"]},
        ]
    )
    assert "declare class D extends Missing {" in text
    assert "declare class E extends EventTarget {" in text
    assert _kinds(diagnostics) == [DiagnosticKind.UNRESOLVED_SUPERTYPE]


def test_inheritance_cycles_print_the_declared_edge_only():
    text, _ = _compile(
        [
            {"kind": "class", "name": "A", "longname": "A", "hideconstructor": True, "augments": ["B"]},
            {"kind": "class", "name": "B", "longname": "B", "hideconstructor": True, "augments": ["A"]},
        ]
    )
    assert text == "declare class A extends B {\n}\n\ndeclare class B extends A {\n}\n"


def test_companion_namespace_for_members_outside_the_class_body():
    text, _ = _compile(
        [
            {"kind": "class", "name": "Widget", "longname": "Widget", "hideconstructor": True},
            {"kind": "function", "name": "create", "longname": "Widget.create", "memberof": "Widget", "scope": "static", "params": [{"name": "config", "type": {"names": ["Widget~Config"]}}]},
            {"kind": "typedef", "name": "Config", "longname": "Widget~Config", "memberof": "Widget", "scope": "inner", "type": {"names": ["string"]}},
            {"kind": "function", "name": "helper", "longname": "Widget~helper", "memberof": "Widget", "scope": "inner"},
        ]
    )
    assert text == (
        "declare class Widget {\n"
        "\tstatic create(config: Widget.Config): void;\n"
        "}\n"
        "declare namespace Widget {\n"
        "\ttype Config = string;\n"
        "\tfunction helper(): void;\n"
        "}\n"
    )


def test_enums():
    text, _ = _compile(
        [
            {
                "kind": "member",
                "isEnum": True,
                "name": "Color",
                "longname": "Color",
                "properties": [{"name": "RED", "defaultvalue": 0}, {"name": "GREEN", "defaultvalue": 1}],
            },
            {"kind": "member", "name": "BLUE", "longname": "Color.BLUE", "memberof": "Color", "scope": "static", "defaultvalue": 2},
            {
                "kind": "constant",
                "isEnum": True,
                "name": "Mode",
                "longname": "Mode",
                "properties": [{"name": "on", "defaultvalue": "on"}, {"name": "off", "defaultvalue": "off"}],
            },
        ]
    )
    assert text == (
        "declare enum Color {\n"
        "\tRED = 0,\n"
        "\tGREEN = 1,\n"
        "\tBLUE = 2,\n"
        "}\n"
        "\n"
        "declare const enum Mode {\n"
        '\ton = "on",\n'
        '\toff = "off",\n'
        "}\n"
    )


def test_typedefs():
    text, _ = _compile(
        [
            {"kind": "typedef", "name": "Id", "longname": "Id", "type": {"names": ["string", "number"]}},
            {
                "kind": "typedef",
                "name": "onDone",
                "longname": "onDone",
                "type": {"names": ["function"]},
                "params": [
                    {"name": "err", "type": {"names": ["Error"]}, "nullable": True},
                    {"name": "count", "type": {"names": ["number"]}, "optional": True},
                ],
                "returns": [{"type": {"names": ["boolean"]}}],
            },
            {
                "kind": "typedef",
                "name": "Options",
                "longname": "Options",
                "type": {"names": ["Object"]},
                "properties": [
                    {"name": "verbose", "type": {"names": ["boolean"]}, "optional": True},
                    {"name": "retry", "type": {"names": ["Object"]}},
                    {"name": "retry.count", "type": {"names": ["number"]}},
                ],
            },
        ]
    )
    assert text == (
        "declare type Id = string | number;\n"
        "\n"
        "declare type onDone = (err: Error | null, count?: number) => boolean;\n"
        "\n"
        "declare interface Options {\n"
        "\tverbose?: boolean;\n"
        "\tretry: { count: number };\n"
        "}\n"
    )


def test_overloaded_callback_becomes_call_signature_interface():
    text, _ = _compile(
        [
            {"kind": "typedef", "name": "Listener", "longname": "Listener", "params": [{"name": "e", "type": {"names": ["Event"]}}]},
            {"kind": "typedef", "name": "Listener", "longname": "Listener", "returns": [{"type": {"names": ["boolean"]}}]},
        ]
    )
    assert text == (
        "declare interface Listener {\n"
        "\t(e: Event): void;\n"
        "\t(): boolean;\n"
        "}\n"
    )


def test_parameter_markers():
    text, _ = _compile(
        [
            {
                "kind": "function",
                "name": "f",
                "longname": "f",
                "params": [
                    {"name": "a", "type": {"names": ["string"]}, "optional": True},
                    {"name": "b", "type": {"names": ["number"]}},
                    {"name": "c", "type": {"names": ["boolean"]}, "optional": True},
                    {"name": "rest", "type": {"names": ["string"]}, "variable": True},
                ],
            }
        ]
    )
    assert text == "declare function f(a: string | undefined, b: number, c?: boolean, ...rest: string[]): void;\n"


def test_type_parameters():
    text, diagnostics = _compile(
        [
            {
                "kind": "function",
                "name": "identity",
                "longname": "identity",
                "tags": [{"title": "template", "value": "T"}],
                "params": [{"name": "value", "type": {"names": ["T"]}}],
                "returns": [{"type": {"names": ["T"]}}],
            },
            {
                "kind": "class",
                "name": "Box",
                "longname": "Box",
                "hideconstructor": True,
                "tags": [{"title": "template", "value": "K extends keyof Items"}],
            },
            {"kind": "member", "name": "key", "longname": "Box#key", "memberof": "Box", "scope": "instance", "type": {"names": ["K"]}},
        ]
    )
    assert "declare function identity<T>(value: T): T;" in text
    assert "declare class Box<K extends keyof Items> {\n\tkey: K;\n}" in text
    assert diagnostics == []


def test_module_references():
    text, diagnostics = _compile(
        [
            {"kind": "module", "name": "shapes", "longname": "module:shapes"},
            {"kind": "class", "name": "Circle", "longname": "module:shapes.Circle", "memberof": "module:shapes", "hideconstructor": True},
            {
                "kind": "function",
                "name": "area",
                "longname": "module:shapes.area",
                "memberof": "module:shapes",
                "params": [{"name": "circle", "type": {"names": ["Circle"]}}],
                "returns": [{"type": {"names": ["number"]}}],
            },
            {"kind": "function", "name": "draw", "longname": "draw", "params": [{"name": "shape", "type": {"names": ["module:shapes.Circle"]}}]},
        ]
    )
    assert text == (
        "declare module 'shapes' {\n"
        "\texport class Circle {\n"
        "\t}\n"
        "\texport function area(circle: Circle): number;\n"
        "}\n"
        "\n"
        'declare function draw(shape: import("shapes").Circle): void;\n'
    )
    assert diagnostics == []


def test_unresolved_parameter_type_becomes_any():
    text, diagnostics = _compile(
        [{"kind": "function", "name": "f", "longname": "f", "params": [{"name": "x", "type": {"names": ["Gadget"]}}]}]
    )
    assert text == "declare function f(x: any): void;\n"
    assert _kinds(diagnostics) == [DiagnosticKind.UNRESOLVED_TYPE]
    assert diagnostics[0].longname == "f"


# --------------------------------------------------------------------------- #
# Name sanitization
# --------------------------------------------------------------------------- #
def test_reserved_words_are_suffixed():
    text, diagnostics = _compile(
        [
            {"kind": "function", "name": "delete", "longname": "delete", "params": [{"name": "new", "type": {"names": ["string"]}}]},
            {"kind": "typedef", "name": "string", "longname": "ns.string", "memberof": "ns", "type": {"names": ["number"]}},
            {"kind": "namespace", "name": "ns", "longname": "ns"},
        ]
    )
    assert "declare function delete_1(new_1: string): void;" in text
    assert "\ttype string_1 = number;" in text
    assert _kinds(diagnostics) == [DiagnosticKind.RESERVED_NAME, DiagnosticKind.RESERVED_NAME]


def test_sibling_collisions_are_suffixed():
    text, diagnostics = _compile(
        [
            {"kind": "namespace", "name": "ns", "longname": "ns"},
            {"kind": "member", "name": "item", "longname": "ns.item", "memberof": "ns", "scope": "static", "type": {"names": ["string"]}},
            {"kind": "function", "name": "item", "longname": "ns~item", "memberof": "ns", "scope": "inner"},
            {"kind": "member", "name": "ref", "longname": "ns.ref", "memberof": "ns", "scope": "static", "type": {"names": ["ns~item"]}},
        ]
    )
    assert text == (
        "declare namespace ns {\n"
        "\tvar item: string;\n"
        "\tfunction item_1(): void;\n"
        "\tvar ref: any;\n"
        "}\n"
    )
    assert DiagnosticKind.NAME_COLLISION in _kinds(diagnostics)


def test_non_identifier_member_names_are_quoted():
    text, _ = _compile(
        [
            {"kind": "interface", "name": "Headers", "longname": "Headers"},
            {"kind": "member", "name": "content-type", "longname": 'Headers#"content-type"', "memberof": "Headers", "scope": "instance", "type": {"names": ["string"]}},
        ]
    )
    assert text == 'declare interface Headers {\n\t"content-type": string;\n}\n'


# --------------------------------------------------------------------------- #
# Comments
# --------------------------------------------------------------------------- #
def test_comments():
    result = compile_doclets(
        [
            {
                "kind": "function",
                "name": "f",
                "longname": "f",
                "description": "Does things.\nOn two lines.",
                "deprecated": "use g",
                "since": "1.0.0",
                "params": [{"name": "x", "type": {"names": ["number"]}, "description": "the */ input"}],
                "returns": [{"type": {"names": ["string"]}, "description": "the result"}],
            }
        ],
        CompilerSettings(),
    )
    assert result.text == (
        "/**\n"
        " * Does things.\n"
        " * On two lines.\n"
        " * @param x the *\\/ input\n"
        " * @returns the result\n"
        " * @deprecated use g\n"
        " * @since 1.0.0\n"
        " */\n"
        "declare function f(x: number): string;\n"
    )


# --------------------------------------------------------------------------- #
# Fatal structure
# --------------------------------------------------------------------------- #
def test_function_without_signatures_is_fatal():
    tree = SymbolTree()
    node = SymbolNode(kind=SymbolKind.FUNCTION, name="f", longname="f")
    tree.root.add_child(node)
    tree.register(node)
    emitter = DeclarationEmitter(tree, _settings(), DiagnosticSink())
    with pytest.raises(CompilationError) as ex:
        emitter.emit()
    assert ex.value.kind == DiagnosticKind.EMPTY_SIGNATURES
