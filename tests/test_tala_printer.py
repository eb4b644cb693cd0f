import io

import pytest

from tala.tala_errors import Diagnostics
from tala.tala_parser import parse
from tala.tala_printer import Printer


def pformat(src, indent_width=4):
    return Printer(indent_width).pformat(parse(src))


@pytest.mark.parametrize("src, expected", [
    ("var x = 5;", "var x = 5;"),
    ("const s = \"a\\n\\\"b\\\"\";", "const s = \"a\\n\\\"b\\\"\";"),
    ("var x;", "var x = null;"),
    ("2 + 3 * 4;", "2 + (3 * 4);"),
    ("(2 + 3) * 4;", "(2 + 3) * 4;"),
    ("1 < 2 == true;", "(1 < 2) == true;"),
    ("-x;", "0 - x;"),
    ("x = y = 2;", "x = y = 2;;"),
    ("f(1, g(2))(3);", "f(1, g(2))(3);"),
    ("o.a[\"b\"];", "o.a[\"b\"];"),
    ("var o = { a: 1, b };", "var o = { a: 1, b };"),
    ("var xs = [1, 2.5, []];", "var xs = [1, 2.5, []];"),
])
def test_expressions_and_declarations(src, expected):
    assert pformat(src) == expected


def test_function_and_blocks_are_indented():
    src = "function f(a, b) { if a < b { return a; } else { return b; } }"
    assert pformat(src) == (
        "function f(a, b) {\n"
        "    if (a < b) {\n"
        "        return a;\n"
        "    } else {\n"
        "        return b;\n"
        "    }\n"
        "}"
    )


def test_indent_width_is_configurable():
    assert pformat("while x { x = 0; }", indent_width=2) == "while x {\n  x = 0;;\n}"


def test_else_if_chain_is_flattened():
    src = "if a { 1; } else if b { 2; } else { 3; }"
    assert pformat(src) == (
        "if a {\n    1;\n} else if b {\n    2;\n} else {\n    3;\n}"
    )


def test_for_loop():
    assert pformat("for x in xs { print(x); }") == "for (x in xs) {\n    print(x);\n}"


def test_empty_blocks():
    assert pformat("function f() {} {}") == "function f() {}\n{}"


ROUND_TRIP_PROGRAMS = [
    """
    var total = 0;
    for (x in [1, 2, 3]) { total = total + x; }
    total;
    """,
    """
    function make(n) {
        function inc() { return n + 1; }
        return inc;
    }
    var f = make(5);
    f();
    """,
    """
    var o = { a: 1, b: { c: "deep\\ttab" } };
    o.a = o.a * -2;
    o["b"];
    """,
    """
    var i = 0;
    while i <= 10 {
        if i % 2 == 0 { print(i, "even"); }
        else if i > 7 { print("big"); }
        else { i = i + 0; }
        i = i + 1;
    }
    """,
    """
    const greeting = "hi";
    var r = (x = 3);
    ({ a: 1 });
    { var scoped = [greeting, r]; }
    """,
]


@pytest.mark.parametrize("src", ROUND_TRIP_PROGRAMS)
def test_printing_then_parsing_gives_the_same_tree(src):
    diag = Diagnostics(io.StringIO())
    tree = parse(src, diag)
    printed = Printer().pformat(tree)
    assert parse(printed, diag) == tree
    assert diag.reported == []
    # Formatting is a fixed point after one pass.
    assert Printer().pformat(parse(printed)) == printed
