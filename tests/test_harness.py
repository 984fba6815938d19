import ast

import pytest

from sandbox.harness import build_harness, escape_literal
from sandbox.types import END_MARKER, PRINT_OUTPUT, START_MARKER, TestCase


@pytest.mark.parametrize(
    "text",
    [
        "",
        "plain",
        'say "hi"',
        "back\\slash",
        "trailing backslash\\",
        "line one\nline two\r\n\tindented",
        "'single' and \"double\"",
        "bell\x07 nul\x00 del\x7f",
        "unicode: héllo 世界  ",
        '"""triple"""',
    ],
)
def test_escape_literal_evaluates_back_to_input(text):
    literal = escape_literal(text)
    assert literal.startswith('"') and literal.endswith('"')
    assert ast.literal_eval(literal) == text


def test_escape_literal_grammar():
    assert escape_literal('a"b') == '"a\\"b"'
    assert escape_literal("a\\b") == '"a\\\\b"'
    assert escape_literal("a\nb") == '"a\\nb"'
    assert escape_literal("\x01") == '"\\x01"'
    assert "\n" not in escape_literal("x\ny\rz")


def test_escape_literal_lone_surrogate_stays_encodable():
    literal = escape_literal("\ud800")
    literal.encode("utf-8")
    assert ast.literal_eval(literal) == "\ud800"


def test_no_test_cases_is_passthrough():
    code = "print(1 + 1)\n"
    assert build_harness(code, []) is code


def test_harness_is_valid_python_and_embeds_markers():
    cases = [
        TestCase(input="add(2, 3)", expected="5", description="basic add", id=1),
        TestCase(input=PRINT_OUTPUT, expected="hi", description="output"),
    ]
    source = build_harness("def add(a, b):\n    return a + b\nprint('hi')\n", cases)

    compile(source, "<harness>", "exec")
    assert START_MARKER in source
    assert END_MARKER in source
    assert source.count("_run_case(") == len(cases) + 1  # one definition, one call per case


def test_hostile_strings_do_not_break_the_scaffold():
    code = 'x = """\nprint("not a test")\n"""\n\\'
    cases = [
        TestCase(
            input='x + "\\"',
            expected='"""\n\'\'\'\\',
            description='"); import os; ("',
        )
    ]
    source = build_harness(code, cases)

    tree = ast.parse(source)
    calls = [
        node
        for node in ast.walk(tree)
        if isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == "_run_case"
    ]
    assert len(calls) == 1
    args = [ast.literal_eval(arg) for arg in calls[0].args]
    assert args == [None, cases[0].input, cases[0].expected, cases[0].description]


def test_user_code_is_embedded_verbatim():
    code = "def f():\n    return 'a\\tb'\n"
    source = build_harness(code, [TestCase(input="f()", expected="a\tb")])

    assigned = [
        node.value
        for node in ast.parse(source).body
        if isinstance(node, ast.Assign)
        and any(isinstance(t, ast.Name) and t.id == "_USER_CODE" for t in node.targets)
    ]
    assert len(assigned) == 1
    assert ast.literal_eval(assigned[0]) == code
