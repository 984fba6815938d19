# sandbox/harness.py
"""
Build the program that actually runs: user code wrapped with a test harness.

The user code is embedded as a string literal and executed by the harness in a
private namespace, so a fault at the top level of the user code is recorded
against the tests instead of killing the run. Each test case becomes one call
to `_run_case`, and the collected results are printed as JSON between the
START_MARKER and END_MARKER lines.
"""

from typing import Optional, Sequence

from sandbox.types import END_MARKER, PRINT_OUTPUT, START_MARKER, TestCase

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def escape_literal(text: str) -> str:
    """
    Return `text` as a double-quoted Python string literal.

    Backslash, double quote, LF, CR and TAB get their usual backslash escapes,
    the remaining C0 control characters and DEL become `\\xNN`, lone surrogates
    become `\\uNNNN` so the source stays encodable as UTF-8, and every other
    character (non-ASCII included) is copied as is. Evaluating the result gives
    back `text` exactly.
    """
    out = []
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append("\\x%02x" % ord(ch))
        elif 0xD800 <= ord(ch) <= 0xDFFF:
            out.append("\\u%04x" % ord(ch))
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _id_literal(case_id: Optional[int]) -> str:
    return "None" if case_id is None else str(int(case_id))


_PRELUDE = '''# coding: utf-8
import contextlib as _contextlib
import io as _io
import json as _json
import sys as _sys
import traceback as _traceback

_PRINT_OUTPUT = {print_output}
_test_results = []


def _describe(exc):
    message = str(exc)
    return f"{{type(exc).__name__}}: {{message}}" if message else type(exc).__name__


def _execute_user_code():
    namespace = {{"__name__": "__main__"}}
    exec(compile(_USER_CODE, "<user_code>", "exec"), namespace)
    return namespace


def _capture_program_output():
    buffer = _io.StringIO()
    saved_argv = _sys.argv
    _sys.argv = [""]
    try:
        with _contextlib.redirect_stdout(buffer):
            _execute_user_code()
    finally:
        _sys.argv = saved_argv
    return buffer.getvalue().strip()


def _evaluate(expression):
    if _setup_error is not None:
        raise RuntimeError(f"user code failed before tests ran: {{_setup_error}}")
    scope = dict(_bindings)
    scope["__builtins__"] = {{}}
    return str(eval(expression, scope))


def _run_case(case_id, expression, expected, description):
    result = {{"id": case_id, "input": expression, "expected": expected, "description": description}}
    try:
        if expression == _PRINT_OUTPUT:
            actual = _capture_program_output()
        else:
            actual = _evaluate(expression)
    except (Exception, SystemExit) as exc:
        result.update(actual="Error", passed=False, error=_describe(exc))
    else:
        result.update(actual=actual, passed=actual.strip() == expected.strip())
    _test_results.append(result)


_USER_CODE = {user_code}

try:
    _bindings = _execute_user_code()
    _setup_error = None
except (Exception, SystemExit) as _exc:
    _bindings = {{}}
    _setup_error = _describe(_exc)
    _traceback.print_exc()

'''

_EPILOGUE = '''
print(file=_sys.__stdout__)
print({start}, file=_sys.__stdout__)
print(_json.dumps(_test_results, indent=2), file=_sys.__stdout__)
print({end}, file=_sys.__stdout__, flush=True)
'''


def build_harness(user_code: str, test_cases: Sequence[TestCase]) -> str:
    """
    Return the source to execute for `user_code` and `test_cases`.

    With no test cases the user code is returned unchanged.
    """
    if not test_cases:
        return user_code

    parts = [
        _PRELUDE.format(
            print_output=escape_literal(PRINT_OUTPUT),
            user_code=escape_literal(user_code),
        )
    ]
    for case in test_cases:
        parts.append(
            "_run_case(%s, %s, %s, %s)\n"
            % (
                _id_literal(case.id),
                escape_literal(case.input),
                escape_literal(case.expected),
                escape_literal(case.description),
            )
        )
    parts.append(
        _EPILOGUE.format(start=escape_literal(START_MARKER), end=escape_literal(END_MARKER))
    )
    return "".join(parts)
