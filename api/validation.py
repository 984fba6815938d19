# api/validation.py
"""
Request validation utilities.

Provides:
- high-level validate_request(...) for the Flask API
- smaller helpers for the code body and the test case list
"""

from typing import Any, Dict, List, Optional, Tuple

from api.config import Settings

ACTION_RUN = "run"
ACTION_TEST = "test"
ACTIONS = (ACTION_RUN, ACTION_TEST)


def code_size(code: str) -> int:
    """Size of the code in bytes, as stored on disk."""
    return len(code.encode("utf-8"))


def validate_code(code: Any, max_size: int) -> Tuple[bool, Optional[str]]:
    if not code or not isinstance(code, str):
        return False, "Invalid code provided"
    try:
        size = code_size(code)
    except UnicodeEncodeError:
        return False, "Code must be valid UTF-8 text"
    if size > max_size:
        return False, f"Code too large. Maximum size is {max_size} bytes."
    return True, None


def _validate_test_case(index: int, case: Any) -> Optional[str]:
    where = f"testCases[{index}]"
    if not isinstance(case, dict):
        return f"{where} must be an object."
    if not isinstance(case.get("input"), str):
        return f"{where}.input must be a string."
    if not isinstance(case.get("expected"), str):
        return f"{where}.expected must be a string."
    description = case.get("description")
    if description is not None and not isinstance(description, str):
        return f"{where}.description must be a string."
    case_id = case.get("id")
    if case_id is not None and (isinstance(case_id, bool) or not isinstance(case_id, int)):
        return f"{where}.id must be an integer."
    return None


def validate_test_cases(test_cases: Any, max_count: int) -> Tuple[bool, Optional[str]]:
    if test_cases is None:
        return True, None
    if not isinstance(test_cases, list):
        return False, "'testCases' must be a list."
    if len(test_cases) > max_count:
        return False, f"Too many test cases. Maximum is {max_count}."
    for index, case in enumerate(test_cases):
        err = _validate_test_case(index, case)
        if err:
            return False, err
    return True, None


def validate_request(data: Dict[str, Any], settings: Settings) -> Tuple[bool, Optional[str]]:
    """
    High-level validator used by the API controller.

    Returns (True, None) if valid, otherwise (False, "<error message>").
    """
    ok, err = validate_code(data.get("code"), settings.max_code_size)
    if not ok:
        return False, err

    action = data.get("action") or ACTION_RUN
    if action not in ACTIONS:
        return False, "Invalid action. Expected 'run' or 'test'."

    if action == ACTION_TEST:
        ok, err = validate_test_cases(data.get("testCases"), settings.max_test_cases)
        if not ok:
            return False, err

    return True, None


def requested_test_cases(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    if (data.get("action") or ACTION_RUN) != ACTION_TEST:
        return []
    return data.get("testCases") or []
