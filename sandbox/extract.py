# sandbox/extract.py
"""
Pull the JSON test results back out of the combined program output.
"""

import json
import logging
import re
from typing import Any, List

from sandbox.types import END_MARKER, START_MARKER, TestResult

logger = logging.getLogger(__name__)

_REQUIRED_STR_FIELDS = ("input", "expected", "actual")


class MalformedResults(ValueError):
    pass


def _to_result(item: Any) -> TestResult:
    if not isinstance(item, dict):
        raise MalformedResults(f"result entry is not an object: {item!r}")
    for name in _REQUIRED_STR_FIELDS:
        if not isinstance(item.get(name), str):
            raise MalformedResults(f"result entry has no string {name!r}")
    if not isinstance(item.get("passed"), bool):
        raise MalformedResults("result entry has no boolean 'passed'")
    error = item.get("error")
    if error is not None and not isinstance(error, str):
        raise MalformedResults("result entry has a non-string 'error'")
    case_id = item.get("id")
    if case_id is not None and (isinstance(case_id, bool) or not isinstance(case_id, int)):
        raise MalformedResults("result entry has a non-integer 'id'")
    return TestResult(
        input=item["input"],
        expected=item["expected"],
        actual=item["actual"],
        passed=item["passed"],
        description=str(item.get("description") or ""),
        error=error,
        id=case_id,
    )


def _marker_line(marker: str) -> "re.Pattern[str]":
    return re.compile(r"^" + re.escape(marker) + r"[ \t\r]*$", re.MULTILINE)


# markers only count when they stand on a line of their own, so marker text
# inside a description or printed mid-line is left alone
_START_LINE = _marker_line(START_MARKER)
_END_LINE = _marker_line(END_MARKER)


def extract_results(output: str) -> List[TestResult]:
    """
    Decode the block between the first START_MARKER line and the first
    END_MARKER line after it. Any problem with the block yields an empty list.
    """
    start = _START_LINE.search(output)
    if start is None:
        return []
    end = _END_LINE.search(output, start.end())
    if end is None:
        return []

    payload = output[start.end():end.start()].strip()
    try:
        data = json.loads(payload)
        if not isinstance(data, list):
            raise MalformedResults("test results block is not a JSON array")
        return [_to_result(item) for item in data]
    except ValueError as e:
        # json.JSONDecodeError and MalformedResults are both ValueErrors
        logger.warning("Discarding unreadable test results block: %s", e)
        return []
