# sandbox/types.py
"""
Plain data carried between the harness, the executor and the extractor.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

# Sentinel test input: compare the program's own printed output instead of an expression.
PRINT_OUTPUT = "print_output"

# Literal marker lines around the JSON test results in the program output.
START_MARKER = "TEST_RESULTS_START"
END_MARKER = "TEST_RESULTS_END"

# `actual` value recorded when evaluating a test raised.
ERROR_ACTUAL = "Error"


@dataclass(frozen=True)
class TestCase:
    __test__ = False  # not a pytest class

    input: str
    expected: str
    description: str = ""
    id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestCase":
        return cls(
            input=data["input"],
            expected=data["expected"],
            description=data.get("description") or "",
            id=data.get("id"),
        )


@dataclass
class TestResult:
    __test__ = False

    input: str
    expected: str
    actual: str
    passed: bool
    description: str = ""
    error: Optional[str] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.error is None:
            del data["error"]
        return data


@dataclass
class RawResult:
    """What one execution produced.

    `returncode` is None when the process was killed, either on timeout or
    because it wrote more than the output limit (`output_truncated`).
    """

    stdout: str
    stderr: str
    returncode: Optional[int]
    timed_out: bool = False
    output_truncated: bool = False
    duration_ms: int = field(default=0, compare=False)

    @property
    def failed(self) -> bool:
        return self.timed_out or self.output_truncated or self.returncode != 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
