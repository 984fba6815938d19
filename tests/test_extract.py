import json
import logging

from sandbox.extract import extract_results
from sandbox.types import END_MARKER, START_MARKER, TestResult


def _block(payload: str) -> str:
    return f"{START_MARKER}\n{payload}\n{END_MARKER}\n"


SAMPLE = [
    {"id": 1, "input": "add(2,3)", "expected": "5", "actual": "5", "passed": True, "description": "basic add"},
    {
        "id": 2,
        "input": "x",
        "expected": "1",
        "actual": "Error",
        "passed": False,
        "description": "d",
        "error": "NameError: name 'x' is not defined",
    },
]


def test_extracts_block_surrounded_by_noise():
    output = "user output\n" + _block(json.dumps(SAMPLE, indent=2)) + "trailing stderr\n"

    results = extract_results(output)

    assert results == [
        TestResult(input="add(2,3)", expected="5", actual="5", passed=True, description="basic add", id=1),
        TestResult(
            input="x",
            expected="1",
            actual="Error",
            passed=False,
            description="d",
            error="NameError: name 'x' is not defined",
            id=2,
        ),
    ]
    assert "error" not in results[0].to_dict()
    assert results[1].to_dict()["error"].startswith("NameError")


def test_missing_markers_yield_empty_list():
    assert extract_results("") == []
    assert extract_results("no markers at all") == []
    assert extract_results(f"{START_MARKER}\n[]\n") == []
    assert extract_results(f"[]\n{END_MARKER}\n") == []


def test_end_marker_before_start_marker():
    assert extract_results(f"{END_MARKER}\n[]\n{START_MARKER}\n") == []


def test_uses_first_end_marker_after_start():
    payload = json.dumps(SAMPLE[:1])
    output = f"{END_MARKER}\n{START_MARKER}\n{payload}\n{END_MARKER}\n{END_MARKER}\n"

    assert len(extract_results(output)) == 1


def test_malformed_json_is_discarded_and_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="sandbox.extract"):
        assert extract_results(_block('[{"input": "1", ')) == []
    assert "Discarding unreadable test results block" in caplog.text


def test_non_array_payload_is_discarded():
    assert extract_results(_block(json.dumps(SAMPLE[0]))) == []


def test_one_bad_entry_discards_the_whole_block():
    broken = [SAMPLE[0], {"input": "x", "expected": "1", "actual": "Error", "passed": "no"}]
    assert extract_results(_block(json.dumps(broken))) == []


def test_empty_array_is_well_formed():
    assert extract_results(_block("[]")) == []


def test_marker_text_inside_the_json_is_not_a_marker():
    entry = dict(SAMPLE[0], description=f"prints {END_MARKER} when done")
    output = _block(json.dumps([entry], indent=2))

    results = extract_results(output)

    assert len(results) == 1
    assert results[0].description == f"prints {END_MARKER} when done"


def test_markers_must_stand_on_their_own_line():
    payload = json.dumps(SAMPLE[:1])
    output = f"echo {START_MARKER} here\n{START_MARKER}\n{payload}\nsee {END_MARKER}\n{END_MARKER}\n"

    assert len(extract_results(output)) == 1
    assert extract_results(f"x{START_MARKER}\n{payload}\n{END_MARKER}\n") == []


def test_marker_lines_tolerate_carriage_returns():
    payload = json.dumps(SAMPLE[:1])
    output = f"{START_MARKER}\r\n{payload}\r\n{END_MARKER}\r\n"

    assert len(extract_results(output)) == 1
