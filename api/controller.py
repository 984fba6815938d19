"""
Controller / orchestrator for running user code and its test cases.

validate -> synthesize (sandbox.harness) -> execute -> extract (sandbox.extract).
Execution happens in-process through sandbox.executor, or on the remote runner
service when RUNNER_URL is configured. A failing runner is a server fault; there
is no fallback to executing on this host.
"""

import logging
import signal
from typing import Any, Dict, List, Optional, Tuple

import requests

from api.config import Settings
from api.validation import ACTION_RUN, ACTION_TEST, requested_test_cases, validate_request
from sandbox.executor import execute
from sandbox.extract import extract_results
from sandbox.harness import build_harness
from sandbox.types import RawResult, TestCase, TestResult

logger = logging.getLogger(__name__)

TIMEOUT_DIAGNOSTIC = "[ERROR] Execution timeout - code took too long to run."
OUTPUT_LIMIT_DIAGNOSTIC = "[ERROR] Output limit exceeded - output was truncated."


class RunnerUnavailable(RuntimeError):
    """The remote runner could not be reached or answered garbage."""


def _local_runner(source: str, settings: Settings) -> RawResult:
    return execute(source, settings.timeout_ms, settings.executor)


def _remote_runner(source: str, settings: Settings) -> RawResult:
    """
    Send the program to the runner service and return its RawResult.
    Expects the runner to return JSON with keys: stdout, stderr, returncode,
    timed_out, output_truncated. The HTTP wait covers the execution timeout plus
    RUNNER_REQUEST_TIMEOUT seconds for staging, kill and transfer.
    """
    payload = {"source": source, "timeout_ms": settings.timeout_ms}
    try:
        resp = requests.post(
            settings.runner_url, json=payload, timeout=settings.runner_http_timeout
        )
        resp.raise_for_status()
        body = resp.json()
    except (requests.RequestException, ValueError) as e:
        raise RunnerUnavailable(f"Runner at {settings.runner_url} failed: {e}") from e

    if not isinstance(body, dict):
        raise RunnerUnavailable(f"Runner at {settings.runner_url} returned {type(body).__name__}")
    returncode = body.get("returncode")
    return RawResult(
        stdout=str(body.get("stdout") or ""),
        stderr=str(body.get("stderr") or ""),
        returncode=None if returncode is None else int(returncode),
        timed_out=bool(body.get("timed_out", False)),
        output_truncated=bool(body.get("output_truncated", False)),
        duration_ms=int(body.get("duration_ms") or 0),
    )


def _run_source(source: str, settings: Settings) -> RawResult:
    if settings.runner_url:
        return _remote_runner(source, settings)
    return _local_runner(source, settings)


def fault_diagnostic(raw: RawResult) -> Optional[str]:
    if raw.timed_out:
        return TIMEOUT_DIAGNOSTIC
    if raw.output_truncated:
        return OUTPUT_LIMIT_DIAGNOSTIC
    if raw.returncode is None or raw.returncode == 0:
        return None
    if raw.returncode < 0:
        try:
            name = signal.Signals(-raw.returncode).name
        except ValueError:
            name = str(-raw.returncode)
        return f"[ERROR] Execution failed: terminated by signal {name}."
    return f"[ERROR] Execution failed with exit code {raw.returncode}."


def combine_output(raw: RawResult, diagnostics: List[str]) -> str:
    output = raw.stdout + raw.stderr
    for line in diagnostics:
        output += "\n" + line
    return output.strip()


def _collect_results(raw: RawResult, expected_count: int) -> List[TestResult]:
    results = extract_results(raw.stdout + raw.stderr)
    if results and len(results) != expected_count:
        logger.warning(
            "Discarding test results: got %d entries for %d test cases",
            len(results),
            expected_count,
        )
        return []
    return results


def run_request(data: Dict[str, Any], settings: Settings) -> Tuple[Dict[str, Any], int]:
    """
    Validate a /api/run payload, execute it and build the response body.

    Returns (body, http_status). Infrastructure faults (RunnerUnavailable,
    ExecutorUnavailable, OSError) propagate to the caller.
    """
    ok, err = validate_request(data, settings)
    if not ok:
        logger.info("Rejected request: %s", err)
        return {"success": False, "output": err}, 400

    action = data.get("action") or ACTION_RUN
    test_cases = [TestCase.from_dict(case) for case in requested_test_cases(data)]

    source = build_harness(data["code"], test_cases)
    raw = _run_source(source, settings)

    diagnostics = []
    diag = fault_diagnostic(raw)
    if diag:
        diagnostics.append(diag)

    body: Dict[str, Any] = {"success": True}
    if action == ACTION_TEST:
        results = _collect_results(raw, len(test_cases)) if test_cases else []
        if test_cases and not results:
            diagnostics.append(
                f"[ERROR] No test results were produced (0 of {len(test_cases)} tests ran)."
            )
        passed = sum(1 for r in results if r.passed)
        body["output"] = combine_output(raw, diagnostics)
        body["results"] = [r.to_dict() for r in results]
        body["summary"] = f"{passed}/{len(results)} tests passed"
        logger.info("Ran %d test cases: %s", len(test_cases), body["summary"])
    else:
        body["output"] = combine_output(raw, diagnostics)

    return body, 200
