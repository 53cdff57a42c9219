"""Parse verbose Go test runner output into a verdict for a single test.

The runner output is scanned line by line for three kinds of markers::

    === RUN   TestName
    --- PASS: TestName (0.03s)
    --- FAIL: TestName (0.03s)
    --- SKIP: TestName (0.00s)

Any other line (logs, output from other goroutines, subtest markers) is
tolerated and, while the test is running, kept as diagnostic detail.
"""

import enum
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from teamcity_test_runner.models.record import Verdict

RUN_MARKER = re.compile(r"^=== RUN\s+(?P<name>\S+)\s*$")
RESULT_MARKER = re.compile(
    r"^\s*--- (?P<status>PASS|FAIL|SKIP): (?P<name>\S+)"
    r"(?: \((?P<duration>\d+(?:\.\d+)?)s\))?"
)
RACE_WARNING = "WARNING: DATA RACE"
NO_TESTS_WARNING = "testing: warning: no tests to run"
PANIC_PREFIX = "panic: "

STATUS_TO_VERDICT: Mapping[str, Verdict] = {
    "PASS": "passed",
    "FAIL": "failed",
    "SKIP": "skipped",
}


class _State(enum.Enum):
    AWAITING_RUN = enum.auto()
    IN_TEST = enum.auto()
    DONE = enum.auto()


@dataclass(frozen=True, kw_only=True)
class ParsedOutput:
    """Verdict and diagnostics recovered from one test invocation."""

    verdict: Verdict
    duration: float | None = None
    detail: str = ""
    message: str | None = None
    race: bool = False


def parse_test_output(
    test_name: str,
    stdout: str,
    stderr: str,
    returncode: int | None = 0,
) -> ParsedOutput:
    """Determine the verdict of a single test from its captured output.

    Args:
        test_name: Name of the test that was run
        stdout: Captured standard output of the test executable
        stderr: Captured standard error of the test executable
        returncode: Exit status, or None if the executable never started

    Returns:
        The parsed verdict. When no result marker for the test is found the
        verdict is "errored" and both streams are kept as detail.

    """
    race = RACE_WARNING in stdout or RACE_WARNING in stderr

    state = _State.AWAITING_RUN
    status: str | None = None
    duration: float | None = None
    detail: list[str] = []
    trailing: list[str] = []
    panicked = False

    for line in stdout.split("\n"):
        if state is _State.AWAITING_RUN:
            if (run := RUN_MARKER.match(line)) and run["name"] == test_name:
                state = _State.IN_TEST
                continue
            if (result := _match_result(line, test_name)) is not None:
                status, duration = result
                state = _State.DONE
            continue

        if state is _State.IN_TEST:
            if (result := _match_result(line, test_name)) is not None:
                status, duration = result
                state = _State.DONE
            else:
                detail.append(line)
            continue

        # Only failures and skips carry useful trailing output.
        if status == "PASS":
            break
        if panicked:
            trailing.append(line)
        elif line.startswith(PANIC_PREFIX) and status == "FAIL":
            panicked = True
            trailing.append(line)
        elif line[:1].isspace():
            trailing.append(line)
        else:
            break

    if status is None:
        return _errored(test_name, stdout, stderr, returncode, race)

    verdict = STATUS_TO_VERDICT[status]
    detail_text = "\n".join(detail + trailing).strip("\n")

    if verdict == "failed":
        if stderr.strip():
            detail_text = _join_chunks(detail_text, stderr)
        message = "Test panicked" if panicked else "Test failed"
    elif verdict == "skipped":
        message = _first_line(detail + trailing) or "Test skipped"
    else:
        message = None

    return ParsedOutput(
        verdict=verdict,
        duration=duration,
        detail=detail_text,
        message=message,
        race=race,
    )


def _match_result(line: str, test_name: str) -> tuple[str, float | None] | None:
    """Match a result marker for the given test, returning status and duration."""
    if (match := RESULT_MARKER.match(line)) is None or match["name"] != test_name:
        return None
    duration = float(match["duration"]) if match["duration"] is not None else None
    return match["status"], duration


def _errored(
    test_name: str,
    stdout: str,
    stderr: str,
    returncode: int | None,
    race: bool,
) -> ParsedOutput:
    if returncode is None:
        message = "Test executable could not be started"
    elif not stdout.strip() and not stderr.strip():
        message = f"Test produced no output (exit status {returncode})"
    elif NO_TESTS_WARNING in stdout or NO_TESTS_WARNING in stderr:
        message = f"No test matched the name {test_name}"
    else:
        message = f"No result reported for test (exit status {returncode})"

    return ParsedOutput(
        verdict="errored",
        detail=_join_streams(stdout, stderr),
        message=message,
        race=race,
    )


def _join_chunks(*chunks: str) -> str:
    return "\n".join(chunk.strip("\n") for chunk in chunks if chunk.strip())


def _join_streams(stdout: str, stderr: str) -> str:
    """Concatenate both streams verbatim, separated by a newline if needed."""
    if stdout and stderr and not stdout.endswith("\n"):
        return f"{stdout}\n{stderr}"
    return stdout + stderr


def _first_line(lines: Sequence[str]) -> str | None:
    for line in lines:
        if line.strip():
            return line.strip()
    return None
