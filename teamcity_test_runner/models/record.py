"""Models for individual test executions."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

Verdict = Literal["passed", "failed", "skipped", "errored"]


@dataclass(frozen=True, kw_only=True)
class TestRecord:
    """Outcome of running a single named test in its own process.

    Built once by the worker that ran the test, after the subprocess has
    terminated, and handed off for formatting.
    """

    __test__ = False

    name: str
    started: datetime
    verdict: Verdict
    duration: float
    output: str = ""
    message: str | None = None
    race: bool = False
