"""Test orchestrator running tests in parallel, one process per test."""

import asyncio
import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TextIO

from teamcity_test_runner.config import RunnerConfig
from teamcity_test_runner.models.record import TestRecord
from teamcity_test_runner.output_parser import parse_test_output
from teamcity_test_runner.runner import run_test_binary
from teamcity_test_runner.teamcity import format_test_record

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TestOrchestrator:
    """Runs named tests on a fixed-size pool of workers.

    Every test name submitted produces exactly one record and exactly one
    block of service messages written to the sink. Blocks are written whole,
    in the order tests complete.
    """

    __test__ = False

    config: RunnerConfig
    sink: TextIO = field(default_factory=lambda: sys.stdout)

    async def run_tests(self, test_names: Sequence[str]) -> Sequence[TestRecord]:
        """Run every named test once and write its messages to the sink.

        Args:
            test_names: Names of the tests to run, in submission order

        Returns:
            One record per submitted name, in completion order

        """
        if not test_names:
            log.info("No tests to run")
            return []

        worker_count = min(self.config.parallelism, len(test_names))
        log.info(
            "Running %d test(s) on %d worker(s)...", len(test_names), worker_count
        )

        work_queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=worker_count)
        results: asyncio.Queue[tuple[TestRecord, str]] = asyncio.Queue()

        tasks = [
            asyncio.create_task(self._feed(work_queue, test_names, worker_count)),
            *(
                asyncio.create_task(self._work(work_queue, results))
                for _ in range(worker_count)
            ),
        ]

        records: list[TestRecord] = []
        try:
            while len(records) < len(test_names):
                record, block = await results.get()
                self.sink.write(block)
                self.sink.flush()
                records.append(record)
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()

        log.info("Test execution completed")
        return records

    async def _feed(
        self,
        work_queue: asyncio.Queue[str | None],
        test_names: Sequence[str],
        worker_count: int,
    ) -> None:
        """Queue test names in order, then one stop marker per worker."""
        for test_name in test_names:
            await work_queue.put(test_name)
        for _ in range(worker_count):
            await work_queue.put(None)

    async def _work(
        self,
        work_queue: asyncio.Queue[str | None],
        results: asyncio.Queue[tuple[TestRecord, str]],
    ) -> None:
        """Run queued tests until a stop marker is received."""
        while (test_name := await work_queue.get()) is not None:
            started = datetime.now().astimezone()
            try:
                record = await self._run_test(test_name, started)
                block = format_test_record(record)
            except Exception as e:
                log.error("Running test %s failed: %s", test_name, e, exc_info=e)
                record = TestRecord(
                    name=test_name,
                    started=started,
                    verdict="errored",
                    duration=_elapsed(started),
                    message=str(e) or type(e).__name__,
                )
                block = format_test_record(record)

            log.info(
                "Test completed: name=%s verdict=%s duration=%.2fs",
                record.name,
                record.verdict,
                record.duration,
            )
            await results.put((record, block))

    async def _run_test(self, test_name: str, started: datetime) -> TestRecord:
        """Run a single test in its own process and build its record."""
        output = await run_test_binary(
            self.config.test_binary, test_name, self.config.timeout
        )
        parsed = parse_test_output(
            test_name, output.stdout, output.stderr, output.returncode
        )
        duration = parsed.duration if parsed.duration is not None else _elapsed(started)

        return TestRecord(
            name=test_name,
            started=started,
            verdict=parsed.verdict,
            duration=duration,
            output=parsed.detail,
            message=parsed.message,
            race=parsed.race,
        )


def _elapsed(started: datetime) -> float:
    return (datetime.now().astimezone() - started).total_seconds()
