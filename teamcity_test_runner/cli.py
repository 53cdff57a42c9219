"""CLI entry point for running Go tests with TeamCity reporting."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Iterable, Sequence
from typing import TextIO

from teamcity_test_runner.config import ConfigurationError, RunnerConfig, load_config
from teamcity_test_runner.models.record import TestRecord
from teamcity_test_runner.name_source import read_test_names
from teamcity_test_runner.orchestrator import TestOrchestrator

STATUS_SYMBOLS = {
    "passed": "✅",
    "failed": "❌",
    "skipped": "⏭️",
    "errored": "❗",
}

EPILOG = "Test names must be listed one per line on stdin."


def log_results_summary(log: logging.Logger, records: Sequence[TestRecord]) -> None:
    """Log a formatted summary of test verdicts."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for record in records:
        symbol = STATUS_SYMBOLS.get(record.verdict, "?")
        # A race is reported to TeamCity as a failure whatever the verdict.
        if record.race:
            symbol = STATUS_SYMBOLS["failed"]
        log.info(
            "%s %s: %s (%.2fs)", symbol, record.name, record.verdict, record.duration
        )
        if record.message and record.verdict != "passed":
            log.info("  Message: %s", record.message)
        if record.race:
            log.info("  Data race detected")

    counts = {
        verdict: sum(1 for r in records if r.verdict == verdict)
        for verdict in STATUS_SYMBOLS
    }
    log.info(
        "Total: %d, passed: %d, failed: %d, skipped: %d, errored: %d",
        len(records),
        counts["passed"],
        counts["failed"],
        counts["skipped"],
        counts["errored"],
    )


async def run(
    config: RunnerConfig,
    test_names: Sequence[str],
    sink: TextIO | None = None,
) -> int:
    """Run the named tests and return the exit code.

    Test failures are reported as service messages, not through the exit code.
    """
    log = logging.getLogger("teamcity_test_runner")

    if not test_names:
        log.info("No test names given on stdin")
        return 0

    log.info(
        "Running %d test(s) from %s (parallelism=%d, timeout=%s)",
        len(test_names),
        config.test_binary,
        config.parallelism,
        config.timeout or "none",
    )

    orchestrator = TestOrchestrator(config=config, sink=sink or sys.stdout)
    records = await orchestrator.run_tests(test_names)

    log_results_summary(log, records)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        description="Run Go tests in parallel, one process per test, "
        "reporting results as TeamCity service messages",
        epilog=EPILOG,
    )
    parser.add_argument(
        "--test",
        required=True,
        help="Executable containing the tests to run",
    )
    parser.add_argument(
        "--parallelism",
        type=int,
        default=1,
        help="Number of tests to execute in parallel (default: 1)",
    )
    parser.add_argument(
        "--timeout",
        default="",
        help="Optional per-test timeout passed to -test.timeout (e.g. '30s')",
    )
    return parser


def main(argv: Sequence[str] | None = None, stdin: Iterable[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    log = logging.getLogger("teamcity_test_runner")

    try:
        config = load_config(args.test, args.parallelism, args.timeout)
        test_names = read_test_names(sys.stdin if stdin is None else stdin)
    except ConfigurationError as e:
        log.error("%s", e)
        sys.exit(1)

    sys.exit(asyncio.run(run(config, test_names)))


if __name__ == "__main__":  # pragma: no cover
    main()
