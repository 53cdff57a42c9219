"""Run a single test from a test executable in its own process."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class RunOutput:
    """Captured output of one test executable invocation.

    A returncode of None means the process could not be started at all.
    """

    stdout: str = ""
    stderr: str = ""
    returncode: int | None = None


def build_test_args(test_name: str, timeout: str | None = None) -> Sequence[str]:
    """Build the arguments selecting exactly one test in verbose mode.

    The name is used verbatim in an anchored pattern so that tests whose
    names merely contain it are not run.
    """
    args = ["-test.v", "-test.run", f"^{test_name}$"]
    if timeout:
        args.extend(["-test.timeout", timeout])
    return args


async def run_test_binary(
    test_binary: Path,
    test_name: str,
    timeout: str | None = None,
) -> RunOutput:
    """Run one test and capture its output.

    A non-zero exit status is reported through the returned output rather
    than raised, since a failing test exits non-zero.

    Args:
        test_binary: Path to the test executable
        test_name: Name of the single test to run
        timeout: Optional timeout passed through to the executable

    Returns:
        The decoded stdout and stderr and the exit status

    """
    args = build_test_args(test_name, timeout)
    log.debug("Running %s %s", test_binary, " ".join(args))

    try:
        process = await asyncio.create_subprocess_exec(
            str(test_binary),
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        log.warning("Cannot start %s for test %s: %s", test_binary, test_name, e)
        return RunOutput(stderr=f"Cannot start {test_binary}: {e}")

    stdout, stderr = await process.communicate()

    return RunOutput(
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
        returncode=process.returncode,
    )
