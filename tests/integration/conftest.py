"""Fixtures for integration tests using a real test executable."""

import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

import pytest

# Mimics a `go test -c` binary: runs the single test selected by -test.run
# and behaves according to the test name's prefix.
FAKE_TEST_BINARY = '''
import sys
import time
from pathlib import Path

args = sys.argv[1:]
name = args[args.index("-test.run") + 1].removeprefix("^").removesuffix("$")

with Path(__file__).with_suffix(".log").open("a") as invocations:
    invocations.write(name + "\\n")


def run_line():
    print(f"=== RUN   {name}")


if name.startswith("TestPass"):
    run_line()
    print(f"--- PASS: {name} (0.02s)")
    print("PASS")
elif name.startswith("TestSlow"):
    run_line()
    time.sleep(0.2)
    print(f"--- PASS: {name} (0.20s)")
    print("PASS")
elif name.startswith("TestFail"):
    run_line()
    print("    fake_test.go:12: got 'left', want \\"right\\"")
    print("    fake_test.go:13: [done]")
    print(f"--- FAIL: {name} (0.01s)")
    print("FAIL")
    sys.exit(1)
elif name.startswith("TestSkip"):
    run_line()
    print("    fake_test.go:7: requires network")
    print(f"--- SKIP: {name} (0.00s)")
    print("PASS")
elif name.startswith("TestArgs"):
    run_line()
    print("    args: " + " ".join(args))
    print(f"--- FAIL: {name} (0.00s)")
    sys.exit(1)
elif name.startswith("TestRace"):
    run_line()
    print("==================")
    print("WARNING: DATA RACE")
    print("==================")
    print(f"--- PASS: {name} (0.01s)")
    print("testing.go:1398: race detected during execution of test")
    sys.exit(1)
elif name.startswith("TestCrash"):
    run_line()
    sys.stdout.flush()
    print("fatal error: unexpected signal during runtime execution", file=sys.stderr)
    print("[signal SIGSEGV: segmentation violation]", file=sys.stderr)
    sys.exit(2)
else:
    print("testing: warning: no tests to run")
    print("PASS")
'''


class InvocationsFn(Protocol):
    """Protocol for reading the tests the fake executable was asked to run."""

    def __call__(self) -> Sequence[str]:
        """Return the test names, one per invocation."""


@pytest.fixture
def fake_test_binary(tmp_path: Path) -> Path:
    """Create an executable that behaves like a compiled Go test binary."""
    binary = tmp_path / "pkg.test"
    binary.write_text(f"#!{sys.executable}\n{FAKE_TEST_BINARY}")
    binary.chmod(0o755)
    return binary


@pytest.fixture
def invocations(fake_test_binary: Path) -> InvocationsFn:
    """Return a function listing the tests the fake executable ran."""

    def _read() -> Sequence[str]:
        log_file = fake_test_binary.with_suffix(".log")
        if not log_file.exists():
            return []
        return log_file.read_text().splitlines()

    return _read
