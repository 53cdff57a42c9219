"""Read the names of the tests to run."""

from collections.abc import Iterable, Sequence

from teamcity_test_runner.config import ConfigurationError


def parse_test_names(lines: Iterable[str]) -> Sequence[str]:
    """Parse test names, one per line, skipping blank lines."""
    return tuple(name for line in lines if (name := line.strip()))


def read_test_names(stream: Iterable[str]) -> Sequence[str]:
    """Read test names from a text stream such as stdin.

    Raises:
        ConfigurationError: If the stream cannot be read or decoded

    """
    try:
        return parse_test_names(stream)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Error reading test names: {e}") from e
