"""Configuration for a test run."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigurationError(Exception):
    """Raised when the run cannot start because of invalid configuration."""


class RunnerConfig(BaseModel):
    """Configuration for running tests from a single test executable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    test_binary: Path = Field(..., description="Executable containing the tests")
    parallelism: int = Field(
        default=1, ge=1, description="Number of tests to execute in parallel"
    )
    timeout: str | None = Field(
        default=None,
        description="Per-test timeout passed verbatim to -test.timeout (e.g. '30s')",
    )

    @field_validator("timeout")
    @classmethod
    def _blank_timeout_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()


def load_config(
    test_binary: str | Path | None,
    parallelism: int = 1,
    timeout: str | None = None,
) -> RunnerConfig:
    """Validate run settings and build the runner configuration.

    Args:
        test_binary: Path to the test executable
        parallelism: Number of tests to execute in parallel
        timeout: Optional per-test timeout understood by the test executable

    Returns:
        The validated configuration

    Raises:
        ConfigurationError: If a setting is invalid or the executable is missing

    """
    if test_binary is None or not str(test_binary).strip():
        raise ConfigurationError("No test executable given")

    try:
        config = RunnerConfig(
            test_binary=Path(test_binary),
            parallelism=parallelism,
            timeout=timeout,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if not config.test_binary.is_file():
        raise ConfigurationError(f"Cannot find binary: {config.test_binary}")

    return config
