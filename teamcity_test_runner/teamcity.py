"""Format test records as TeamCity service messages."""

from collections.abc import Mapping
from datetime import datetime

from teamcity_test_runner.models.record import TestRecord

RACE_MESSAGE = "Race detected!"

ESCAPES: Mapping[str, str] = {
    "|": "||",
    "'": "|'",
    "\n": "|n",
    "\r": "|r",
    "[": "|[",
    "]": "|]",
    "\u0085": "|x",
    "\u2028": "|l",
    "\u2029": "|p",
}

_ESCAPE_TABLE = str.maketrans(dict(ESCAPES))


def escape(value: str) -> str:
    """Escape a value for use inside a quoted service message attribute."""
    return value.translate(_ESCAPE_TABLE)


def format_timestamp(timestamp: datetime) -> str:
    """Format a timestamp the way TeamCity expects (2008-09-03T14:02:34.287+0300).

    Naive timestamps are taken to be in local time.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.astimezone()
    millis = timestamp.microsecond // 1000
    return f"{timestamp:%Y-%m-%dT%H:%M:%S}.{millis:03d}{timestamp:%z}"


def format_service_message(message_name: str, **attributes: str) -> str:
    """Render one service message line, escaping every attribute value."""
    rendered = " ".join(f"{key}='{escape(value)}'" for key, value in attributes.items())
    return f"##teamcity[{message_name} {rendered}]\n"


def format_test_record(record: TestRecord, now: datetime | None = None) -> str:
    """Render the block of service messages describing one test.

    The block always opens with testStarted and closes with testFinished.
    Failed and errored tests get a testFailed message in between, skipped
    tests a testIgnored message.

    Args:
        record: The completed test record
        now: Emission time for the messages after testStarted (defaults to now)

    Returns:
        The newline-terminated block of messages

    """
    finished = format_timestamp(now or datetime.now().astimezone())
    lines = [
        format_service_message(
            "testStarted",
            timestamp=format_timestamp(record.started),
            name=record.name,
            captureStandardOutput="true",
        )
    ]

    if record.verdict in {"failed", "errored"}:
        lines.append(
            format_service_message(
                "testFailed",
                timestamp=finished,
                name=record.name,
                message=record.message or f"Test {record.verdict}",
                details=record.output,
            )
        )
    elif record.verdict == "skipped":
        lines.append(
            format_service_message(
                "testIgnored",
                timestamp=finished,
                name=record.name,
                message=record.message or "Test skipped",
            )
        )

    if record.race:
        lines.append(
            format_service_message(
                "testFailed",
                timestamp=finished,
                name=record.name,
                message=RACE_MESSAGE,
                details=record.output,
            )
        )

    lines.append(
        format_service_message(
            "testFinished",
            timestamp=finished,
            name=record.name,
            duration=str(round(record.duration * 1000)),
        )
    )
    return "".join(lines)
