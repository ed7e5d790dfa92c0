import re
from datetime import datetime, timezone

from pydantic import ValidationError

from fsbridge.server.exceptions import OperationError


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a caller-supplied regular expression.

    Raises OperationError with the compiler's message instead of leaking
    ``re.error`` to the caller.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise OperationError(f"Invalid pattern {pattern!r}: {e}") from e


def format_validation_error(error: ValidationError) -> str:
    """Flatten a pydantic error into one line: ``field: problem; ...``."""
    problems = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "value"
        problems.append(f"{location}: {detail['msg']}")
    return "; ".join(problems)


def utc_timestamp(mtime: float) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g.
    ``2024-01-15T10:20:30.123Z``.
    """
    moment = datetime.fromtimestamp(mtime, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def utc_date(mtime: float) -> str:
    """Calendar day of a timestamp in UTC, e.g. ``2024-01-15``."""
    return datetime.fromtimestamp(mtime, tz=timezone.utc).date().isoformat()
