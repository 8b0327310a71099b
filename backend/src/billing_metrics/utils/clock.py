"""Time source shared by the engine."""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime (columns store naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
