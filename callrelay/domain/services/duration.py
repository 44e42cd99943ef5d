"""Call duration policy shared by both webhook normalizers."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable


@dataclass(frozen=True)
class DurationResult:
    """Computed call duration."""

    seconds: float
    source: str  # "timestamps", "reported", "messages" or "unknown"
    needs_review: bool = False

    @property
    def minutes(self) -> float:
        return round(self.seconds / 60, 2)


def to_utc_naive(value: datetime | None) -> datetime | None:
    """Convert a datetime to naive UTC, the form stored in the database."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def compute_duration(
    started_at: datetime | None = None,
    ended_at: datetime | None = None,
    reported_seconds: float | None = None,
    message_times: Iterable[datetime] = (),
) -> DurationResult:
    """Compute a call's duration from whatever the provider gave us.

    Precedence: explicit start/end pair, provider-reported duration, span
    between first and last transcript message. With none of those the
    duration is zero and flagged for manual review rather than guessed.
    """
    start = to_utc_naive(started_at)
    end = to_utc_naive(ended_at)
    if start is not None and end is not None and end >= start:
        return DurationResult((end - start).total_seconds(), "timestamps")

    if reported_seconds is not None and reported_seconds >= 0:
        return DurationResult(float(reported_seconds), "reported")

    times = sorted(t for t in (to_utc_naive(m) for m in message_times) if t is not None)
    if len(times) >= 2:
        return DurationResult((times[-1] - times[0]).total_seconds(), "messages")

    return DurationResult(0.0, "unknown", needs_review=True)
