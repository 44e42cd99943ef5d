"""Tests for the call duration policy."""

from datetime import datetime, timedelta, timezone

from callrelay.domain.services.duration import compute_duration, to_utc_naive

START = datetime(2026, 3, 1, 15, 0, 0)


class TestComputeDuration:
    """Tests for compute_duration precedence."""

    def test_timestamp_pair_wins(self):
        result = compute_duration(
            started_at=START,
            ended_at=START + timedelta(seconds=125),
            reported_seconds=10,
            message_times=[START, START + timedelta(seconds=42)],
        )
        assert result.seconds == 125
        assert result.source == "timestamps"
        assert result.needs_review is False

    def test_reported_duration_used_without_pair(self):
        result = compute_duration(started_at=START, reported_seconds=61.5)
        assert result.seconds == 61.5
        assert result.source == "reported"

    def test_message_span_fallback(self):
        """With no timestamps or reported duration, the message span is used."""
        result = compute_duration(
            message_times=[START, START + timedelta(seconds=20), START + timedelta(seconds=42)],
        )
        assert result.seconds == 42
        assert result.source == "messages"
        assert result.minutes == 0.7

    def test_message_span_ignores_order(self):
        result = compute_duration(
            message_times=[START + timedelta(seconds=42), START],
        )
        assert result.seconds == 42

    def test_single_message_is_not_a_span(self):
        result = compute_duration(message_times=[START])
        assert result.seconds == 0
        assert result.needs_review is True

    def test_nothing_available_flags_review(self):
        result = compute_duration()
        assert result.seconds == 0
        assert result.minutes == 0
        assert result.source == "unknown"
        assert result.needs_review is True

    def test_end_before_start_is_ignored(self):
        result = compute_duration(
            started_at=START,
            ended_at=START - timedelta(seconds=5),
            reported_seconds=30,
        )
        assert result.seconds == 30
        assert result.source == "reported"

    def test_mixed_timezones_are_normalized(self):
        aware_end = datetime(2026, 3, 1, 10, 1, 0, tzinfo=timezone(timedelta(hours=-5)))
        result = compute_duration(started_at=START, ended_at=aware_end)
        assert result.seconds == 60

    def test_minutes_rounded_to_two_places(self):
        result = compute_duration(reported_seconds=100)
        assert result.minutes == 1.67


class TestToUtcNaive:
    def test_aware_converted(self):
        aware = datetime(2026, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert to_utc_naive(aware) == datetime(2026, 3, 1, 15, 0)

    def test_naive_unchanged(self):
        assert to_utc_naive(START) == START

    def test_none(self):
        assert to_utc_naive(None) is None
