from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Sequence

# Stand-in for "no dated post at all"; large enough to clear every activity tier.
NO_POST_DAYS = 999

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)

_TIME_SLOTS = [
    ("00-04", 0), ("04-08", 4), ("08-12", 8),
    ("12-16", 12), ("16-20", 16), ("20-24", 20),
]


def as_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or a unix timestamp (seconds or ms) into UTC.

    Returns None for anything that cannot be read as a point in time.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        try:
            return as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def sort_recent_first(posts: Iterable[Any]) -> list[Any]:
    """Newest first; undated posts keep their relative order at the end."""
    return sorted(posts, key=lambda p: p.published_at or _EARLIEST, reverse=True)


def days_since_last_post(posts: Sequence[Any], now: datetime) -> int:
    """Whole days between `now` and the newest dated post, or NO_POST_DAYS."""
    dated = [p.published_at for p in posts if p.published_at is not None]
    if not dated:
        return NO_POST_DAYS
    return (as_utc(now) - max(dated)) // timedelta(days=1)


def posts_within(posts: Sequence[Any], now: datetime, days: int = 30) -> int:
    cutoff = as_utc(now) - timedelta(days=days)
    return sum(1 for p in posts if p.published_at is not None and p.published_at > cutoff)


def average_hashtags(posts: Sequence[Any]) -> float:
    if not posts:
        return 0.0
    return sum(len(p.hashtags) for p in posts) / len(posts)


def location_tag_rate(posts: Sequence[Any]) -> float:
    if not posts:
        return 0.0
    return sum(1 for p in posts if p.location_tag) / len(posts)


def average_likes(posts: Sequence[Any]) -> int:
    if not posts:
        return 0
    return sum(p.like_count for p in posts) // len(posts)


def follow_ratio(following: int, followers: int) -> float:
    return following / max(followers, 1)


def _hour_to_slot(hour: int) -> str:
    for label, start in reversed(_TIME_SLOTS):
        if hour >= start:
            return label
    return "00-04"


def compute_posting_patterns(posts: Sequence[Any]) -> dict[str, Any]:
    """Compute peak posting days and time slots (UTC) from dated posts."""
    days: Counter = Counter()
    hours: Counter = Counter()
    for p in posts:
        if p.published_at is None:
            continue
        days[p.published_at.strftime("%A")] += 1
        hours[_hour_to_slot(p.published_at.hour)] += 1
    return {"peak_days": dict(days), "peak_hours": dict(hours)}
