"""Instant profile summary: cheap, LLM-free fields shown before the full audit."""
from datetime import datetime
from typing import Any

from account_doctor.models import ProfileSnapshot
from account_doctor.utils.patterns import (
    average_likes,
    compute_posting_patterns,
    days_since_last_post,
    sort_recent_first,
)

DEFAULT_CATEGORY = "Local Business"


def activity_status(days_since_last_post: int) -> str:
    if days_since_last_post <= 7:
        return "Active"
    if days_since_last_post <= 30:
        return "Dormant"
    return "Inactive"


def build_instant_data(snapshot: ProfileSnapshot, now: datetime) -> dict[str, Any]:
    posts = sort_recent_first(p for p in snapshot.recent_posts if not p.is_pinned)
    days = days_since_last_post(posts, now)
    last_post = next((p.published_at for p in posts if p.published_at is not None), None)
    patterns = compute_posting_patterns(posts)
    peak_days = patterns["peak_days"]
    peak_hours = patterns["peak_hours"]

    return {
        "username": snapshot.username,
        "full_name": snapshot.full_name,
        "avatar_url": snapshot.profile_picture_url or "",
        "bio": snapshot.biography,
        "is_verified": snapshot.is_verified,
        "follower_count": snapshot.follower_count,
        "following_count": snapshot.following_count,
        "post_count": snapshot.post_count,
        "activity_status": activity_status(days),
        "last_post_date": last_post.date().isoformat() if last_post else "Unknown",
        "avg_likes": average_likes(posts),
        "peak_day": max(peak_days, key=peak_days.get) if peak_days else "N/A",
        "peak_hour_utc": max(peak_hours, key=peak_hours.get) if peak_hours else "N/A",
        "recent_posts_preview": [
            {
                "thumbnail_url": p.media_url or "",
                "type": p.post_type,
                "likes": p.like_count,
                "comments": p.comment_count,
            }
            for p in posts[:5]
        ],
        "category_label": snapshot.business_category or DEFAULT_CATEGORY,
    }
