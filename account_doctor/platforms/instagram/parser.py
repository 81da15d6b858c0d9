import re
from typing import Any, Optional

from account_doctor.models import Post, ProfileSnapshot

_PROFILE_URL = re.compile(r"instagram\.com/([A-Za-z0-9._]+)")

_POST_TYPES = {"Video": "video", "Sidecar": "carousel"}


def clean_username(raw: str) -> str:
    """Normalize "@Name", "name " or a profile URL to a bare lowercase handle."""
    value = raw.strip()
    match = _PROFILE_URL.search(value)
    if match:
        value = match.group(1)
    return value.lstrip("@").strip("/").lower()


def _first(item: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return None


def _count(value: Any) -> Optional[int]:
    """Read a count that may arrive as an int, a whole float or "1,234".

    Unreadable values become None and negative values are kept, so the
    scoring engine rejects them instead of scoring a corrupted snapshot.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        digits = value.replace(",", "").strip()
        if re.fullmatch(r"-?\d+", digits):
            return int(digits)
    return None


def _engagement(value: Any) -> int:
    # Apify reports -1 when the owner hides like counts.
    count = _count(value)
    return count if isinstance(count, int) and count > 0 else 0


def parse_post(item: dict[str, Any]) -> Post:
    hashtags = item.get("hashtags") or []
    return Post(
        published_at=_first(item, "timestamp", "takenAt", "taken_at"),
        like_count=_engagement(_first(item, "likesCount", "likes")),
        comment_count=_engagement(_first(item, "commentsCount", "comments")),
        hashtags=frozenset(str(tag).lstrip("#") for tag in hashtags if tag),
        location_tag=item.get("locationName") or None,
        is_pinned=bool(item.get("isPinned", False)),
        caption=item.get("caption") or "",
        media_url=item.get("displayUrl") or None,
        post_type=_POST_TYPES.get(item.get("type", ""), "image"),
    )


def parse_profile(item: dict[str, Any], username: Optional[str] = None) -> ProfileSnapshot:
    """Map one Apify profile-scraper item onto a ProfileSnapshot."""
    posts = _first(item, "latestPosts", "posts", "recentPosts") or []
    return ProfileSnapshot(
        username=item.get("username") or username or "",
        full_name=item.get("fullName") or "",
        biography=item.get("biography") or "",
        profile_picture_url=_first(item, "profilePicUrlHD", "profilePicUrl") or None,
        external_url=item.get("externalUrl") or None,
        follower_count=_count(_first(item, "followersCount", "followers")),
        following_count=_count(_first(item, "followsCount", "following")),
        post_count=_count(_first(item, "postsCount", "posts_count")),
        recent_posts=tuple(parse_post(p) for p in posts if isinstance(p, dict)),
        is_verified=bool(item.get("verified", False)),
        business_category=item.get("businessCategoryName") or None,
    )
