from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from account_doctor.utils.patterns import parse_timestamp


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Dimension(str, Enum):
    ACTIVITY = "Activity"
    PROFILE_INTEGRITY = "Profile Integrity"
    OPERATIONS = "Operations"
    HEALTH = "Health"


class Grade(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    NEEDS_WORK = "NEEDS WORK"
    WARNING = "WARNING"


class Post(BaseModel):
    model_config = ConfigDict(frozen=True)

    published_at: Optional[datetime] = None   # None = unknown, never "now"
    like_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)
    hashtags: frozenset[str] = frozenset()
    location_tag: Optional[str] = None
    is_pinned: bool = False
    # presentation only, never scored
    caption: str = ""
    media_url: Optional[str] = None
    post_type: str = "image"

    @field_validator("published_at", mode="before")
    @classmethod
    def _parse_published_at(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator("hashtags", mode="before")
    @classmethod
    def _read_hashtags(cls, value: Any) -> frozenset[str]:
        # unreadable tag data degrades to "no hashtags"
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple, set, frozenset)):
            return frozenset()
        return frozenset(tag for tag in value if isinstance(tag, str) and tag)

    @field_validator("location_tag", mode="before")
    @classmethod
    def _read_location(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) and value else None

    @field_validator("caption", mode="before")
    @classmethod
    def _none_to_blank(cls, value: Any) -> Any:
        return "" if value is None else value


class ProfileSnapshot(BaseModel):
    """Point-in-time view of a profile and its recent posts.

    The three counts are left optional so a provider can pass through what it
    received; the scoring engine rejects missing or negative values. They are
    strict, so a boolean or a numeric string fails validation instead of being
    coerced.
    """
    model_config = ConfigDict(frozen=True)

    biography: str = ""
    profile_picture_url: Optional[str] = None
    external_url: Optional[str] = None
    follower_count: Optional[StrictInt] = None
    following_count: Optional[StrictInt] = None
    post_count: Optional[StrictInt] = None
    recent_posts: tuple[Post, ...] = ()
    # presentation only, never scored
    username: str = ""
    full_name: str = ""
    is_verified: bool = False
    business_category: Optional[str] = None

    @field_validator("biography", "username", "full_name", mode="before")
    @classmethod
    def _none_to_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("recent_posts", mode="before")
    @classmethod
    def _none_to_no_posts(cls, value: Any) -> Any:
        return () if value is None else value


class Deduction(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    penalty_points: int = Field(gt=0)
    severity: Severity
    dimension: Dimension
    remediation: str


class AuditResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    grade: Grade
    summary_title: str
    deductions: tuple[Deduction, ...]
    top_issues: tuple[str, ...]
