"""Deduction rules for the account health score.

Every rule is a plain function ``(RuleContext) -> Deduction | None``. ``RULES``
lists them in evaluation order, which is also the order deductions are
reported in. Rules that grade the same signal at several strengths are
expressed as a tuple of ``Tier`` and resolved by ``first_tier`` so the signal
is only ever penalised once.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict

from account_doctor.models import Deduction, Dimension, Post, ProfileSnapshot, Severity
from account_doctor.utils.patterns import (
    NO_POST_DAYS,
    average_hashtags,
    days_since_last_post,
    follow_ratio,
    location_tag_rate,
    posts_within,
    sort_recent_first,
)


class ScoringConfig(BaseModel):
    """Vocabulary and presentation knobs the rules read from."""
    model_config = ConfigDict(frozen=True)

    industry_keywords: tuple[str, ...] = (
        "shop", "store", "studio", "official", "design", "cafe",
        "restaurant", "bar", "salon", "gym", "fitness",
    )
    # substrings marking a generic avatar served in place of a real photo
    placeholder_markers: tuple[str, ...] = ("default",)
    top_issue_count: int = 3
    filler_tips: tuple[str, ...] = (
        "Keep posting consistently to maintain your current engagement rate",
        "Experiment with different content formats (Reels, Carousels) to find what resonates",
        "Engage with your audience by responding to comments within 1 hour of posting",
    )
    fallback_tip: str = "Continue monitoring your analytics for optimization opportunities"


DEFAULT_CONFIG = ScoringConfig()


@dataclass(frozen=True)
class RuleContext:
    """Snapshot plus the derived metrics the rules share."""
    snapshot: ProfileSnapshot
    now: datetime
    config: ScoringConfig
    posts: tuple[Post, ...]          # non-pinned, newest first
    days_since_last_post: int
    posts_in_last_30_days: int

    @property
    def has_dated_post(self) -> bool:
        return self.days_since_last_post != NO_POST_DAYS


def build_context(snapshot: ProfileSnapshot, now: datetime, config: ScoringConfig) -> RuleContext:
    posts = tuple(sort_recent_first(p for p in snapshot.recent_posts if not p.is_pinned))
    return RuleContext(
        snapshot=snapshot,
        now=now,
        config=config,
        posts=posts,
        days_since_last_post=days_since_last_post(posts, now),
        posts_in_last_30_days=posts_within(posts, now, days=30),
    )


@dataclass(frozen=True)
class Tier:
    label: str
    penalty: int
    severity: Severity
    min_days: int                    # fires when days since last post exceed this
    remediation: str                 # may reference {days}


def first_tier(tiers: tuple[Tier, ...], days: int) -> Optional[Tier]:
    """Return the first (harshest) tier whose threshold `days` exceeds."""
    for tier in tiers:
        if days > tier.min_days:
            return tier
    return None


ACTIVITY_TIERS: tuple[Tier, ...] = (
    Tier(
        label="Ghost Account",
        penalty=30,
        severity=Severity.HIGH,
        min_days=30,
        remediation=(
            "Your account has been inactive for over 30 days. Post fresh content "
            "immediately to re-engage your audience and restore visibility."
        ),
    ),
    Tier(
        label="Fading Visibility",
        penalty=15,
        severity=Severity.MEDIUM,
        min_days=7,
        remediation=(
            "Last post was {days} days ago. Maintain at least 1 post per week "
            "to stay visible in followers' feeds."
        ),
    ),
)


# ── Activity ──────────────────────────────────────────────────────────────────

def check_recency(ctx: RuleContext) -> Optional[Deduction]:
    # An account that has never posted has no activity to judge.
    if not ctx.has_dated_post and ctx.snapshot.post_count == 0:
        return None
    tier = first_tier(ACTIVITY_TIERS, ctx.days_since_last_post)
    if tier is None:
        return None
    return Deduction(
        label=tier.label,
        penalty_points=tier.penalty,
        severity=tier.severity,
        dimension=Dimension.ACTIVITY,
        remediation=tier.remediation.format(days=ctx.days_since_last_post),
    )


def check_posting_pace(ctx: RuleContext) -> Optional[Deduction]:
    # Needs at least one dated post: with none the recency tier already applies.
    if not ctx.has_dated_post:
        return None
    if ctx.posts_in_last_30_days >= 3 or ctx.snapshot.post_count <= 5:
        return None
    return Deduction(
        label="Slow Content Pace",
        penalty_points=10,
        severity=Severity.MEDIUM,
        dimension=Dimension.ACTIVITY,
        remediation=(
            f"Only {ctx.posts_in_last_30_days} posts in the last 30 days. "
            "Aim for 3-5 posts per week for optimal engagement."
        ),
    )


# ── Profile Integrity ─────────────────────────────────────────────────────────

def check_profile_picture(ctx: RuleContext) -> Optional[Deduction]:
    url = (ctx.snapshot.profile_picture_url or "").strip()
    if url and not any(marker in url.lower() for marker in ctx.config.placeholder_markers):
        return None
    return Deduction(
        label="Missing Profile Photo",
        penalty_points=20,
        severity=Severity.HIGH,
        dimension=Dimension.PROFILE_INTEGRITY,
        remediation=(
            "Upload a high-quality, recognizable profile photo. Accounts without "
            "photos lose 90% of potential followers."
        ),
    )


def check_external_link(ctx: RuleContext) -> Optional[Deduction]:
    if (ctx.snapshot.external_url or "").strip():
        return None
    return Deduction(
        label="No Website Link",
        penalty_points=15,
        severity=Severity.HIGH,
        dimension=Dimension.PROFILE_INTEGRITY,
        remediation=(
            "Add a link to your website, booking page, or Linktree. This is crucial "
            "for converting followers into customers."
        ),
    )


def check_bio_length(ctx: RuleContext) -> Optional[Deduction]:
    if len(ctx.snapshot.biography) >= 10:
        return None
    return Deduction(
        label="Incomplete Bio",
        penalty_points=10,
        severity=Severity.MEDIUM,
        dimension=Dimension.PROFILE_INTEGRITY,
        remediation=(
            "Write a clear, compelling bio (50-150 characters) that tells visitors "
            "who you are and what you offer."
        ),
    )


def check_bio_keywords(ctx: RuleContext) -> Optional[Deduction]:
    bio = ctx.snapshot.biography.lower()
    # Short bios are already covered by check_bio_length.
    if len(bio) < 10:
        return None
    if any(keyword.lower() in bio for keyword in ctx.config.industry_keywords):
        return None
    return Deduction(
        label="Missing Industry Keywords",
        penalty_points=5,
        severity=Severity.LOW,
        dimension=Dimension.PROFILE_INTEGRITY,
        remediation=(
            'Add industry-specific keywords to your bio (e.g., "Coffee Shop", '
            '"Design Studio") to improve SEO and discoverability.'
        ),
    )


# ── Operations ────────────────────────────────────────────────────────────────

def check_hashtags(ctx: RuleContext) -> Optional[Deduction]:
    # A never-posted account has no hashtag habit to judge; any other account
    # without visible posts averages zero.
    if not ctx.posts and ctx.snapshot.post_count == 0:
        return None
    avg = average_hashtags(ctx.posts)
    if avg >= 3:
        return None
    return Deduction(
        label="Insufficient Hashtags",
        penalty_points=5,
        severity=Severity.LOW,
        dimension=Dimension.OPERATIONS,
        remediation=(
            f"Average {avg:.1f} hashtags per post. Use 8-15 relevant hashtags "
            "to increase discoverability by 300%."
        ),
    )


def check_location_tags(ctx: RuleContext) -> Optional[Deduction]:
    if len(ctx.posts) < 3:
        return None
    rate = location_tag_rate(ctx.posts)
    if rate >= 0.3:
        return None
    return Deduction(
        label="No Location Tags",
        penalty_points=5,
        severity=Severity.LOW,
        dimension=Dimension.OPERATIONS,
        remediation=(
            f"Only {int(rate * 100 + 0.5)}% of posts have location tags. "
            "Tag your business location to attract local customers."
        ),
    )


# ── Health ────────────────────────────────────────────────────────────────────

def check_follow_ratio(ctx: RuleContext) -> Optional[Deduction]:
    following = ctx.snapshot.following_count
    followers = ctx.snapshot.follower_count
    if following <= 1000 or following <= followers:
        return None
    ratio = follow_ratio(following, followers)
    return Deduction(
        label=f"Follower/Following Imbalance ({ratio:.1f}:1)",
        penalty_points=10,
        severity=Severity.MEDIUM,
        dimension=Dimension.HEALTH,
        remediation=(
            f"You follow {following} but have {followers} followers (ratio {ratio:.1f}:1). "
            "Unfollow inactive accounts to improve credibility."
        ),
    )


Rule = Callable[[RuleContext], Optional[Deduction]]

RULES: tuple[Rule, ...] = (
    check_recency,
    check_posting_pace,
    check_profile_picture,
    check_external_link,
    check_bio_length,
    check_bio_keywords,
    check_hashtags,
    check_location_tags,
    check_follow_ratio,
)
