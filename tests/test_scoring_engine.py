from datetime import datetime, timedelta, timezone

import pytest

from account_doctor.models import Deduction, Dimension, Grade, Post, ProfileSnapshot, Severity
from account_doctor.scoring import InvalidInput, ScoringConfig, evaluate, grade_for, summary_title, top_issues
from account_doctor.scoring.rules import DEFAULT_CONFIG

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)
TAGS = frozenset({"coffee", "lisbon", "latteart"})


def _post(days_ago, hashtags=TAGS, location="Lisbon", pinned=False):
    return Post(
        published_at=NOW - timedelta(days=days_ago),
        like_count=40,
        comment_count=3,
        hashtags=hashtags,
        location_tag=location,
        is_pinned=pinned,
    )


HEALTHY = ProfileSnapshot(
    username="beanbar",
    biography="Specialty coffee shop in Lisbon",
    profile_picture_url="https://cdn.example.com/beanbar.jpg",
    external_url="https://beanbar.example.com",
    follower_count=5000,
    following_count=300,
    post_count=120,
    recent_posts=tuple(_post(d) for d in (1, 3, 5, 8)),
)


def _labels(result):
    return [d.label for d in result.deductions]


def _with(**update):
    return HEALTHY.model_copy(update=update)


# ── Baseline and worked examples ─────────────────────────────────────────────

def test_healthy_profile_scores_full_marks():
    result = evaluate(HEALTHY, NOW)
    assert result.score == 100
    assert result.grade is Grade.EXCELLENT
    assert result.deductions == ()
    assert result.summary_title == "Outstanding Profile - Optimized For Growth"
    assert list(result.top_issues) == list(DEFAULT_CONFIG.filler_tips)


def test_empty_never_posted_account_scores_55():
    snapshot = ProfileSnapshot(
        biography="",
        profile_picture_url=None,
        external_url=None,
        follower_count=0,
        following_count=0,
        post_count=0,
    )
    result = evaluate(snapshot, NOW)
    assert result.score == 55
    assert _labels(result) == ["Missing Profile Photo", "No Website Link", "Incomplete Bio"]
    assert result.grade is Grade.WARNING


def test_no_recent_posts_with_history_is_ghost_not_slow_pace():
    result = evaluate(_with(recent_posts=(), post_count=10), NOW)
    assert "Ghost Account" in _labels(result)
    assert "Slow Content Pace" not in _labels(result)
    assert "Insufficient Hashtags" in _labels(result)
    assert result.score == 65


# ── Activity ──────────────────────────────────────────────────────────────────

def test_thirty_days_is_not_ghost():
    result = evaluate(_with(recent_posts=(_post(30),)), NOW)
    assert "Ghost Account" not in _labels(result)
    assert "Fading Visibility" in _labels(result)


def test_thirty_one_days_is_ghost():
    result = evaluate(_with(recent_posts=(_post(31),)), NOW)
    assert "Ghost Account" in _labels(result)
    assert "Fading Visibility" not in _labels(result)


def test_seven_days_is_not_fading():
    result = evaluate(_with(recent_posts=(_post(7), _post(9), _post(12))), NOW)
    assert "Fading Visibility" not in _labels(result)
    assert result.score == 100


def test_eight_days_is_fading():
    result = evaluate(_with(recent_posts=(_post(8), _post(9), _post(12))), NOW)
    fading = [d for d in result.deductions if d.label == "Fading Visibility"]
    assert len(fading) == 1
    assert fading[0].penalty_points == 15
    assert fading[0].severity is Severity.MEDIUM
    assert "8 days ago" in fading[0].remediation


def test_ghost_deduction_fields():
    result = evaluate(_with(recent_posts=(_post(45),) * 3), NOW)
    ghost = result.deductions[0]
    assert ghost.label == "Ghost Account"
    assert ghost.penalty_points == 30
    assert ghost.severity is Severity.HIGH
    assert ghost.dimension is Dimension.ACTIVITY


def test_slow_pace_when_few_recent_posts():
    result = evaluate(_with(recent_posts=(_post(1), _post(2)), post_count=10), NOW)
    assert _labels(result) == ["Slow Content Pace"]
    assert result.deductions[0].penalty_points == 10
    assert "Only 2 posts" in result.deductions[0].remediation


def test_slow_pace_needs_more_than_five_posts_overall():
    result = evaluate(_with(recent_posts=(_post(1), _post(2)), post_count=5), NOW)
    assert "Slow Content Pace" not in _labels(result)


def test_slow_pace_co_triggers_with_ghost():
    result = evaluate(_with(recent_posts=(_post(40), _post(50), _post(60))), NOW)
    assert _labels(result)[:2] == ["Ghost Account", "Slow Content Pace"]
    assert result.score == 60


def test_undated_posts_are_ignored_for_recency_but_count_for_hashtags():
    undated = tuple(
        Post(published_at=None, hashtags=TAGS, location_tag="Lisbon") for _ in range(3)
    )
    result = evaluate(_with(recent_posts=undated, post_count=10), NOW)
    assert _labels(result) == ["Ghost Account"]


def test_unparseable_timestamp_becomes_unknown():
    post = Post(published_at="not a date")
    assert post.published_at is None


# ── Pinned posts ──────────────────────────────────────────────────────────────

def test_pinned_post_does_not_count_as_activity():
    fresh_pin = _post(0, hashtags=frozenset(), location=None, pinned=True)
    result = evaluate(_with(recent_posts=(fresh_pin, _post(40), _post(41), _post(42))), NOW)
    assert "Ghost Account" in _labels(result)


def test_only_pinned_posts_scores_like_no_posts():
    pin = _post(0, pinned=True)
    result = evaluate(_with(recent_posts=(pin,), post_count=10), NOW)
    assert _labels(result) == ["Ghost Account", "Insufficient Hashtags"]
    assert result.score == 65
    assert result == evaluate(_with(recent_posts=(), post_count=10), NOW)


def test_removing_pinned_post_never_changes_result():
    pin = _post(0, hashtags=frozenset(), location=None, pinned=True)
    with_pin = _with(recent_posts=HEALTHY.recent_posts + (pin,))
    assert evaluate(with_pin, NOW) == evaluate(HEALTHY, NOW)


def test_post_order_does_not_matter():
    shuffled = _with(recent_posts=tuple(reversed(HEALTHY.recent_posts)) + (_post(40),))
    ordered = _with(recent_posts=(_post(40),) + HEALTHY.recent_posts)
    assert evaluate(shuffled, NOW) == evaluate(ordered, NOW)


# ── Profile Integrity ─────────────────────────────────────────────────────────

@pytest.mark.parametrize("url", [None, "", "https://cdn.example.com/default_avatar.jpg"])
def test_missing_or_placeholder_profile_picture(url):
    result = evaluate(_with(profile_picture_url=url), NOW)
    assert _labels(result) == ["Missing Profile Photo"]
    assert result.deductions[0].penalty_points == 20
    assert result.deductions[0].severity is Severity.HIGH


@pytest.mark.parametrize("url", [None, "", "   "])
def test_missing_external_link(url):
    result = evaluate(_with(external_url=url), NOW)
    assert _labels(result) == ["No Website Link"]
    assert result.score == 85


def test_short_bio_skips_keyword_rule():
    result = evaluate(_with(biography="hi there"), NOW)
    assert _labels(result) == ["Incomplete Bio"]
    assert result.score == 90


def test_bio_without_industry_keyword():
    result = evaluate(_with(biography="Hello and welcome to my little corner"), NOW)
    assert _labels(result) == ["Missing Industry Keywords"]
    assert result.deductions[0].severity is Severity.LOW
    assert result.score == 95


def test_bio_keyword_match_is_case_insensitive():
    result = evaluate(_with(biography="Best HAIR SALON downtown"), NOW)
    assert result.deductions == ()


def test_industry_keywords_are_configurable():
    snapshot = _with(biography="Fresh bread baked daily since 1990")
    assert "Missing Industry Keywords" in _labels(evaluate(snapshot, NOW))
    config = ScoringConfig(industry_keywords=("bread",))
    assert evaluate(snapshot, NOW, config).deductions == ()


# ── Operations ────────────────────────────────────────────────────────────────

def test_insufficient_hashtags():
    posts = tuple(_post(d, hashtags=frozenset({"coffee"})) for d in (1, 2, 3))
    result = evaluate(_with(recent_posts=posts), NOW)
    assert _labels(result) == ["Insufficient Hashtags"]
    assert "Average 1.0 hashtags" in result.deductions[0].remediation


def test_missing_location_tags():
    posts = tuple(_post(d, location=None) for d in (1, 2, 3))
    result = evaluate(_with(recent_posts=posts), NOW)
    assert _labels(result) == ["No Location Tags"]
    assert "Only 0% of posts" in result.deductions[0].remediation


def test_location_rule_needs_three_posts():
    posts = tuple(_post(d, location=None) for d in (1, 2))
    result = evaluate(_with(recent_posts=posts, post_count=4), NOW)
    assert "No Location Tags" not in _labels(result)


def test_location_rate_of_thirty_percent_passes():
    posts = tuple(_post(d, location="Lisbon" if d < 3 else None) for d in range(10))
    result = evaluate(_with(recent_posts=posts), NOW)
    assert "No Location Tags" not in _labels(result)


# ── Health ────────────────────────────────────────────────────────────────────

def test_follow_ratio_imbalance():
    result = evaluate(_with(follower_count=100, following_count=2000), NOW)
    assert len(result.deductions) == 1
    health = result.deductions[0]
    assert health.dimension is Dimension.HEALTH
    assert health.penalty_points == 10
    assert "20.0:1" in health.label


def test_follow_ratio_with_zero_followers():
    result = evaluate(_with(follower_count=0, following_count=1500), NOW)
    assert "1500.0:1" in result.deductions[0].remediation


@pytest.mark.parametrize("followers,following", [(100, 1000), (2000, 1500)])
def test_follow_ratio_not_triggered(followers, following):
    result = evaluate(_with(follower_count=followers, following_count=following), NOW)
    assert result.deductions == ()


# ── Aggregation, grade, summary ──────────────────────────────────────────────

def test_score_is_clamped_at_zero():
    stale = tuple(_post(d, hashtags=frozenset(), location=None) for d in (40, 41, 42))
    snapshot = ProfileSnapshot(
        biography="",
        follower_count=10,
        following_count=5000,
        post_count=50,
        recent_posts=stale,
    )
    result = evaluate(snapshot, NOW)
    assert sum(d.penalty_points for d in result.deductions) == 105
    assert result.score == 0
    assert result.grade is Grade.WARNING
    assert result.summary_title == "Critical Issues Detected - Immediate Action Needed"


@pytest.mark.parametrize("score,grade", [
    (100, Grade.EXCELLENT), (90, Grade.EXCELLENT),
    (89, Grade.GOOD), (75, Grade.GOOD),
    (74, Grade.NEEDS_WORK), (60, Grade.NEEDS_WORK),
    (59, Grade.WARNING), (0, Grade.WARNING),
])
def test_grade_thresholds(score, grade):
    assert grade_for(score) is grade


def test_needs_work_title_names_first_high_severity_issue():
    result = evaluate(_with(profile_picture_url=None, recent_posts=(_post(8), _post(9), _post(10))), NOW)
    assert result.score == 65
    assert result.summary_title == "Good Potential, But Missing Profile Photo Holding You Back"


def test_needs_work_title_without_high_severity_issue():
    medium = Deduction(
        label="Fading Visibility", penalty_points=15, severity=Severity.MEDIUM,
        dimension=Dimension.ACTIVITY, remediation="post more",
    )
    assert summary_title(70, [medium]) == "Decent Setup, Missing Key Optimization"
    assert summary_title(80, [medium]) == "Solid Foundation With Room For Improvement"


# ── Top issues ────────────────────────────────────────────────────────────────

def test_top_issues_pick_worst_per_dimension():
    result = evaluate(_with(profile_picture_url=None, external_url=None), NOW)
    assert result.top_issues[0].startswith("Profile Integrity: Upload a high-quality")
    assert list(result.top_issues[1:]) == list(DEFAULT_CONFIG.filler_tips[1:])


def test_top_issues_stop_at_three_dimensions():
    stale = tuple(_post(d, hashtags=frozenset()) for d in (40, 41, 42))
    result = evaluate(
        _with(recent_posts=stale, external_url=None, follower_count=10, following_count=5000), NOW,
    )
    assert [issue.split(":")[0] for issue in result.top_issues] == [
        "Activity", "Profile Integrity", "Operations",
    ]
    assert "Ghost Account" in _labels(result)
    assert result.top_issues[0] == f"Activity: {result.deductions[0].remediation}"


def test_top_issues_tie_keeps_evaluation_order():
    posts = tuple(_post(d, hashtags=frozenset(), location=None) for d in (1, 2, 3))
    result = evaluate(_with(recent_posts=posts), NOW)
    assert _labels(result) == ["Insufficient Hashtags", "No Location Tags"]
    assert result.top_issues[0].startswith("Operations: Average 0.0 hashtags")


def test_top_issues_padding_uses_position_then_fallback():
    health = Deduction(
        label="Follower/Following Imbalance (3.0:1)", penalty_points=10, severity=Severity.MEDIUM,
        dimension=Dimension.HEALTH, remediation="Unfollow inactive accounts.",
    )
    config = ScoringConfig(filler_tips=("only tip",))
    assert top_issues([health], config) == (
        "Health: Unfollow inactive accounts.",
        config.fallback_tip,
        config.fallback_tip,
    )
    assert top_issues([], config) == ("only tip", config.fallback_tip, config.fallback_tip)


# ── Properties ────────────────────────────────────────────────────────────────

def test_evaluate_is_idempotent():
    snapshot = _with(biography="hey", recent_posts=(_post(12),), following_count=4000)
    first = evaluate(snapshot, NOW)
    second = evaluate(snapshot, NOW)
    assert first.model_dump_json() == second.model_dump_json()
    assert len(first.top_issues) == 3


def test_fresh_post_improves_ghost_account():
    ghost = _with(recent_posts=(), post_count=10)
    revived = _with(recent_posts=(_post(0),), post_count=10)
    assert evaluate(revived, NOW).score > evaluate(ghost, NOW).score


def test_naive_now_is_treated_as_utc():
    naive = NOW.replace(tzinfo=None)
    assert evaluate(HEALTHY, naive) == evaluate(HEALTHY, NOW)


# ── Invalid input ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("field", ["follower_count", "following_count", "post_count"])
def test_missing_count_raises(field):
    with pytest.raises(InvalidInput, match=field):
        evaluate(_with(**{field: None}), NOW)


def test_negative_count_raises():
    with pytest.raises(InvalidInput, match="non-negative"):
        evaluate(_with(follower_count=-1), NOW)


def test_non_numeric_count_in_mapping_raises():
    data = HEALTHY.model_dump()
    data["post_count"] = "lots"
    with pytest.raises(InvalidInput, match="post_count"):
        evaluate(data, NOW)


@pytest.mark.parametrize("value", [True, False, "100", 12.0])
def test_count_in_mapping_is_not_coerced(value):
    data = HEALTHY.model_dump()
    data["post_count"] = value
    with pytest.raises(InvalidInput, match="post_count"):
        evaluate(data, NOW)


def test_degraded_post_fields_in_mapping_do_not_raise():
    data = HEALTHY.model_dump()
    data["recent_posts"] = [
        {"published_at": (NOW - timedelta(days=d)).isoformat(), "location_tag": 123, "hashtags": 5}
        for d in (1, 2, 3)
    ]
    result = evaluate(data, NOW)
    assert _labels(result) == ["Insufficient Hashtags", "No Location Tags"]


def test_hashtags_skip_non_string_entries():
    post = Post(hashtags=["coffee", 7, None, "", "lisbon"], location_tag="")
    assert post.hashtags == frozenset({"coffee", "lisbon"})
    assert post.location_tag is None


def test_mapping_input_is_accepted():
    assert evaluate(HEALTHY.model_dump(), NOW) == evaluate(HEALTHY, NOW)


def test_unsupported_input_type_raises():
    with pytest.raises(InvalidInput):
        evaluate(["not", "a", "snapshot"], NOW)


def test_invalid_input_is_a_value_error():
    assert issubclass(InvalidInput, ValueError)
