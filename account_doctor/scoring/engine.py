"""Rule-based account health score: 100 minus the sum of triggered deductions."""
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Sequence, Union

from pydantic import ValidationError

from account_doctor.models import AuditResult, Deduction, Dimension, Grade, ProfileSnapshot, Severity
from account_doctor.scoring.rules import DEFAULT_CONFIG, RULES, ScoringConfig, build_context
from account_doctor.utils.patterns import as_utc

_log = logging.getLogger(__name__)

_GRADE_THRESHOLDS: tuple[tuple[int, Grade], ...] = (
    (90, Grade.EXCELLENT),
    (75, Grade.GOOD),
    (60, Grade.NEEDS_WORK),
)

_REQUIRED_COUNTS = ("follower_count", "following_count", "post_count")


class InvalidInput(ValueError):
    """Snapshot is missing data the score cannot be computed without."""


def _coerce_snapshot(snapshot: Union[ProfileSnapshot, Mapping[str, Any]]) -> ProfileSnapshot:
    if isinstance(snapshot, ProfileSnapshot):
        return snapshot
    if isinstance(snapshot, Mapping):
        try:
            return ProfileSnapshot.model_validate(snapshot)
        except ValidationError as exc:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
            raise InvalidInput(f"Snapshot failed validation: {fields}") from exc
    raise InvalidInput(f"Expected a ProfileSnapshot or mapping, got {type(snapshot).__name__}")


def _require_counts(snapshot: ProfileSnapshot) -> None:
    for name in _REQUIRED_COUNTS:
        value = getattr(snapshot, name)
        if value is None:
            raise InvalidInput(f"{name} is missing")
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInput(f"{name} must be an integer, got {value!r}")
        if value < 0:
            raise InvalidInput(f"{name} must be non-negative, got {value}")


def grade_for(score: int) -> Grade:
    for floor, grade in _GRADE_THRESHOLDS:
        if score >= floor:
            return grade
    return Grade.WARNING


def summary_title(score: int, deductions: Sequence[Deduction]) -> str:
    if score >= 90:
        return "Outstanding Profile - Optimized For Growth"
    if score >= 75:
        return "Solid Foundation With Room For Improvement"
    if score >= 60:
        main_issue = next((d for d in deductions if d.severity is Severity.HIGH), None)
        if main_issue:
            return f"Good Potential, But {main_issue.label} Holding You Back"
        return "Decent Setup, Missing Key Optimization"
    return "Critical Issues Detected - Immediate Action Needed"


def top_issues(deductions: Sequence[Deduction], config: ScoringConfig = DEFAULT_CONFIG) -> tuple[str, ...]:
    """Worst deduction per dimension, padded with filler tips to a fixed length."""
    issues: list[str] = []
    for dimension in Dimension:
        if len(issues) >= config.top_issue_count:
            break
        in_dimension = [d for d in deductions if d.dimension is dimension]
        if not in_dimension:
            continue
        # max() keeps the first of equal penalties, i.e. evaluation order
        worst = max(in_dimension, key=lambda d: d.penalty_points)
        issues.append(f"{dimension.value}: {worst.remediation}")

    while len(issues) < config.top_issue_count:
        position = len(issues)
        tips = config.filler_tips
        issues.append(tips[position] if position < len(tips) else config.fallback_tip)
    return tuple(issues)


def evaluate(
    snapshot: Union[ProfileSnapshot, Mapping[str, Any]],
    now: datetime,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> AuditResult:
    """Score a profile snapshot as of `now`.

    Raises InvalidInput before any rule runs if the snapshot lacks a usable
    follower, following or post count. Missing optional fields never raise;
    they count as the worst case for the rule that reads them.
    """
    snapshot = _coerce_snapshot(snapshot)
    _require_counts(snapshot)

    ctx = build_context(snapshot, as_utc(now), config)
    deductions: list[Deduction] = []
    for rule in RULES:
        deduction = rule(ctx)
        if deduction is not None:
            deductions.append(deduction)

    raw_score = 100 - sum(d.penalty_points for d in deductions)
    score = max(0, min(100, raw_score))
    _log.debug(
        "scored @%s: %d (%d deductions, %d days since last post)",
        snapshot.username or "?", score, len(deductions), ctx.days_since_last_post,
    )
    return AuditResult(
        score=score,
        grade=grade_for(score),
        summary_title=summary_title(score, deductions),
        deductions=tuple(deductions),
        top_issues=top_issues(deductions, config),
    )
