from datetime import datetime, timezone

import pytest

from account_doctor.analyzers.instant import build_instant_data
from account_doctor.formatter import format_audit_report, format_follower_count
from account_doctor.models import ProfileSnapshot
from account_doctor.scoring import evaluate

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)

SNAPSHOT = ProfileSnapshot(username="quiet", follower_count=0, following_count=0, post_count=0)


@pytest.mark.parametrize("count,expected", [
    (0, "0"), (999, "999"), (1_000, "1.0K"), (12_345, "12.3K"), (2_500_000, "2.5M"),
])
def test_format_follower_count(count, expected):
    assert format_follower_count(count) == expected


def test_report_contains_score_and_deductions():
    audit = evaluate(SNAPSHOT, NOW)
    report = format_audit_report(audit, build_instant_data(SNAPSHOT, NOW))
    assert "# Account Audit: @quiet" in report
    assert "## 55/100 · WARNING" in report
    assert "| Profile Integrity | Missing Profile Photo | high | -20 |" in report
    for issue in audit.top_issues:
        assert issue in report
    assert "## Diagnosis" not in report


def test_report_includes_diagnosis():
    audit = evaluate(SNAPSHOT, NOW)
    diagnosis = {"headline": "A blank storefront.", "strengths": ["Clean handle"], "priorities": ["Add a photo"]}
    report = format_audit_report(audit, build_instant_data(SNAPSHOT, NOW), diagnosis)
    assert "## Diagnosis" in report
    assert "A blank storefront." in report
    assert "- Clean handle" in report
    assert "- Add a photo" in report
