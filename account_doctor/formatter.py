from datetime import date
from typing import Any, Optional

from account_doctor.models import AuditResult


def format_follower_count(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)


def format_audit_report(
    audit: AuditResult,
    instant: dict[str, Any],
    diagnosis: Optional[dict[str, Any]] = None,
) -> str:
    """Format an audit into a Markdown report string."""
    username = instant.get("username") or "unknown"
    sections = [f"# Account Audit: @{username}\n\n*Generated {date.today()}*\n"]

    sections.append(f"## {audit.score}/100 · {audit.grade.value}\n")
    sections.append(f"**{audit.summary_title}**\n")

    sections.append("## Profile\n")
    sections.append(f"- **Followers**: {format_follower_count(instant.get('follower_count') or 0)}")
    sections.append(f"- **Following**: {format_follower_count(instant.get('following_count') or 0)}")
    sections.append(f"- **Posts**: {instant.get('post_count', 0)}")
    sections.append(f"- **Category**: {instant.get('category_label', '')}")
    sections.append(
        f"- **Activity**: {instant.get('activity_status', 'N/A')} "
        f"(last post {instant.get('last_post_date', 'Unknown')})"
    )
    sections.append(f"- **Average likes**: {instant.get('avg_likes', 0)}")
    sections.append(
        f"- **Peak posting**: {instant.get('peak_day', 'N/A')}, {instant.get('peak_hour_utc', 'N/A')} UTC"
    )
    sections.append("")

    sections.append("## Key Issues\n")
    for i, issue in enumerate(audit.top_issues, 1):
        sections.append(f"{i}. {issue}")
    sections.append("")

    if audit.deductions:
        sections.append("## Deductions\n")
        sections.append("| Dimension | Issue | Severity | Points |")
        sections.append("|---|---|---|---|")
        for d in audit.deductions:
            sections.append(f"| {d.dimension.value} | {d.label} | {d.severity.value} | -{d.penalty_points} |")
        sections.append("")

    if diagnosis:
        sections.append("## Diagnosis\n")
        sections.append(diagnosis.get("headline", "") + "\n")
        strengths = diagnosis.get("strengths", [])
        if strengths:
            sections.append("**Strengths:**\n")
            for s in strengths:
                sections.append(f"- {s}")
            sections.append("")
        priorities = diagnosis.get("priorities", [])
        if priorities:
            sections.append("**Priorities:**\n")
            for p in priorities:
                sections.append(f"- {p}")
            sections.append("")

    return "\n".join(sections)
