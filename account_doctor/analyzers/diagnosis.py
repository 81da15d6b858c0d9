import json
import os

from openai import OpenAI
from pydantic import BaseModel, ValidationError

from account_doctor.models import AuditResult, ProfileSnapshot
from account_doctor.utils import call_with_retry

SYSTEM_PROMPT = """
You are an Instagram account analyst for local businesses. You receive a
profile summary, its recent posting statistics, and a rule-based health audit
that has already been scored.

Do not re-score the account and do not contradict the audit. Explain it.

Return a JSON object with these fields:
- headline: one punchy sentence naming the account's core problem or strength
- category_label: the most likely business category (e.g. "Coffee Shop"); prefer
  the provided business category if present
- strengths: list of 1-3 things the account already does well
- priorities: list of exactly 3 concrete, actionable next steps, most urgent first

All output must be in English only.
Return only valid JSON, no markdown formatting.
"""


class DiagnosisError(RuntimeError):
    """The model answered, but not with a usable diagnosis."""


class Diagnosis(BaseModel):
    headline: str
    category_label: str = ""
    strengths: list[str] = []
    priorities: list[str] = []


def _describe(snapshot: ProfileSnapshot, audit: AuditResult) -> str:
    posts = [p for p in snapshot.recent_posts if not p.is_pinned]
    hashtags = sorted({tag for p in posts for tag in p.hashtags})
    locations = [p.location_tag for p in posts if p.location_tag]
    deduction_lines = "\n".join(
        f"- [{d.severity.value}] {d.dimension.value}: {d.label} (-{d.penalty_points})"
        for d in audit.deductions
    ) or "- none"
    return (
        f"Username: @{snapshot.username}\n"
        f"Full name: {snapshot.full_name or 'unknown'}\n"
        f"Bio: {snapshot.biography or '(empty)'}\n"
        f"Business category: {snapshot.business_category or 'unknown'}\n"
        f"Website: {snapshot.external_url or 'none'}\n"
        f"Followers: {snapshot.follower_count}  Following: {snapshot.following_count}  "
        f"Posts: {snapshot.post_count}\n"
        f"Recent posts analysed: {len(posts)}\n"
        f"Hashtags used: {', '.join(hashtags[:10]) or 'none'}\n"
        f"Location tags used: {len(locations)}\n\n"
        f"Audit score: {audit.score}/100 ({audit.grade.value})\n"
        f"Deductions:\n{deduction_lines}"
    )


def diagnose(snapshot: ProfileSnapshot, audit: AuditResult) -> Diagnosis:
    """One LLM call turning a scored audit into a short narrative diagnosis."""
    client = OpenAI(api_key=os.getenv("OPENAI_API_KEY"))

    response = call_with_retry(
        client.chat.completions.create,
        model=os.getenv("OPENAI_MODEL", "gpt-4o"),
        response_format={"type": "json_object"},
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": _describe(snapshot, audit)},
        ],
    )
    content = response.choices[0].message.content or ""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise DiagnosisError(f"Model returned invalid JSON: {content[:200]!r}") from exc
    if isinstance(data, dict) and isinstance(data.get("diagnosis"), dict):
        data = data["diagnosis"]
    if not isinstance(data, dict):
        raise DiagnosisError(f"Expected a JSON object, got {type(data).__name__}")

    if not data.get("category_label") and snapshot.business_category:
        data["category_label"] = snapshot.business_category
    try:
        return Diagnosis.model_validate(data)
    except ValidationError as exc:
        raise DiagnosisError(f"Diagnosis is missing fields: {exc.error_count()} problem(s)") from exc
