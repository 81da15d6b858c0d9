from account_doctor.scoring.engine import InvalidInput, evaluate, grade_for, summary_title, top_issues
from account_doctor.scoring.rules import DEFAULT_CONFIG, ScoringConfig

__all__ = [
    "DEFAULT_CONFIG",
    "InvalidInput",
    "ScoringConfig",
    "evaluate",
    "grade_for",
    "summary_title",
    "top_issues",
]
