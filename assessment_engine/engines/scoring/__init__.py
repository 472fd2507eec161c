"""
Scoring Engine - negative-marking grader.

Correct +1, wrong -0.25, unattempted 0; score floored at 0; percentage rounded
half-up; letter grade and pass/fail come from two independent tables.
"""

from assessment_engine.engines.scoring.grader import (
    DEFAULT_SCHEME,
    AnswerOutcome,
    GradeResult,
    GradingScheme,
    ScoreBreakdown,
    ScoringEngine,
    grade,
)

__all__ = [
    "DEFAULT_SCHEME",
    "AnswerOutcome",
    "GradeResult",
    "GradingScheme",
    "ScoreBreakdown",
    "ScoringEngine",
    "grade",
]
