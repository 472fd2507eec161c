"""
Grader - deterministic scoring of a submitted answer map.

No I/O and no clock: identical inputs always give identical results.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from pydantic import BaseModel


class GradableQuestion(Protocol):
    """Anything with an id and a correct label (ORM Question or a test stub)."""

    id: object
    correct_label: str


class AnswerOutcome(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"
    UNATTEMPTED = "unattempted"


@dataclass(frozen=True)
class GradingScheme:
    """
    Marking constants.

    grade_thresholds is checked from the highest cutoff down; the first cutoff
    the percentage reaches gives the letter, otherwise fail_grade. The pass
    threshold is independent of the letter table.
    """

    correct_mark: float = 1.0
    negative_marking: float = 0.25
    pass_threshold_percent: int = 60
    grade_thresholds: Tuple[Tuple[str, int], ...] = field(
        default=(("A", 90), ("B", 80), ("C", 70), ("D", 60)),
    )
    fail_grade: str = "F"

    @classmethod
    def from_settings(cls, settings) -> "GradingScheme":
        return cls(
            negative_marking=settings.negative_marking,
            pass_threshold_percent=settings.pass_threshold_percent,
            grade_thresholds=tuple(settings.grade_thresholds.items()),
        )

    def letter_for(self, percentage: int) -> str:
        for letter, cutoff in sorted(self.grade_thresholds, key=lambda item: item[1], reverse=True):
            if percentage >= cutoff:
                return letter
        return self.fail_grade


DEFAULT_SCHEME = GradingScheme()


class ScoreBreakdown(BaseModel):
    """Human-readable arithmetic, one line per bucket."""

    correct: str
    wrong: str
    unattempted: str
    total: str


class GradeResult(BaseModel):
    """Everything an AttemptResult row and the result screen need."""

    total_questions: int
    correct_count: int
    wrong_count: int
    unattempted_count: int
    raw_score: float
    final_score: float
    percentage: int
    grade: str
    passed: bool
    time_spent_seconds: int
    negative_marking: float
    outcomes: Dict[str, AnswerOutcome]
    breakdown: ScoreBreakdown


def _normalize_answer(value: Optional[str]) -> str:
    return (value or "").strip().upper()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _fmt(value: float) -> str:
    return f"{value:.2f}"


class ScoringEngine:
    """Grades answer maps under a GradingScheme."""

    def __init__(self, scheme: GradingScheme = DEFAULT_SCHEME):
        self.scheme = scheme

    def classify(self, question: GradableQuestion, answer: Optional[str]) -> AnswerOutcome:
        given = _normalize_answer(answer)
        if not given:
            return AnswerOutcome.UNATTEMPTED
        if given == _normalize_answer(question.correct_label):
            return AnswerOutcome.CORRECT
        return AnswerOutcome.WRONG

    def grade(
        self,
        questions: Sequence[GradableQuestion],
        answers: Mapping[str, Optional[str]],
        time_spent_seconds: int,
    ) -> GradeResult:
        """
        Grade one attempt.

        Args:
            questions: The set's questions (with correct labels)
            answers: question id (as string) -> chosen label; missing or blank
                entries count as unattempted, ids not in the set are ignored
            time_spent_seconds: Caller-reported time, stored as-is

        Returns:
            GradeResult with counts, clamped score, percentage, grade, pass flag
            and the per-bucket breakdown
        """
        scheme = self.scheme
        outcomes: Dict[str, AnswerOutcome] = {}
        for question in questions:
            key = str(question.id)
            outcomes[key] = self.classify(question, answers.get(key))

        counts: List[int] = [
            sum(1 for o in outcomes.values() if o is bucket)
            for bucket in (AnswerOutcome.CORRECT, AnswerOutcome.WRONG, AnswerOutcome.UNATTEMPTED)
        ]
        correct, wrong, unattempted = counts
        total = len(questions)

        penalty = wrong * scheme.negative_marking
        raw_score = correct * scheme.correct_mark - penalty
        final_score = max(0.0, raw_score)
        percentage = _round_half_up(final_score * 100 / total) if total else 0

        breakdown = ScoreBreakdown(
            correct=f"{correct} × {scheme.correct_mark:g} = {correct * scheme.correct_mark:g}",
            wrong=f"{wrong} × (-{scheme.negative_marking:g}) = -{_fmt(penalty)}",
            unattempted=f"{unattempted} × 0 = 0",
            total=f"Final Score: {_fmt(final_score)}/{total}",
        )

        return GradeResult(
            total_questions=total,
            correct_count=correct,
            wrong_count=wrong,
            unattempted_count=unattempted,
            raw_score=raw_score,
            final_score=final_score,
            percentage=percentage,
            grade=scheme.letter_for(percentage),
            passed=percentage >= scheme.pass_threshold_percent,
            time_spent_seconds=time_spent_seconds,
            negative_marking=scheme.negative_marking,
            outcomes=outcomes,
            breakdown=breakdown,
        )


def grade(
    questions: Sequence[GradableQuestion],
    answers: Mapping[str, Optional[str]],
    time_spent_seconds: int,
    scheme: GradingScheme = DEFAULT_SCHEME,
) -> GradeResult:
    """Convenience wrapper around ScoringEngine(scheme).grade()."""
    return ScoringEngine(scheme).grade(questions, answers, time_spent_seconds)
