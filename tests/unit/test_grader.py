"""Unit tests for the negative-marking grader."""

import uuid
from dataclasses import dataclass

import pytest

from assessment_engine.engines.scoring.grader import (
    AnswerOutcome,
    GradingScheme,
    ScoringEngine,
    grade,
)


@dataclass
class StubQuestion:
    id: uuid.UUID
    correct_label: str


def _questions(n: int, label: str = "A"):
    return [StubQuestion(id=uuid.uuid4(), correct_label=label) for _ in range(n)]


def _answers(questions, correct: int, wrong: int):
    """First `correct` answered right, next `wrong` answered wrong, rest left blank."""
    answers = {}
    for i, q in enumerate(questions):
        if i < correct:
            answers[str(q.id)] = q.correct_label
        elif i < correct + wrong:
            answers[str(q.id)] = "B" if q.correct_label != "B" else "C"
    return answers


class TestScenarios:
    def test_scenario_a_six_right_two_wrong_two_blank(self):
        """10 questions, 6 correct, 2 wrong, 2 unattempted -> 5.5, 55%, F, not passed."""
        questions = _questions(10)
        result = grade(questions, _answers(questions, correct=6, wrong=2), time_spent_seconds=420)

        assert result.correct_count == 6
        assert result.wrong_count == 2
        assert result.unattempted_count == 2
        assert result.raw_score == pytest.approx(5.5)
        assert result.final_score == pytest.approx(5.5)
        assert result.percentage == 55
        assert result.grade == "F"
        assert result.passed is False
        assert result.time_spent_seconds == 420

    def test_scenario_b_all_correct(self):
        """5 of 5 correct -> 100%, A, passed."""
        questions = _questions(5)
        result = grade(questions, _answers(questions, correct=5, wrong=0), time_spent_seconds=60)

        assert result.final_score == pytest.approx(5.0)
        assert result.percentage == 100
        assert result.grade == "A"
        assert result.passed is True


class TestClamping:
    @pytest.mark.parametrize("correct,wrong", [(0, 10), (1, 9), (2, 8), (0, 1)])
    def test_score_never_negative(self, correct, wrong):
        questions = _questions(10)
        result = grade(questions, _answers(questions, correct, wrong), time_spent_seconds=0)
        assert result.final_score >= 0
        assert result.percentage >= 0

    def test_raw_score_kept_below_zero(self):
        questions = _questions(4)
        result = grade(questions, _answers(questions, correct=0, wrong=4), time_spent_seconds=0)
        assert result.raw_score == pytest.approx(-1.0)
        assert result.final_score == 0.0
        assert result.percentage == 0
        assert result.grade == "F"


class TestMonotonicity:
    def test_more_correct_never_lowers_percentage(self):
        total, wrong = 20, 3
        questions = _questions(total)
        previous = -1
        for correct in range(0, total - wrong + 1):
            result = grade(questions, _answers(questions, correct, wrong), time_spent_seconds=0)
            assert result.percentage >= previous
            previous = result.percentage


class TestClassification:
    def test_blank_and_whitespace_are_unattempted(self):
        questions = _questions(3)
        answers = {str(questions[0].id): "", str(questions[1].id): "   ", str(questions[2].id): None}
        result = grade(questions, answers, time_spent_seconds=0)
        assert result.unattempted_count == 3
        assert set(result.outcomes.values()) == {AnswerOutcome.UNATTEMPTED}

    def test_answers_are_case_insensitive(self):
        questions = _questions(1, label="C")
        result = grade(questions, {str(questions[0].id): " c "}, time_spent_seconds=0)
        assert result.correct_count == 1

    def test_unknown_question_ids_are_ignored(self):
        questions = _questions(2)
        answers = {str(uuid.uuid4()): "A", str(questions[0].id): "A"}
        result = grade(questions, answers, time_spent_seconds=0)
        assert result.correct_count == 1
        assert result.unattempted_count == 1

    def test_empty_question_set(self):
        result = grade([], {}, time_spent_seconds=0)
        assert result.total_questions == 0
        assert result.percentage == 0
        assert result.passed is False


class TestBreakdown:
    def test_breakdown_strings(self):
        questions = _questions(10)
        result = grade(questions, _answers(questions, correct=6, wrong=2), time_spent_seconds=0)
        assert result.breakdown.correct == "6 × 1 = 6"
        assert result.breakdown.wrong == "2 × (-0.25) = -0.50"
        assert result.breakdown.unattempted == "2 × 0 = 0"
        assert result.breakdown.total == "Final Score: 5.50/10"


class TestScheme:
    def test_percentage_rounds_half_up(self):
        # 1 correct of 8 -> 12.5% -> 13
        questions = _questions(8)
        result = grade(questions, _answers(questions, correct=1, wrong=0), time_spent_seconds=0)
        assert result.percentage == 13

    def test_pass_threshold_independent_of_letter(self):
        scheme = GradingScheme(pass_threshold_percent=50)
        questions = _questions(10)
        result = ScoringEngine(scheme).grade(questions, _answers(questions, correct=5, wrong=0), 0)
        assert result.percentage == 50
        assert result.grade == "F"
        assert result.passed is True

    def test_custom_grade_table(self):
        scheme = GradingScheme(grade_thresholds=(("A", 85), ("B", 70), ("C", 50)))
        assert scheme.letter_for(86) == "A"
        assert scheme.letter_for(70) == "B"
        assert scheme.letter_for(55) == "C"
        assert scheme.letter_for(49) == "F"

    @pytest.mark.parametrize("percentage,letter", [(90, "A"), (89, "B"), (80, "B"), (70, "C"), (60, "D"), (59, "F")])
    def test_default_grade_boundaries(self, percentage, letter):
        assert GradingScheme().letter_for(percentage) == letter

    def test_grading_is_deterministic(self):
        questions = _questions(7)
        answers = _answers(questions, correct=4, wrong=2)
        assert grade(questions, answers, 100) == grade(questions, answers, 100)
