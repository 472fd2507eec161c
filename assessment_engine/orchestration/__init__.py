"""Orchestration layer - QuestionSet lifecycle transitions."""

from assessment_engine.orchestration.state_machine import (
    StateMachine,
    can_transition,
    valid_transitions,
)
from assessment_engine.kernel.models.question_set import QuestionSetStatus

__all__ = [
    "StateMachine",
    "QuestionSetStatus",
    "can_transition",
    "valid_transitions",
]
