"""
Webhook boundary: turns the worker's loosely-typed JSON into a closed
GenerationOutcome before any business logic sees it.

    GenerationOutcome = GenerationSuccess(questions) | GenerationFailure(reason)

Accepts both the documented field names (setId, questions, correctLabel) and
the worker's native spelling (mcq_set_id, mcqs, answer).
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from assessment_engine.kernel.errors import ValidationFailure
from assessment_engine.kernel.models.question_set import OPTION_LABELS

_SET_ID_ALIASES = AliasChoices("setId", "set_id", "mcq_set_id")


class CandidateQuestion(BaseModel):
    """One generated item; invalid items are discarded, not repaired."""

    model_config = ConfigDict(extra="ignore")

    question: str = Field(validation_alias=AliasChoices("question", "stem", "text"))
    options: List[str]
    correct_label: str = Field(validation_alias=AliasChoices("correctLabel", "correct_label", "answer"))

    @field_validator("question")
    @classmethod
    def _stem_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("question text is empty")
        return value

    @field_validator("options")
    @classmethod
    def _four_options(cls, value: List[str]) -> List[str]:
        if len(value) != len(OPTION_LABELS):
            raise ValueError(f"expected {len(OPTION_LABELS)} options, got {len(value)}")
        cleaned = [option.strip() for option in value]
        if not all(cleaned):
            raise ValueError("option text is empty")
        return cleaned

    @field_validator("correct_label")
    @classmethod
    def _label_in_range(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in OPTION_LABELS:
            raise ValueError(f"correct label must be one of {', '.join(OPTION_LABELS)}")
        return value


class _WebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    set_id: uuid.UUID = Field(validation_alias=_SET_ID_ALIASES)
    job_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("jobId", "job_id", "workflowId", "workflow_id"),
    )
    success: bool = False
    questions: Optional[Any] = Field(default=None, validation_alias=AliasChoices("questions", "mcqs"))
    error: Optional[str] = None


class _SetIdOnly(BaseModel):
    model_config = ConfigDict(extra="ignore")

    set_id: uuid.UUID = Field(validation_alias=_SET_ID_ALIASES)


@dataclass(frozen=True)
class GenerationSuccess:
    questions: List[CandidateQuestion]
    discarded: int = 0
    kind: Literal["success"] = field(default="success", init=False)


@dataclass(frozen=True)
class GenerationFailure:
    reason: str
    discarded: int = 0
    kind: Literal["failure"] = field(default="failure", init=False)


GenerationOutcome = Union[GenerationSuccess, GenerationFailure]


@dataclass(frozen=True)
class ParsedWebhook:
    set_id: uuid.UUID
    job_id: Optional[str]
    outcome: GenerationOutcome


def parse_webhook(raw: Any) -> ParsedWebhook:
    """
    Parse a webhook body.

    A payload whose envelope is broken but still names a set becomes a
    GenerationFailure for that set. Only a payload with no usable set id is
    rejected outright.

    Raises:
        ValidationFailure: if the set id is missing or not a UUID
    """
    if not isinstance(raw, dict):
        raise ValidationFailure("Webhook payload must be a JSON object")

    try:
        envelope = _WebhookEnvelope.model_validate(raw)
    except ValidationError as exc:
        try:
            set_id = _SetIdOnly.model_validate(raw).set_id
        except ValidationError:
            raise ValidationFailure("Webhook payload has no valid set id") from exc
        return ParsedWebhook(
            set_id=set_id,
            job_id=None,
            outcome=GenerationFailure(reason=f"Malformed webhook payload ({exc.error_count()} error(s))"),
        )

    return ParsedWebhook(
        set_id=envelope.set_id,
        job_id=envelope.job_id,
        outcome=_outcome_from(envelope),
    )


def _outcome_from(envelope: _WebhookEnvelope) -> GenerationOutcome:
    if not envelope.success:
        return GenerationFailure(reason=envelope.error or "Generation failed")
    if not isinstance(envelope.questions, list):
        return GenerationFailure(reason="Malformed webhook payload (questions missing)")

    valid: List[CandidateQuestion] = []
    discarded = 0
    for item in envelope.questions:
        try:
            valid.append(CandidateQuestion.model_validate(item))
        except ValidationError:
            discarded += 1

    if not valid:
        return GenerationFailure(reason="No valid questions in generated data", discarded=discarded)
    return GenerationSuccess(questions=valid, discarded=discarded)
