"""Unit tests for webhook payload parsing into GenerationOutcome."""

import uuid

import pytest

from assessment_engine.engines.generation.outcome import (
    GenerationFailure,
    GenerationSuccess,
    parse_webhook,
)
from assessment_engine.kernel.errors import ValidationFailure


def _item(question="What is ATP?", options=None, label="A", **extra):
    item = {"question": question, "options": options or ["w", "x", "y", "z"], "correctLabel": label}
    item.update(extra)
    return item


class TestParseSuccess:
    def test_valid_payload(self):
        set_id = uuid.uuid4()
        parsed = parse_webhook({"setId": str(set_id), "success": True, "questions": [_item(), _item(label="d")]})

        assert parsed.set_id == set_id
        assert parsed.job_id is None
        assert isinstance(parsed.outcome, GenerationSuccess)
        assert parsed.outcome.kind == "success"
        assert [q.correct_label for q in parsed.outcome.questions] == ["A", "D"]
        assert parsed.outcome.discarded == 0

    def test_scenario_c_malformed_items_discarded(self):
        """3 valid + 2 missing correct label -> success with 3 questions, 2 discarded."""
        bad = {"question": "No label", "options": ["a", "b", "c", "d"]}
        parsed = parse_webhook({
            "setId": str(uuid.uuid4()),
            "success": True,
            "questions": [_item(), bad, _item(label="B"), bad, _item(label="C")],
        })
        assert isinstance(parsed.outcome, GenerationSuccess)
        assert len(parsed.outcome.questions) == 3
        assert parsed.outcome.discarded == 2

    @pytest.mark.parametrize(
        "item",
        [
            _item(question="   "),
            _item(options=["a", "b", "c"]),
            _item(options=["a", "b", "c", "d", "e"]),
            _item(options=["a", "", "c", "d"]),
            _item(label="E"),
            _item(label=""),
        ],
    )
    def test_invalid_items_are_discarded(self, item):
        parsed = parse_webhook({"setId": str(uuid.uuid4()), "success": True, "questions": [item, _item()]})
        assert isinstance(parsed.outcome, GenerationSuccess)
        assert len(parsed.outcome.questions) == 1
        assert parsed.outcome.discarded == 1

    def test_native_worker_field_names(self):
        set_id = uuid.uuid4()
        parsed = parse_webhook({
            "mcq_set_id": str(set_id),
            "success": True,
            "workflowId": "mcq-generation-abc-1",
            "mcqs": [{"question": "Q?", "options": ["1", "2", "3", "4"], "answer": "b"}],
        })
        assert parsed.set_id == set_id
        assert parsed.job_id == "mcq-generation-abc-1"
        assert parsed.outcome.questions[0].correct_label == "B"

    def test_text_is_stripped(self):
        parsed = parse_webhook({
            "setId": str(uuid.uuid4()),
            "success": True,
            "questions": [_item(question="  Why?  ", options=[" a ", "b", "c", "d"])],
        })
        question = parsed.outcome.questions[0]
        assert question.question == "Why?"
        assert question.options[0] == "a"


class TestParseFailure:
    def test_scenario_d_zero_valid_questions(self):
        parsed = parse_webhook({
            "setId": str(uuid.uuid4()),
            "success": True,
            "questions": [_item(label="Z"), _item(options=["only one"])],
        })
        assert isinstance(parsed.outcome, GenerationFailure)
        assert parsed.outcome.discarded == 2

    def test_worker_reported_failure(self):
        parsed = parse_webhook({"setId": str(uuid.uuid4()), "success": False, "error": "PDF is encrypted"})
        assert isinstance(parsed.outcome, GenerationFailure)
        assert parsed.outcome.reason == "PDF is encrypted"

    def test_success_without_questions(self):
        parsed = parse_webhook({"setId": str(uuid.uuid4()), "success": True})
        assert isinstance(parsed.outcome, GenerationFailure)

    def test_questions_not_a_list(self):
        parsed = parse_webhook({"setId": str(uuid.uuid4()), "success": True, "questions": "oops"})
        assert isinstance(parsed.outcome, GenerationFailure)

    def test_broken_envelope_with_set_id_becomes_failure(self):
        set_id = uuid.uuid4()
        parsed = parse_webhook({"setId": str(set_id), "success": "definitely"})
        assert parsed.set_id == set_id
        assert isinstance(parsed.outcome, GenerationFailure)
        assert "Malformed" in parsed.outcome.reason


class TestRejectedAtBoundary:
    @pytest.mark.parametrize("payload", [None, [], "text", {"success": True}, {"setId": "not-a-uuid"}])
    def test_no_usable_set_id(self, payload):
        with pytest.raises(ValidationFailure):
            parse_webhook(payload)
