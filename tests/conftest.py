import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from roleplay_eval.schemas.evaluation import EvaluationRecord, NewEvaluation, ScoreResult


def score_payload(overall=8, empathy=7, clarity=9, product_knowledge=6, **feedback):
    """Model output in wire format (camelCase)."""
    fb = {
        "summary": "Warm opening, clear pricing explanation.",
        "strengths": ["Acknowledged the customer's frustration"],
        "areasForImprovement": ["Confirm next steps before closing"],
    }
    fb.update(feedback)
    return {
        "overallScore": overall,
        "scores": {
            "empathy": empathy,
            "clarity": clarity,
            "productKnowledge": product_knowledge,
        },
        "feedback": fb,
    }


def make_record(record_id, created_at, overall=8, empathy=7, clarity=9, product_knowledge=6, user_id=None):
    return EvaluationRecord(
        id=record_id,
        user_id=user_id,
        roleplay_text="Rep: Hi, how can I help?",
        result=ScoreResult.model_validate(
            score_payload(overall, empathy, clarity, product_knowledge)
        ),
        model_name="fake-model",
        created_at=created_at,
    )


class FakeCompletionClient:
    """Returns canned responses in order; an Exception instance is raised instead."""

    def __init__(self, *responses, model_name="fake-model"):
        self.model_name = model_name
        self.responses = list(responses)
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class InMemoryStore:
    """EvaluationStore test double with a deterministic clock."""

    def __init__(self, start=datetime(2025, 11, 23, 14, 0, tzinfo=timezone.utc), fail_with=None):
        self.records: List[EvaluationRecord] = []
        self.writes = 0
        self.queries = []
        self._clock = start
        self.fail_with = fail_with

    def create_evaluation(self, new: NewEvaluation) -> EvaluationRecord:
        self.writes += 1
        if self.fail_with:
            raise self.fail_with
        self._clock += timedelta(minutes=1)
        record = EvaluationRecord(
            id=str(uuid.uuid4()),
            created_at=self._clock,
            user_id=new.user_id,
            roleplay_text=new.roleplay_text,
            result=new.result,
            model_name=new.model_name,
        )
        self.records.append(record)
        return record

    def find_evaluations(self, user_id: Optional[str], limit: int) -> List[EvaluationRecord]:
        self.queries.append({"user_id": user_id, "limit": limit})
        if self.fail_with:
            raise self.fail_with
        matching = [r for r in self.records if not user_id or r.user_id == user_id]
        matching.sort(key=lambda r: r.created_at, reverse=True)
        return matching[:limit]

    def find_evaluation_by_id(self, evaluation_id: str) -> Optional[EvaluationRecord]:
        if self.fail_with:
            raise self.fail_with
        for record in self.records:
            if record.id == evaluation_id:
                return record
        return None


@pytest.fixture
def valid_output():
    return json.dumps(score_payload())


@pytest.fixture
def store():
    return InMemoryStore()
