from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictStr,
)
from pydantic.alias_generators import to_camel


def _reject_bool(value):
    # bool is an int subclass; a JSON true/false is never a score
    if isinstance(value, bool):
        raise ValueError("Input should be a number, not a boolean")
    return value


Score = Annotated[
    float,
    BeforeValidator(_reject_bool),
    Field(ge=0, le=10, strict=True, allow_inf_nan=False),
]


# ==================================================
# Score Result (validated model output)
# ==================================================
class _Contract(BaseModel):
    """
    Shape the completion model must emit. Keys are camelCase on the wire,
    snake_case in Python. Unknown keys are ignored.
    """

    model_config = ConfigDict(alias_generator=to_camel, frozen=True, extra="ignore")


class Scores(_Contract):
    empathy: Score
    clarity: Score
    product_knowledge: Score


class Feedback(_Contract):
    summary: StrictStr = Field(min_length=1)
    strengths: List[StrictStr] = Field(default_factory=list)
    areas_for_improvement: List[StrictStr] = Field(default_factory=list)


class ScoreResult(_Contract):
    overall_score: Score
    scores: Scores
    feedback: Feedback


# ==================================================
# Persisted Evaluation
# ==================================================
class NewEvaluation(BaseModel):
    """An evaluation that passed validation but has not been stored yet."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        protected_namespaces=(),
    )

    user_id: Optional[str] = None
    roleplay_text: str
    result: ScoreResult
    model_name: str


class EvaluationRecord(NewEvaluation):
    """A stored evaluation. id and created_at are assigned by the store."""

    id: str
    created_at: datetime
