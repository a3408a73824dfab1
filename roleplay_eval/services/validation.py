from typing import Any, Dict, List

from pydantic import ValidationError

from roleplay_eval.errors import SchemaViolation
from roleplay_eval.schemas.evaluation import ScoreResult


def _format_errors(exc: ValidationError) -> List[Dict[str, str]]:
    # ("scores", "empathy") -> "scores -> empathy"
    formatted = []
    for error in exc.errors():
        field = " -> ".join(str(part) for part in error["loc"]) or "(root)"
        formatted.append({"field": field, "message": error["msg"]})
    return formatted


def validate_result(raw: Any) -> ScoreResult:
    """
    Validate parsed model output against the ScoreResult contract.

    Missing strengths/areasForImprovement default to empty lists; nothing
    else is coerced. Raises SchemaViolation listing every offending field.
    """
    try:
        return ScoreResult.model_validate(raw)
    except ValidationError as e:
        errors = _format_errors(e)
        raise SchemaViolation(
            f"Model output failed schema validation ({len(errors)} error(s))",
            errors=errors,
            raw=raw,
        ) from e
