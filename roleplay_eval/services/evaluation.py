import json
import time
from typing import Optional

from roleplay_eval import config
from roleplay_eval.agents.prompts.prompt_templates import build_prompt
from roleplay_eval.clients.completion_client import CompletionClient
from roleplay_eval.clients.postgres_client import EvaluationStore
from roleplay_eval.errors import (
    CompletionFailed,
    InvalidInput,
    MalformedOutput,
    SchemaViolation,
    StorageFailed,
)
from roleplay_eval.logging_config import get_logger
from roleplay_eval.schemas.evaluation import EvaluationRecord, NewEvaluation
from roleplay_eval.services.validation import validate_result

logger = get_logger(__name__)


class EvaluationService:
    """
    Scores one transcript per call: prompt -> completion -> JSON parse ->
    validation -> store write.

    Each step either succeeds or raises its own EvaluationError subclass.
    Nothing is retried and nothing is written unless validation passed.
    """

    def __init__(
        self,
        completion_client: CompletionClient,
        store: EvaluationStore,
        max_chars: int = config.MAX_ROLEPLAY_CHARS,
    ):
        self.completion_client = completion_client
        self.store = store
        self.max_chars = max_chars

    def evaluate(self, transcript_text: str, user_id: Optional[str] = None) -> EvaluationRecord:
        if not isinstance(transcript_text, str) or not transcript_text.strip():
            raise InvalidInput("roleplay_text is required and must be a non-empty string")

        roleplay_text = transcript_text[: self.max_chars]
        if len(roleplay_text) < len(transcript_text):
            logger.info(
                "transcript_truncated",
                original_chars=len(transcript_text),
                kept_chars=len(roleplay_text),
            )

        prompt = build_prompt(roleplay_text)
        model_name = self.completion_client.model_name

        start = time.time()
        raw_text = self._complete(prompt, model_name)

        try:
            raw_object = json.loads(raw_text)
        except json.JSONDecodeError as e:
            logger.warning("model_output_not_json", model=model_name, raw_text=raw_text, error=str(e))
            raise MalformedOutput("Model did not return valid JSON", raw_text=raw_text) from e

        try:
            result = validate_result(raw_object)
        except SchemaViolation as e:
            logger.warning("model_output_schema_violation", model=model_name, errors=e.errors, raw=raw_object)
            raise

        new = NewEvaluation(
            user_id=user_id,
            roleplay_text=roleplay_text,
            result=result,
            model_name=model_name,
        )
        try:
            record = self.store.create_evaluation(new)
        except StorageFailed:
            raise
        except Exception as e:
            logger.error("evaluation_store_failed", error_type=type(e).__name__, error=str(e))
            raise StorageFailed("Failed to save evaluation") from e

        logger.info(
            "evaluation_created",
            evaluation_id=record.id,
            model=model_name,
            overall_score=result.overall_score,
            duration_s=round(time.time() - start, 2),
        )
        return record

    def _complete(self, prompt: str, model_name: str) -> str:
        try:
            raw_text = self.completion_client.complete(prompt)
        except CompletionFailed:
            raise
        except Exception as e:
            # Any client may be plugged in; whatever it raises is a failed call
            logger.error("completion_failed", model=model_name, error_type=type(e).__name__, error=str(e))
            raise CompletionFailed(f"Completion call to {model_name} failed") from e

        if not isinstance(raw_text, str):
            raise MalformedOutput("Model returned non-text output", raw_text=repr(raw_text))
        return raw_text
