from typing import Any, Dict, List, Optional


class EvaluationError(Exception):
    """
    Base class for every failure the scoring pipeline can surface.

    Attributes:
        code: stable identifier of the failure kind, e.g. "SCHEMA_VIOLATION"
        message: human readable description, safe to show to callers
        details: diagnostic data for logs; never persisted or returned
    """

    code = "EVALUATION_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(f"[{self.code}] {message}")

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.code, "message": self.message}


class InvalidInput(EvaluationError):
    """Caller supplied malformed data (empty transcript, bad limit, ...)."""

    code = "INVALID_INPUT"


class CompletionFailed(EvaluationError):
    """The completion model call errored or timed out."""

    code = "COMPLETION_FAILED"


class MalformedOutput(EvaluationError):
    """The model response could not be parsed as JSON."""

    code = "MALFORMED_OUTPUT"

    def __init__(self, message: str, raw_text: str):
        super().__init__(message, details={"raw_text": raw_text})
        self.raw_text = raw_text


class SchemaViolation(EvaluationError):
    """Parsed model output did not satisfy the ScoreResult contract."""

    code = "SCHEMA_VIOLATION"

    def __init__(self, message: str, errors: List[Dict[str, str]], raw: Any = None):
        super().__init__(message, details={"errors": errors, "raw": raw})
        self.errors = errors
        self.raw = raw


class StorageFailed(EvaluationError):
    """The persistence layer failed on read or write."""

    code = "STORAGE_FAILED"


class NotFound(EvaluationError):
    code = "NOT_FOUND"
