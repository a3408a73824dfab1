import time
from typing import Optional, Protocol

from langchain_openai import ChatOpenAI
from openai import OpenAIError

from roleplay_eval import config
from roleplay_eval.errors import CompletionFailed
from roleplay_eval.logging_config import get_logger

logger = get_logger(__name__)


class CompletionClient(Protocol):
    """Prompt in, text out. Raises on transport or provider failure."""

    model_name: str

    def complete(self, prompt: str) -> str:
        ...


class ChatCompletionClient:
    """
    CompletionClient backed by any OpenAI-compatible chat endpoint.
    Makes exactly one request per call; retries are the caller's decision.
    """

    def __init__(
        self,
        model_name: str = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = None,
    ):
        self.model_name = model_name or config.LLM_MODEL
        self.llm = ChatOpenAI(
            model=self.model_name,
            base_url=base_url or config.LLM_BASE_URL,
            api_key=api_key or config.LLM_API_KEY,
            timeout=timeout or config.LLM_TIMEOUT_SECONDS,
            max_retries=0,
            temperature=0,
        )

    def complete(self, prompt: str) -> str:
        start = time.time()
        try:
            response = self.llm.invoke(prompt)
        except OpenAIError as e:
            logger.warning(
                "llm_call_failed",
                model=self.model_name,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise CompletionFailed(f"Completion call to {self.model_name} failed") from e
        duration = time.time() - start

        logger.info("llm_call_completed", model=self.model_name, latency_s=round(duration, 2))

        if not isinstance(response.content, str):
            raise CompletionFailed(
                f"Completion from {self.model_name} was not plain text",
                details={"content_type": type(response.content).__name__},
            )
        return response.content
