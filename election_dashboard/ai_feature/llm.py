import asyncio
import logging
from typing import Any, Optional

from fastapi import Request
from google import genai
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from election_dashboard.core.config import Settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """The model could not produce text within the allowed attempts."""


class GeminiClient:
    """
    Thin async wrapper around the Gemini text API.

    Every call gets a timeout and a bounded number of attempts with
    exponential backoff between them. The SDK client is created on first
    use so the app can start without an API key.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout: float = 30.0,
        max_attempts: int = 2,
        backoff: float = 1.0,
        client: Optional[Any] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff
        self._client = client

    @classmethod
    def from_settings(cls, config: Settings) -> "GeminiClient":
        return cls(
            api_key=config.GEMINI_API_KEY,
            model=config.GEMINI_MODEL,
            timeout=config.LLM_TIMEOUT_SECONDS,
            max_attempts=config.LLM_MAX_ATTEMPTS,
            backoff=config.LLM_RETRY_BACKOFF_SECONDS,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise LLMError("GEMINI_API_KEY is not configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _log_retry(self, retry_state: RetryCallState) -> None:
        logger.warning(
            "Gemini call failed (attempt %s/%s): %s",
            retry_state.attempt_number,
            self.max_attempts,
            retry_state.outcome.exception(),
        )

    async def _generate_once(self, client: Any, prompt: str, timeout: float) -> str:
        response = await asyncio.wait_for(
            client.aio.models.generate_content(model=self.model, contents=prompt),
            timeout=timeout,
        )
        text = response.text
        if not text or not text.strip():
            raise LLMError("Model returned an empty response")
        return text

    async def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        """
        Send one prompt and return the model's text.

        Args:
            prompt: Full prompt text
            timeout: Seconds allowed per attempt (defaults to the client's)

        Raises:
            LLMError: every attempt failed, timed out or came back empty
        """
        timeout = self.timeout if timeout is None else timeout
        client = self.client

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, max=10),
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._generate_once(client, prompt, timeout)
        except asyncio.TimeoutError as error:
            raise LLMError(f"Model call timed out after {timeout}s") from error
        except LLMError:
            raise
        except Exception as error:
            # SDK and transport errors all end up here
            raise LLMError(f"Model call failed: {error}") from error

        raise LLMError("Model call made no attempts")


# Shared client built in the app lifespan
def get_llm(request: Request) -> GeminiClient:
    return request.app.state.llm
