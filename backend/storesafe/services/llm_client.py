"""
LLM Client
==========

Async client for an OpenAI-compatible chat-completions API.

Timeouts, 5xx and 429 responses are retried up to `LLM_MAX_RETRIES`
attempts; other HTTP errors fail immediately.
"""

import json
import re
from typing import Any, Optional

import httpx
from httpx import HTTPError, HTTPStatusError, TimeoutException

from storesafe.core.config import settings
from storesafe.core.exceptions import ExternalServiceError, LLMNotConfiguredError
from storesafe.core.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "LLM"
FENCE_RE = re.compile(r"```(?:json|html)?", re.IGNORECASE)


def strip_code_fences(content: str) -> str:
    return FENCE_RE.sub("", content).strip()


def _retryable(error: HTTPStatusError) -> bool:
    status_code = error.response.status_code
    return status_code == 429 or status_code >= 500


class LLMClient:

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self.max_retries = max_retries or settings.LLM_MAX_RETRIES
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    async def complete(
        self,
        system: str,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send one system + user exchange and return the reply text.

        Raises:
            LLMNotConfiguredError: No API key configured
            ExternalServiceError: The API failed or kept failing after retries
        """
        if not self.api_key:
            raise LLMNotConfiguredError()

        body: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
        }
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        headers = {"Authorization": f"Bearer {self.api_key}"}

        attempt = 0
        last_error = "no attempts made"

        while attempt < self.max_retries:
            attempt += 1
            logger.info(
                "LLM request attempt",
                extra={"attempt": attempt, "model": self.model},
            )
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(self.endpoint, json=body, headers=headers)
                    response.raise_for_status()

                data = response.json()
                logger.info("LLM request successful", extra={"attempt": attempt})
                choices = data.get("choices") or [{}]
                return choices[0].get("message", {}).get("content") or ""

            except TimeoutException:
                last_error = "timeout"
                logger.warning("LLM timeout", extra={"attempt": attempt})

            except HTTPStatusError as e:
                last_error = f"HTTP {e.response.status_code}"
                logger.error(
                    "LLM HTTP error",
                    extra={"attempt": attempt, "status_code": e.response.status_code},
                )
                if not _retryable(e):
                    raise ExternalServiceError(SERVICE_NAME, last_error)

            except HTTPError as e:
                last_error = str(e)
                logger.error("LLM transport error", extra={"attempt": attempt, "error": last_error})

        logger.critical("LLM failed after retries", extra={"attempts": attempt})
        raise ExternalServiceError(SERVICE_NAME, last_error)

    async def complete_json(
        self,
        system: str,
        prompt: str,
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
    ) -> Any:
        """
        Like `complete` but parses the reply as JSON after removing
        markdown code fences.

        Raises:
            ExternalServiceError: The reply is not valid JSON
        """
        content = await self.complete(system, prompt, temperature=temperature, max_tokens=max_tokens)
        try:
            return json.loads(strip_code_fences(content) or "{}")
        except json.JSONDecodeError as e:
            logger.error("LLM returned invalid JSON", extra={"error": str(e)})
            raise ExternalServiceError(SERVICE_NAME, "invalid JSON response")


def get_llm_client() -> LLMClient:
    """FastAPI dependency; overridden in tests."""
    return LLMClient()
