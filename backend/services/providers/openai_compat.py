"""
OpenAI-Compatible Provider - wraps the async OpenAI SDK with configurable base_url.

Covers OpenAI and any OpenAI-compatible chat-completions endpoint.
SDK-level retries are disabled; the request queue owns retrying.
"""
import logging
import time
from typing import Dict, List, Optional

import openai

from errors import ExternalServiceError, LLMError
from logging_config import log_llm
from services.providers.base import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-3.5-turbo"


def _status_message(status: int) -> str:
    if status == 429:
        return "Rate limit exceeded. Please wait a moment before trying again."
    if status == 401:
        return "API authentication failed. Please check your API key."
    if status >= 500:
        return "OpenAI service is temporarily unavailable. Please try again later."
    return f"API request failed: {status}"


class OpenAIProvider(LLMProvider):
    """Provider for OpenAI-compatible APIs."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "",
        base_url: str = "",
        timeout: float = 30.0,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        self._api_key = api_key
        self._model_name = model or DEFAULT_MODEL
        self._base_url = base_url or None  # None = default OpenAI endpoint
        self._timeout = timeout
        self._client = client

    @property
    def provider_name(self) -> str:
        return "OpenAI"

    @property
    def model(self) -> str:
        return self._model_name

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise LLMError("OpenAI API key not configured", error_type="config", model=self._model_name)

            kwargs = {"api_key": self._api_key, "max_retries": 0, "timeout": self._timeout}
            if self._base_url:
                kwargs["base_url"] = self._base_url
            self._client = openai.AsyncOpenAI(**kwargs)
            logger.info("OpenAI provider initialized: %s", self._model_name)
        return self._client

    async def generate(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 300,
        temperature: float = 0.7,
    ) -> str:
        client = self._get_client()

        log_llm(logger, "start", self.provider_name, self._model_name)
        start = time.time()
        try:
            response = await client.chat.completions.create(
                model=self._model_name,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APIStatusError as e:
            raise ExternalServiceError(
                _status_message(e.status_code),
                details=str(e),
                service="openai",
                status_code=e.status_code,
            ) from e
        except openai.APITimeoutError as e:
            raise LLMError(
                "OpenAI request timed out", details=str(e), model=self._model_name, error_type="timeout"
            ) from e
        except openai.APIConnectionError as e:
            raise ExternalServiceError("Could not reach OpenAI", details=str(e), service="openai") from e

        text = ""
        if response.choices:
            text = (response.choices[0].message.content or "").strip()
        if not text:
            raise LLMError("Empty response from OpenAI", error_type="invalid", model=self._model_name)

        log_llm(logger, "end", self.provider_name, self._model_name, time.time() - start)
        return text

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
