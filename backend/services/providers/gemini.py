"""
Gemini Provider - calls the Google Generative Language REST API via httpx.

Messages are flattened into one user prompt of "ROLE:\\ncontent" blocks,
since generateContent has no system role in the v1beta shape used here.
"""
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from errors import ExternalServiceError, LLMError
from logging_config import log_llm
from services.providers.base import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash-latest"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def build_prompt(messages: List[Dict[str, str]]) -> str:
    """Combine chat messages into a single Gemini prompt."""
    blocks = []
    for msg in messages:
        role = msg.get("role") or "user"
        blocks.append(f"{role.upper()}:\n{msg.get('content', '')}")
    return "\n\n".join(blocks)


def extract_text(data: Dict[str, Any]) -> str:
    """Join the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "\n".join(part.get("text") or "" for part in parts).strip()


def _status_message(status: int) -> str:
    if status == 429:
        return "Rate limit exceeded. Please wait a moment before trying again."
    if status == 401:
        return "API authentication failed. Please check your API key."
    if status >= 500:
        return "Gemini service is temporarily unavailable. Please try again later."
    return f"Gemini API error: {status}"


class GeminiProvider(LLMProvider):
    """Provider that calls Google Gemini generateContent."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "",
        base_url: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._model_name = model or DEFAULT_MODEL
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider_name(self) -> str:
        return "Gemini"

    @property
    def model(self) -> str:
        return self._model_name

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            if not self._api_key:
                raise LLMError("Gemini API key not configured", error_type="config", model=self._model_name)
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
            logger.info("Gemini provider initialized: %s", self._model_name)
        return self._client

    async def generate(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 300,
        temperature: float = 0.7,
    ) -> str:
        client = self._get_client()

        url = f"{self._base_url}/models/{self._model_name}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(messages)}]}],
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }

        log_llm(logger, "start", self.provider_name, self._model_name)
        start = time.time()
        try:
            response = await client.post(url, params={"key": self._api_key}, json=payload)
        except httpx.TimeoutException as e:
            raise LLMError(
                "Gemini request timed out", details=str(e), model=self._model_name, error_type="timeout"
            ) from e
        except httpx.RequestError as e:
            raise ExternalServiceError("Could not reach Gemini", details=str(e), service="gemini") from e

        if response.status_code >= 400:
            raise ExternalServiceError(
                _status_message(response.status_code),
                details=response.text[:200],
                service="gemini",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LLMError("Gemini returned a non-JSON body", error_type="invalid", model=self._model_name) from e

        text = extract_text(data)
        if not text:
            raise LLMError("Empty response from Gemini", error_type="invalid", model=self._model_name)

        log_llm(logger, "end", self.provider_name, self._model_name, time.time() - start)
        return text

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
