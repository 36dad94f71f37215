"""LLM Providers - factory for provider instances."""
from typing import Any, Dict

from services.providers.base import LLMProvider


def get_provider(provider_type: str, config: Dict[str, Any]) -> LLMProvider:
    """Create an LLM provider instance.

    Args:
        provider_type: "openai" | "gemini"
        config: Dict with keys: api_key, model, base_url, timeout
    """
    if provider_type == "gemini":
        from services.providers.gemini import GeminiProvider
        return GeminiProvider(
            api_key=config.get("api_key", ""),
            model=config.get("model", ""),
            base_url=config.get("base_url", ""),
            timeout=config.get("timeout", 30.0),
        )
    elif provider_type == "openai":
        from services.providers.openai_compat import OpenAIProvider
        return OpenAIProvider(
            api_key=config.get("api_key", ""),
            model=config.get("model", ""),
            base_url=config.get("base_url", ""),
            timeout=config.get("timeout", 30.0),
        )
    else:
        raise ValueError("Unknown provider type: " + provider_type)


__all__ = ["LLMProvider", "get_provider"]
