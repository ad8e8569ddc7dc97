"""
Factory: return the LLMService named by settings.LLM_PROVIDER.

A new vendor only needs:
  1. a XxxService(BaseLLMService) class in services.py
  2. one line in _build_registry()
  No analysis or orchestrator code changes.
"""

from django.conf import settings

from .base import BaseLLMService


def _build_registry() -> dict[str, type[BaseLLMService]]:
    # deferred import keeps vendor SDKs out of Django startup
    from .services import ClaudeService, GeminiService, OpenAIService

    return {
        "anthropic": ClaudeService,
        "openai":    OpenAIService,
        "gemini":    GeminiService,
    }


def get_llm_service() -> BaseLLMService:
    """
    Read the vendor from settings.LLM_PROVIDER and return its service.

    settings.LLM_PROVIDER comes from the LLM_PROVIDER env var (default
    "anthropic"). Switching vendors is a config change only.

    Raises:
        ValueError: unknown LLM_PROVIDER
    """
    provider = getattr(settings, "LLM_PROVIDER", "anthropic")
    registry = _build_registry()
    service_cls = registry.get(provider)

    if service_cls is None:
        raise ValueError(
            f"Unknown LLM_PROVIDER: {provider!r}. "
            f"Known providers: {list(registry.keys())}"
        )

    return service_cls()
