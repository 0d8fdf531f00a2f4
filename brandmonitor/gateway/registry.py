"""Adapter lookup by provider name."""

from __future__ import annotations

import logging

from brandmonitor.core.config import Settings, settings as default_settings
from brandmonitor.core.exceptions import ConfigurationError
from brandmonitor.gateway.base import BaseProviderAdapter, ClientRegistry
from brandmonitor.gateway.llm_anthropic import AnthropicAdapter
from brandmonitor.gateway.llm_openai import OpenAiAdapter
from brandmonitor.gateway.llm_perplexity import PerplexityAdapter
from brandmonitor.gateway.types import normalize_provider

logger = logging.getLogger(__name__)

# provider name → (adapter class, api_key setting, model setting)
_PROVIDER_MAP: dict[str, tuple[type[BaseProviderAdapter], str, str]] = {
    "openai": (OpenAiAdapter, "openai_api_key", "openai_model"),
    "anthropic": (AnthropicAdapter, "anthropic_api_key", "anthropic_model"),
    "perplexity": (PerplexityAdapter, "perplexity_api_key", "perplexity_model"),
}


def available_providers() -> list[str]:
    return list(_PROVIDER_MAP)


def build_adapter(
    name: str,
    clients: ClientRegistry,
    config: Settings | None = None,
) -> BaseProviderAdapter:
    """Construct the adapter for *name*.

    Raises ConfigurationError for an unknown provider or a missing API key.
    """
    config = config or default_settings
    key = normalize_provider(name)
    entry = _PROVIDER_MAP.get(key)
    if entry is None:
        raise ConfigurationError(f"Unknown LLM provider '{name}'")

    adapter_cls, api_key_field, model_field = entry
    return adapter_cls(
        api_key=getattr(config, api_key_field, ""),
        client=clients.get(key),
        model=getattr(config, model_field, None),
        max_tokens=config.provider_max_tokens,
        temperature=config.provider_temperature,
        timeout=config.provider_timeout,
    )
