"""Anthropic messages API adapter."""

import logging

from brandmonitor.gateway.base import BaseProviderAdapter
from brandmonitor.gateway.types import Provider, ProviderReply

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
API_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"


class AnthropicAdapter(BaseProviderAdapter):
    """Anthropic Messages adapter. The system prompt is a top-level field."""

    provider = Provider.ANTHROPIC.value
    default_model = DEFAULT_MODEL
    api_url = API_URL

    def headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": API_VERSION,
            "Content-Type": "application/json",
        }

    def build_payload(self, prompt, system_prompt, *, model, max_tokens, temperature) -> dict:
        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt
        return payload

    def parse_response(self, data: dict, model: str) -> ProviderReply:
        # Concatenate all text blocks; tool/thinking blocks are ignored
        parts = [block.get("text", "") for block in data.get("content", []) or [] if block.get("type") == "text"]
        usage = data.get("usage", {})
        return ProviderReply(
            text="".join(parts),
            model=data.get("model", model),
            provider=self.provider,
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
        )
