"""OpenAI chat completions adapter."""

import logging

from brandmonitor.gateway.base import BaseProviderAdapter
from brandmonitor.gateway.types import Provider, ProviderReply

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
API_URL = "https://api.openai.com/v1/chat/completions"


class OpenAiAdapter(BaseProviderAdapter):
    """OpenAI Chat Completions adapter."""

    provider = Provider.OPENAI.value
    default_model = DEFAULT_MODEL
    api_url = API_URL

    def build_payload(self, prompt, system_prompt, *, model, max_tokens, temperature) -> dict:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def parse_response(self, data: dict, model: str) -> ProviderReply:
        choices = data.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content") or ""

        usage = data.get("usage", {})
        return ProviderReply(
            text=text,
            model=data.get("model", model),
            provider=self.provider,
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
        )
