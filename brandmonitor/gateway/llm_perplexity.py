"""Perplexity adapter (OpenAI-compatible API with native citations)."""

import logging

from brandmonitor.gateway.llm_openai import OpenAiAdapter
from brandmonitor.gateway.types import Provider, ProviderReply

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sonar"
API_URL = "https://api.perplexity.ai/chat/completions"


class PerplexityAdapter(OpenAiAdapter):
    """Perplexity chat completions adapter.

    Perplexity returns native citations as a top-level array, which are
    carried on the reply and merged with in-text citations during analysis.
    """

    provider = Provider.PERPLEXITY.value
    default_model = DEFAULT_MODEL
    api_url = API_URL

    def parse_response(self, data: dict, model: str) -> ProviderReply:
        reply = super().parse_response(data, model)
        reply.native_citations = [u for u in data.get("citations", []) or [] if isinstance(u, str)]
        return reply
