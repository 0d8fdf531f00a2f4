"""DTOs for the provider gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Provider(str, Enum):
    """Supported LLM providers."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    PERPLEXITY = "perplexity"


# Alternative names accepted in workspace configuration
PROVIDER_ALIASES = {
    "chatgpt": Provider.OPENAI.value,
    "claude": Provider.ANTHROPIC.value,
}


def normalize_provider(name: str) -> str:
    key = (name or "").strip().lower()
    return PROVIDER_ALIASES.get(key, key)


@dataclass(frozen=True)
class ModelParams:
    """Per-call overrides. Unset fields fall back to the adapter defaults."""

    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    timeout: float | None = None


@dataclass
class ProviderReply:
    """Normalized answer from any provider."""

    text: str
    model: str
    provider: str
    input_tokens: int = 0
    output_tokens: int = 0
    native_citations: list[str] = field(default_factory=list)
    latency_ms: int = 0

    @property
    def tokens(self) -> int:
        return self.input_tokens + self.output_tokens
