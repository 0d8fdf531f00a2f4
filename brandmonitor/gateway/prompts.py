"""System prompt shared by every provider.

The prompt carries region and language only. The brand being measured is
never included, so answers are not biased towards it.
"""

SYSTEM_PROMPT_TEMPLATE = """You are an AI assistant providing helpful, accurate answers to user questions.

Context:
- Target region: {region}
- Target language: {language}

Provide a natural, helpful answer in {language}, relevant to {region}. If you mention specific brands, products, or services, include relevant citations when appropriate.

Be objective and comprehensive in your answer. Mention the most relevant and popular options available in {region}."""

DEFAULT_REGION = "United States"
DEFAULT_LANGUAGE = "English"


def build_system_prompt(region: str | None = None, language: str | None = None) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        region=region or DEFAULT_REGION,
        language=language or DEFAULT_LANGUAGE,
    )
