"""LLM provider gateway.

One adapter per vendor protocol, all exposing ``send(prompt, system_prompt, params)``:
  - OpenAI: chat completions
  - Anthropic: messages API
  - Perplexity: OpenAI-compatible with native citations

HTTP clients are owned by a ClientRegistry created once per process and
injected into adapters.
"""
