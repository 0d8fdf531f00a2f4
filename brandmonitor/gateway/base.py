"""Provider adapter base class and the shared HTTP client registry."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

import httpx

from brandmonitor.core.exceptions import ConfigurationError, EmptyResponseError, ProviderError
from brandmonitor.core.metrics import PROVIDER_CALLS, PROVIDER_LATENCY
from brandmonitor.gateway.types import ModelParams, ProviderReply

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_MAX_TOKENS = 800
DEFAULT_TEMPERATURE = 0.3


class ClientRegistry:
    """Owns one ``httpx.AsyncClient`` per provider for the life of the process.

    Created at startup (FastAPI lifespan or Celery task) and passed to the
    adapters; ``aclose()`` releases the connection pools.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout
        self._clients: dict[str, httpx.AsyncClient] = {}

    def get(self, provider: str) -> httpx.AsyncClient:
        client = self._clients.get(provider)
        if client is None or client.is_closed:
            client = httpx.AsyncClient(timeout=self.timeout)
            self._clients[provider] = client
        return client

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()

    async def __aenter__(self) -> ClientRegistry:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
        error = body.get("error", {}) if isinstance(body, dict) else {}
        if isinstance(error, dict):
            return error.get("message", resp.text[:500])
        return str(error)[:500]
    except Exception:
        return resp.text[:500]


class BaseProviderAdapter(ABC):
    """Base class for all provider adapters.

    Subclasses build the vendor payload and parse the vendor response; the
    base class handles transport, status codes and metrics.
    """

    provider: str
    default_model: str
    api_url: str

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not api_key:
            raise ConfigurationError(f"API key for provider '{self.provider}' is not configured")
        self.api_key = api_key
        self.client = client
        self.model = model or self.default_model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

    async def send(self, prompt: str, system_prompt: str, params: ModelParams | None = None) -> ProviderReply:
        """Send one prompt and return the normalized reply.

        Raises ProviderError on transport failure or non-2xx status and
        EmptyResponseError when the answer has no text.
        """
        params = params or ModelParams()
        model = params.model or self.model
        payload = self.build_payload(
            prompt,
            system_prompt,
            model=model,
            max_tokens=params.max_tokens or self.max_tokens,
            temperature=self.temperature if params.temperature is None else params.temperature,
        )
        timeout = params.timeout or self.timeout

        start = time.monotonic()
        try:
            resp = await self.client.post(self.api_url, json=payload, headers=self.headers(), timeout=timeout)
        except httpx.HTTPError as e:
            PROVIDER_CALLS.labels(provider=self.provider, outcome="error").inc()
            logger.warning("%s transport error for model=%s: %s", self.provider, model, e)
            raise ProviderError(self.provider, 0, f"{type(e).__name__}: {e}") from e
        finally:
            PROVIDER_LATENCY.labels(provider=self.provider).observe(time.monotonic() - start)

        if resp.status_code >= 300:
            message = _error_message(resp)
            PROVIDER_CALLS.labels(provider=self.provider, outcome="error").inc()
            logger.error("%s API %d for model=%s: %s", self.provider, resp.status_code, model, message)
            raise ProviderError(self.provider, resp.status_code, message)

        try:
            data = resp.json()
        except ValueError as e:
            PROVIDER_CALLS.labels(provider=self.provider, outcome="error").inc()
            raise ProviderError(self.provider, resp.status_code, f"invalid JSON: {resp.text[:200]}") from e

        reply = self.parse_response(data, model)
        reply.latency_ms = int((time.monotonic() - start) * 1000)
        if not reply.text or not reply.text.strip():
            PROVIDER_CALLS.labels(provider=self.provider, outcome="empty").inc()
            raise EmptyResponseError(self.provider, resp.status_code)

        PROVIDER_CALLS.labels(provider=self.provider, outcome="ok").inc()
        return reply

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @abstractmethod
    def build_payload(
        self,
        prompt: str,
        system_prompt: str,
        *,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> dict: ...

    @abstractmethod
    def parse_response(self, data: dict, model: str) -> ProviderReply: ...
