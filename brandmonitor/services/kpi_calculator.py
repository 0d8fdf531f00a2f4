"""KPI calculator: samples one provider several times for one prompt."""

from __future__ import annotations

import asyncio
import logging
import uuid

import httpx

from brandmonitor.analysis.embeddings import similarity
from brandmonitor.analysis.pipeline import analyze_sample
from brandmonitor.analysis.types import BrandContext
from brandmonitor.core.exceptions import SamplingError
from brandmonitor.gateway.base import BaseProviderAdapter
from brandmonitor.gateway.prompts import DEFAULT_LANGUAGE, DEFAULT_REGION, build_system_prompt
from brandmonitor.services.types import PromptKPIResult

logger = logging.getLogger(__name__)

DEFAULT_NUM_SAMPLES = 3
DEFAULT_SAMPLE_DELAY = 0.5


class KpiCalculator:
    """Runs *num_samples* sequential calls against one provider adapter.

    Every sample uses the same brand-neutral system prompt. A failing sample
    is logged and kept in ``errors``; only a run where every sample failed
    raises SamplingError.
    """

    def __init__(
        self,
        adapter: BaseProviderAdapter,
        *,
        num_samples: int = DEFAULT_NUM_SAMPLES,
        sample_delay: float = DEFAULT_SAMPLE_DELAY,
        embedding_api_key: str | None = None,
        embedding_client: httpx.AsyncClient | None = None,
    ):
        self.adapter = adapter
        self.num_samples = num_samples
        self.sample_delay = sample_delay
        self.embedding_api_key = embedding_api_key
        self.embedding_client = embedding_client

    @property
    def provider(self) -> str:
        return self.adapter.provider

    async def calculate_kpis(
        self,
        prompt_text: str,
        brand: BrandContext,
        *,
        prompt_id: uuid.UUID | None = None,
        num_samples: int | None = None,
        region: str = DEFAULT_REGION,
        language: str = DEFAULT_LANGUAGE,
    ) -> PromptKPIResult:
        samples = num_samples or self.num_samples
        system_prompt = build_system_prompt(region, language)
        result = PromptKPIResult(prompt_id=prompt_id, llm_provider=self.provider, llm_model=self.adapter.model)

        for i in range(samples):
            if i > 0 and self.sample_delay:
                await asyncio.sleep(self.sample_delay)
            try:
                reply = await self.adapter.send(prompt_text, system_prompt)
                alignment = None
                if self.embedding_api_key:
                    alignment = await similarity(
                        prompt_text, reply.text, self.embedding_api_key, client=self.embedding_client
                    )
                result.metrics.append(
                    analyze_sample(reply.text, brand, native_citations=reply.native_citations, alignment=alignment)
                )
                result.llm_model = reply.model or result.llm_model
            except Exception as e:
                logger.warning(
                    "%s sample %d/%d failed for prompt %s: %s",
                    self.provider,
                    i + 1,
                    samples,
                    prompt_id,
                    e,
                )
                result.errors.append(str(e))

        if not result.metrics:
            raise SamplingError(result.errors)

        logger.info(
            "%s: %d/%d samples succeeded for prompt %s",
            self.provider,
            len(result.metrics),
            samples,
            prompt_id,
        )
        return result
