"""Embedding similarity helper (OpenAI embeddings + numpy cosine).

Best-effort: any failure yields an empty result so callers fall back to
heuristic signals instead of failing extraction.
"""

from __future__ import annotations

import logging

import httpx
import numpy as np

logger = logging.getLogger(__name__)

_EMBEDDING_MODEL = "text-embedding-3-small"
_EMBEDDING_API_URL = "https://api.openai.com/v1/embeddings"
_EMBEDDING_TIMEOUT = 30.0


async def embed_texts(
    texts: list[str],
    api_key: str,
    client: httpx.AsyncClient | None = None,
) -> list[np.ndarray]:
    """Embed *texts* in one batch. Returns [] on any failure."""
    if not texts or not api_key:
        return []

    payload = {
        "model": _EMBEDDING_MODEL,
        "input": [t or "" for t in texts],
    }
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    try:
        if client is not None:
            resp = await client.post(_EMBEDDING_API_URL, json=payload, headers=headers, timeout=_EMBEDDING_TIMEOUT)
        else:
            async with httpx.AsyncClient(timeout=_EMBEDDING_TIMEOUT) as own_client:
                resp = await own_client.post(_EMBEDDING_API_URL, json=payload, headers=headers)
        resp.raise_for_status()
        data = resp.json()

        embeddings = data.get("data", [])
        # Sort by index to ensure alignment with input
        embeddings.sort(key=lambda x: x["index"])
        vectors = [np.array(e["embedding"], dtype=np.float32) for e in embeddings]
    except Exception as e:
        logger.warning("Embedding API call failed: %s", e)
        return []

    if len(vectors) != len(texts):
        logger.warning("Embedding API returned %d vectors for %d inputs", len(vectors), len(texts))
        return []
    return vectors


def cosine(a, b) -> float | None:
    """Cosine similarity, or None for empty or mismatched vectors."""
    if a is None or b is None:
        return None
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.size == 0 or va.shape != vb.shape:
        return None
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb)) or 1.0
    return float(np.dot(va, vb) / denom)


async def similarity(text_a: str, text_b: str, api_key: str, client: httpx.AsyncClient | None = None) -> float | None:
    """Embedding cosine of two texts, or None when embeddings are unavailable."""
    vectors = await embed_texts([text_a, text_b], api_key, client=client)
    if len(vectors) != 2:
        return None
    return cosine(vectors[0], vectors[1])
