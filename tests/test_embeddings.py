"""Tests for the embedding similarity helper (mocked HTTP)."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import numpy as np
import pytest

from brandmonitor.analysis.embeddings import cosine, embed_texts, similarity


def _mock_client(data: dict) -> AsyncMock:
    resp = MagicMock()
    resp.raise_for_status = MagicMock()
    resp.json.return_value = data
    client = AsyncMock()
    client.post.return_value = resp
    return client


class TestCosine:
    def test_identical(self):
        assert cosine([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_mismatched_or_empty(self):
        assert cosine([1.0], [1.0, 2.0]) is None
        assert cosine([], []) is None
        assert cosine(None, [1.0]) is None

    def test_zero_vector(self):
        assert cosine([0.0, 0.0], [1.0, 1.0]) == 0.0


class TestEmbedTexts:
    @pytest.mark.asyncio
    async def test_sorted_by_index(self):
        client = _mock_client(
            {
                "data": [
                    {"index": 1, "embedding": [0.0, 1.0]},
                    {"index": 0, "embedding": [1.0, 0.0]},
                ]
            }
        )
        vectors = await embed_texts(["a", "b"], "sk-test", client=client)
        assert len(vectors) == 2
        np.testing.assert_allclose(vectors[0], [1.0, 0.0])
        np.testing.assert_allclose(vectors[1], [0.0, 1.0])

        kwargs = client.post.call_args.kwargs
        assert kwargs["json"]["input"] == ["a", "b"]
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_transport_failure_returns_empty(self):
        client = AsyncMock()
        client.post.side_effect = httpx.ConnectError("connection refused")
        assert await embed_texts(["a"], "sk-test", client=client) == []

    @pytest.mark.asyncio
    async def test_count_mismatch_returns_empty(self):
        client = _mock_client({"data": [{"index": 0, "embedding": [1.0]}]})
        assert await embed_texts(["a", "b"], "sk-test", client=client) == []

    @pytest.mark.asyncio
    async def test_no_key_skips_call(self):
        client = AsyncMock()
        assert await embed_texts(["a"], "", client=client) == []
        client.post.assert_not_called()


class TestSimilarity:
    @pytest.mark.asyncio
    async def test_similarity(self):
        client = _mock_client(
            {
                "data": [
                    {"index": 0, "embedding": [1.0, 1.0]},
                    {"index": 1, "embedding": [1.0, 1.0]},
                ]
            }
        )
        assert await similarity("q", "a", "sk-test", client=client) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_unavailable(self):
        client = AsyncMock()
        client.post.side_effect = httpx.ReadTimeout("timeout")
        assert await similarity("q", "a", "sk-test", client=client) is None
