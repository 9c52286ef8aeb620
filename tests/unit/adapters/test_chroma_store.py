"""
Tests for ChromaBaselineIndexAdapter against an in-process Chroma client.

Tests cover:
- ensure_collection create/verify/mismatch
- Upsert idempotence by entry id
- Nearest-neighbour ordering and cosine similarity
- Empty collection behaviour
- Pruning of entries whose templates were removed
- Dimension checks and unavailable-store translation
"""

import dataclasses
import time
import uuid
from unittest.mock import Mock

import chromadb
import pytest
from chromadb.config import Settings

from app.adapters.vector_store.chroma_store import ChromaBaselineIndexAdapter
from app.core.domain.entities.baseline_entry import BaselineEntry
from app.core.domain.exceptions import (
    CollectionConfigMismatchError,
    DimensionMismatchError,
    IndexUnavailableError,
)
from app.core.domain.value_objects.embedding import EmbeddingVector
from app.core.use_cases.anomaly_scoring import AnomalyScoringUseCase
from app.core.use_cases.baseline_initialization import BaselineInitializationUseCase

VECTOR_SIZE = 3


def vec(*values: float) -> EmbeddingVector:
    return EmbeddingVector(values=list(values), model_name="test-model", dimensions=len(values))


@pytest.fixture(scope="module")
def chroma_client():
    return chromadb.EphemeralClient(settings=Settings(anonymized_telemetry=False))


@pytest.fixture
def collection_name() -> str:
    # EphemeralClient instances share state; keep collections unique per test
    return f"baseline_{uuid.uuid4().hex[:12]}"


@pytest.fixture
def index(chroma_client, collection_name):
    adapter = ChromaBaselineIndexAdapter(
        client=chroma_client, collection_name=collection_name, vector_size=VECTOR_SIZE, timeout=10.0
    )
    yield adapter
    adapter.close()


def entry(collection: str, text: str, embedding: EmbeddingVector) -> BaselineEntry:
    return BaselineEntry.create(collection, text, embedding)


class TestEnsureCollection:

    @pytest.mark.asyncio
    async def test_creates_then_verifies(self, index, collection_name):
        assert await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine") is True
        assert await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine") is False

    @pytest.mark.asyncio
    async def test_mismatched_vector_size_raises(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")

        with pytest.raises(CollectionConfigMismatchError):
            await index.ensure_collection(collection_name, VECTOR_SIZE + 1, "cosine")


class TestUpsertAndQuery:

    @pytest.mark.asyncio
    async def test_query_orders_by_descending_similarity(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")
        await index.upsert([
            entry(collection_name, "x-axis", vec(1.0, 0.0, 0.0)),
            entry(collection_name, "y-axis", vec(0.0, 1.0, 0.0)),
            entry(collection_name, "diagonal", vec(1.0, 1.0, 0.0)),
        ])

        matches = await index.query_nearest(vec(2.0, 0.1, 0.0), top_k=3)

        assert [m.entry.text for m in matches] == ["x-axis", "diagonal", "y-axis"]
        assert matches[0].similarity == pytest.approx(0.9988, abs=1e-3)
        assert all(a.similarity >= b.similarity for a, b in zip(matches, matches[1:]))

    @pytest.mark.asyncio
    async def test_top_k_limits_results(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")
        await index.upsert([
            entry(collection_name, "a", vec(1.0, 0.0, 0.0)),
            entry(collection_name, "b", vec(0.0, 1.0, 0.0)),
        ])

        matches = await index.query_nearest(vec(1.0, 0.0, 0.0), top_k=1)

        assert len(matches) == 1
        assert matches[0].entry.text == "a"
        assert matches[0].entry.embedding.values == pytest.approx([1.0, 0.0, 0.0])
        assert matches[0].entry.embedding.model_name == "test-model"

    @pytest.mark.asyncio
    async def test_top_k_larger_than_collection(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")
        await index.upsert([entry(collection_name, "a", vec(1.0, 0.0, 0.0))])

        matches = await index.query_nearest(vec(1.0, 0.0, 0.0), top_k=5)

        assert len(matches) == 1

    @pytest.mark.asyncio
    async def test_upsert_same_entries_twice_does_not_duplicate(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")
        entries = [
            entry(collection_name, "a", vec(1.0, 0.0, 0.0)),
            entry(collection_name, "b", vec(0.0, 1.0, 0.0)),
        ]

        await index.upsert(entries)
        before = await index.query_nearest(vec(0.5, 0.5, 0.0), top_k=2)
        await index.upsert(entries)
        after = await index.query_nearest(vec(0.5, 0.5, 0.0), top_k=2)

        assert await index.count() == 2
        assert [(m.entry.id, round(m.similarity, 6)) for m in after] == \
            [(m.entry.id, round(m.similarity, 6)) for m in before]

    @pytest.mark.asyncio
    async def test_empty_collection_returns_no_matches(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")

        assert await index.query_nearest(vec(1.0, 0.0, 0.0)) == []
        assert await index.count() == 0

    @pytest.mark.asyncio
    async def test_missing_collection_returns_no_matches(self, index):
        assert await index.query_nearest(vec(1.0, 0.0, 0.0)) == []
        assert await index.count() == 0

    @pytest.mark.asyncio
    async def test_upsert_without_collection_raises(self, index, collection_name):
        with pytest.raises(IndexUnavailableError):
            await index.upsert([entry(collection_name, "a", vec(1.0, 0.0, 0.0))])

    @pytest.mark.asyncio
    async def test_upsert_empty_is_noop(self, index):
        assert await index.upsert([]) == 0


class TestDimensionChecks:

    @pytest.mark.asyncio
    async def test_upsert_rejects_wrong_dimensions(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")

        with pytest.raises(DimensionMismatchError):
            await index.upsert([entry(collection_name, "a", vec(1.0, 0.0))])

    @pytest.mark.asyncio
    async def test_query_rejects_wrong_dimensions(self, index):
        with pytest.raises(DimensionMismatchError):
            await index.query_nearest(vec(1.0, 0.0, 0.0, 0.0))

    @pytest.mark.asyncio
    async def test_query_rejects_non_positive_top_k(self, index):
        with pytest.raises(ValueError):
            await index.query_nearest(vec(1.0, 0.0, 0.0), top_k=0)


class TestDeleteCollection:

    @pytest.mark.asyncio
    async def test_delete_existing_and_missing(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")
        await index.upsert([entry(collection_name, "a", vec(1.0, 0.0, 0.0))])

        assert await index.delete_collection(collection_name) is True
        assert await index.count() == 0
        assert await index.delete_collection(collection_name) is False


class TestRetainOnly:

    @pytest.mark.asyncio
    async def test_removes_entries_not_listed(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")
        keep = entry(collection_name, "keep", vec(1.0, 0.0, 0.0))
        await index.upsert([keep, entry(collection_name, "drop", vec(0.0, 1.0, 0.0))])

        removed = await index.retain_only([keep.id])

        assert removed == 1
        assert await index.count() == 1
        matches = await index.query_nearest(vec(0.0, 1.0, 0.0), top_k=2)
        assert [m.entry.text for m in matches] == ["keep"]

    @pytest.mark.asyncio
    async def test_nothing_to_remove(self, index, collection_name):
        await index.ensure_collection(collection_name, VECTOR_SIZE, "cosine")
        keep = entry(collection_name, "keep", vec(1.0, 0.0, 0.0))
        await index.upsert([keep])

        assert await index.retain_only([keep.id]) == 0
        assert await index.count() == 1

    @pytest.mark.asyncio
    async def test_missing_collection(self, index):
        assert await index.retain_only([]) == 0


class TestTemplateRemovalAcrossRestarts:

    @pytest.mark.asyncio
    async def test_removed_template_no_longer_matches(
        self, chroma_client, collection_name, mock_embedding_service, scoring_config
    ):
        failure = "CRITICAL: Failed to connect to primary database after 5 retries."
        login = "INFO: User logged in from IP"
        first_config = dataclasses.replace(
            scoring_config, collection_name=collection_name, baseline_templates=(failure, login)
        )
        second_config = dataclasses.replace(first_config, baseline_templates=(login,))

        first_index = ChromaBaselineIndexAdapter(chroma_client, collection_name, scoring_config.vector_size)
        try:
            await BaselineInitializationUseCase(
                mock_embedding_service, first_index, first_config
            ).initialize()
            assert await first_index.count() == 2
        finally:
            first_index.close()

        second_index = ChromaBaselineIndexAdapter(chroma_client, collection_name, scoring_config.vector_size)
        try:
            await BaselineInitializationUseCase(
                mock_embedding_service, second_index, second_config
            ).initialize()
            result = await AnomalyScoringUseCase(
                mock_embedding_service, second_index, second_config
            ).score(failure)

            assert await second_index.count() == 1
            assert result.is_anomalous is True
            assert result.nearest_baseline == login
        finally:
            second_index.close()


class TestUnavailableStore:

    @pytest.mark.asyncio
    async def test_client_errors_become_index_unavailable(self, collection_name):
        broken_client = Mock()
        broken_client.list_collections.side_effect = ConnectionError("connection refused")
        adapter = ChromaBaselineIndexAdapter(broken_client, collection_name, VECTOR_SIZE)

        try:
            with pytest.raises(IndexUnavailableError):
                await adapter.query_nearest(vec(1.0, 0.0, 0.0))
            with pytest.raises(IndexUnavailableError):
                await adapter.ensure_collection(collection_name, VECTOR_SIZE, "cosine")
        finally:
            adapter.close()

    @pytest.mark.asyncio
    async def test_slow_store_times_out(self, collection_name):
        slow_client = Mock()
        slow_client.list_collections.side_effect = lambda: time.sleep(0.5)
        adapter = ChromaBaselineIndexAdapter(slow_client, collection_name, VECTOR_SIZE, timeout=0.05)

        try:
            with pytest.raises(IndexUnavailableError, match="timed out"):
                await adapter.count()
        finally:
            adapter.close()

    @pytest.mark.asyncio
    async def test_timed_out_call_holds_its_worker(self, collection_name):
        slow_client = Mock()
        slow_client.list_collections.side_effect = lambda: time.sleep(0.3) or []
        adapter = ChromaBaselineIndexAdapter(
            slow_client, collection_name, VECTOR_SIZE, timeout=0.05, max_workers=1
        )

        try:
            with pytest.raises(IndexUnavailableError, match="timed out"):
                await adapter.count()
            # The abandoned call still occupies the only worker, so this one waits in the queue
            with pytest.raises(IndexUnavailableError, match="timed out"):
                await adapter.count()
        finally:
            adapter.close()
