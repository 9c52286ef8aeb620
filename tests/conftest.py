"""
Shared pytest fixtures for all tests.

This module provides reusable fixtures for:
- A deterministic keyword-concept embedder standing in for Ollama
- An in-memory baseline index standing in for Chroma
- Scoring configuration and sample baseline entries
"""

import re
from typing import Dict, List
from unittest.mock import AsyncMock

import pytest

from app.core.domain.entities.baseline_entry import BaselineEntry, BaselineMatch
from app.core.domain.exceptions import DimensionMismatchError, InvalidLogEntryError
from app.core.domain.value_objects.embedding import EmbeddingVector
from app.core.domain.value_objects.scoring_config import ScoringConfig
from app.core.ports.embedding_service import EmbeddingService
from app.core.ports.vector_store import BaselineIndex


# ============================================================================
# FAKE EMBEDDING MODEL
# ============================================================================

# Each dimension counts words belonging to one "concept"; the last dimension
# is a constant bias so no text maps to a zero vector.
CONCEPTS = [
    {"info", "debug"},
    {"critical", "error", "failed", "failure"},
    {"user", "logged", "login", "session"},
    {"ip", "connect", "port"},
    {"database", "db"},
    {"retries", "retry"},
]
TEST_VECTOR_SIZE = len(CONCEPTS) + 1
TEST_MODEL = "test-model"


def concept_embedding(text: str) -> EmbeddingVector:
    """Deterministic embedding: concept word counts plus a bias term."""
    words = re.findall(r"[a-z]+", text.lower())
    values = [float(sum(1 for word in words if word in concept)) for concept in CONCEPTS]
    values.append(1.0)
    return EmbeddingVector(values=values, model_name=TEST_MODEL, dimensions=TEST_VECTOR_SIZE)


# ============================================================================
# SAMPLE DOMAIN OBJECTS
# ============================================================================

@pytest.fixture
def scoring_config() -> ScoringConfig:
    """Scoring configuration with a single login template."""
    return ScoringConfig(
        collection_name="test_baseline",
        embedding_model=TEST_MODEL,
        vector_size=TEST_VECTOR_SIZE,
        anomaly_threshold=0.70,
        baseline_templates=("INFO: User logged in from IP",),
        top_k=1,
        max_log_entry_length=500,
    )


@pytest.fixture
def sample_entry(scoring_config: ScoringConfig) -> BaselineEntry:
    text = "INFO: User logged in from IP"
    return BaselineEntry.create(scoring_config.collection_name, text, concept_embedding(text))


# ============================================================================
# MOCK SERVICES
# ============================================================================

@pytest.fixture
def mock_embedding_service() -> EmbeddingService:
    """Mock embedding service backed by concept_embedding."""
    service = AsyncMock(spec=EmbeddingService)

    async def generate_embedding(text: str) -> EmbeddingVector:
        if not text or not text.strip():
            raise InvalidLogEntryError("Text cannot be empty")
        return concept_embedding(text)

    async def generate_embeddings_batch(texts: List[str]) -> List[EmbeddingVector]:
        return [await service.generate_embedding(text) for text in texts]

    service.generate_embedding.side_effect = generate_embedding
    service.generate_embeddings_batch.side_effect = generate_embeddings_batch

    return service


@pytest.fixture
def mock_baseline_index() -> BaselineIndex:
    """Mock baseline index with in-memory storage and exact cosine ranking."""
    index = AsyncMock(spec=BaselineIndex)

    # In-memory storage for testing
    collections: Dict[str, Dict] = {}
    entries: Dict[str, BaselineEntry] = {}

    async def ensure_collection(name: str, vector_size: int, distance_metric: str) -> bool:
        if name in collections:
            return False
        collections[name] = {"vector_size": vector_size, "distance_metric": distance_metric}
        return True

    async def upsert(new_entries) -> int:
        for entry in new_entries:
            if entry.embedding.dimensions != TEST_VECTOR_SIZE:
                raise DimensionMismatchError(TEST_VECTOR_SIZE, entry.embedding.dimensions)
            entries[entry.id] = entry
        return len(new_entries)

    async def query_nearest(vector: EmbeddingVector, top_k: int = 1) -> List[BaselineMatch]:
        matches = [
            BaselineMatch(entry=entry, similarity=vector.cosine_similarity(entry.embedding))
            for entry in entries.values()
        ]
        matches.sort(key=lambda match: match.similarity, reverse=True)
        return matches[:top_k]

    async def count() -> int:
        return len(entries)

    async def retain_only(ids) -> int:
        keep = set(ids)
        stale = [entry_id for entry_id in entries if entry_id not in keep]
        for entry_id in stale:
            del entries[entry_id]
        return len(stale)

    async def delete_collection(name: str) -> bool:
        existed = collections.pop(name, None) is not None
        entries.clear()
        return existed

    index.ensure_collection.side_effect = ensure_collection
    index.upsert.side_effect = upsert
    index.query_nearest.side_effect = query_nearest
    index.count.side_effect = count
    index.delete_collection.side_effect = delete_collection
    index.retain_only.side_effect = retain_only
    index._entries = entries  # For inspection in tests
    index._collections = collections

    return index
