from abc import ABC, abstractmethod
from typing import List, Sequence
from ..domain.entities.baseline_entry import BaselineEntry, BaselineMatch
from ..domain.value_objects.embedding import EmbeddingVector


class BaselineIndex(ABC):
    """Port for the vector store holding baseline log embeddings"""

    @abstractmethod
    async def ensure_collection(self, name: str, vector_size: int, distance_metric: str) -> bool:
        """
        Create the collection if it does not exist, otherwise verify its configuration.

        Returns:
            True if the collection was created, False if it already existed

        Raises:
            CollectionConfigMismatchError: existing collection has a different
                vector size or distance metric
            IndexUnavailableError: vector store unreachable
        """
        pass

    @abstractmethod
    async def upsert(self, entries: Sequence[BaselineEntry]) -> int:
        """
        Insert or replace baseline entries, keyed by entry id.

        Returns:
            Number of entries written
        """
        pass

    @abstractmethod
    async def query_nearest(self, vector: EmbeddingVector, top_k: int = 1) -> List[BaselineMatch]:
        """
        Find the baseline entries most similar to a vector.

        Args:
            vector: Query embedding
            top_k: Maximum number of matches, at least 1

        Returns:
            Matches ordered by descending similarity; empty if the baseline is empty
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of baseline entries in the collection"""
        pass

    @abstractmethod
    async def delete_collection(self, name: str) -> bool:
        """Drop a collection. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def retain_only(self, ids: Sequence[str]) -> int:
        """
        Delete every entry whose id is not in ``ids``.

        Returns:
            Number of entries removed
        """
        pass
