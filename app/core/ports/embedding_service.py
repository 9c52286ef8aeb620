from abc import ABC, abstractmethod
from typing import List
from ..domain.value_objects.embedding import EmbeddingVector


class EmbeddingService(ABC):
    """Port for embedding generation services"""

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingVector:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            EmbeddingVector with exactly the configured number of dimensions

        Raises:
            InvalidLogEntryError: text is empty or blank
            EmbeddingUnavailableError: provider unreachable or timed out
            DimensionMismatchError: provider returned a vector of the wrong length
        """
        pass

    @abstractmethod
    async def generate_embeddings_batch(self, texts: List[str]) -> List[EmbeddingVector]:
        """
        Generate embeddings for multiple texts, preserving input order.

        Args:
            texts: List of texts to embed

        Returns:
            List of EmbeddingVector objects
        """
        pass
