from abc import ABC
from typing import List
from ...core.ports.embedding_service import EmbeddingService
from ...core.domain.exceptions import InvalidLogEntryError, DimensionMismatchError


class BaseEmbeddingService(EmbeddingService, ABC):
    """Base class for embedding services with common validation"""

    def __init__(self, model_name: str, dimensions: int, max_text_length: int = 8000):
        self.model_name = model_name
        self.dimensions = dimensions
        self.max_text_length = max_text_length

    def _validate_text(self, text: str) -> str:
        """Reject blank or oversized text; never embed an empty string"""
        if not text or not text.strip():
            raise InvalidLogEntryError("Text cannot be empty")

        if len(text) > self.max_text_length:
            raise InvalidLogEntryError(
                f"Text length {len(text)} exceeds maximum of {self.max_text_length} characters"
            )

        return text

    def _validate_batch(self, texts: List[str]) -> List[str]:
        """Validate a batch of texts"""
        return [self._validate_text(text) for text in texts]

    def _validate_dimensions(self, values: List[float]) -> List[float]:
        """Reject vectors of the wrong length instead of truncating or padding"""
        if len(values) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(values), source=self.model_name)
        return values
