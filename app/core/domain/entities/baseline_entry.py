import uuid
from dataclasses import dataclass

from ..value_objects.embedding import EmbeddingVector

# Fixed namespace so the same template always maps to the same point id
BASELINE_NAMESPACE = uuid.UUID("6f1c3d52-8a4e-5b7f-9c2d-1e0a4b8d7f63")


@dataclass(frozen=True)
class BaselineEntry:
    """Domain entity representing one "normal" log line and its embedding"""
    id: str
    text: str
    embedding: EmbeddingVector

    @staticmethod
    def make_id(collection_name: str, text: str) -> str:
        return str(uuid.uuid5(BASELINE_NAMESPACE, f"{collection_name}:{text}"))

    @classmethod
    def create(cls, collection_name: str, text: str, embedding: EmbeddingVector) -> "BaselineEntry":
        """Factory method deriving a deterministic id from collection and text"""
        return cls(
            id=cls.make_id(collection_name, text),
            text=text,
            embedding=embedding,
        )


@dataclass(frozen=True)
class BaselineMatch:
    """A baseline entry returned by a nearest-neighbour query"""
    entry: BaselineEntry
    similarity: float
