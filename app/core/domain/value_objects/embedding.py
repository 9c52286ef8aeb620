from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class EmbeddingVector:
    """Value object representing an embedding vector"""
    values: List[float]
    model_name: str
    dimensions: int

    def __post_init__(self):
        if len(self.values) != self.dimensions:
            raise ValueError(f"Expected {self.dimensions} dimensions, got {len(self.values)}")

    @property
    def magnitude(self) -> float:
        """Calculate the magnitude of the vector"""
        return sum(x * x for x in self.values) ** 0.5

    def cosine_similarity(self, other: "EmbeddingVector") -> float:
        """Cosine of the angle between two vectors; 0.0 if either is a zero vector"""
        if self.dimensions != other.dimensions:
            raise ValueError(f"Expected {self.dimensions} dimensions, got {other.dimensions}")
        denominator = self.magnitude * other.magnitude
        if denominator == 0:
            return 0.0
        return sum(a * b for a, b in zip(self.values, other.values)) / denominator
