from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ScoringConfig:
    """
    Process-wide scoring configuration.

    Built once at startup from AppSettings and handed to every component that
    needs it. Instances are immutable.
    """
    collection_name: str
    embedding_model: str
    vector_size: int
    anomaly_threshold: float
    baseline_templates: Tuple[str, ...]
    distance_metric: str = "cosine"
    top_k: int = 1
    max_log_entry_length: int = 8000

    def __post_init__(self):
        if self.vector_size <= 0:
            raise ValueError("vector_size must be positive")
        if self.top_k < 1:
            raise ValueError("top_k must be at least 1")
        if not -1 <= self.anomaly_threshold <= 1:
            raise ValueError("anomaly_threshold must be between -1 and 1")
        if self.distance_metric != "cosine":
            raise ValueError(f"Unsupported distance metric: {self.distance_metric}")
        if not self.baseline_templates:
            raise ValueError("baseline_templates cannot be empty")
