from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of scoring a single log entry against the baseline"""
    is_anomalous: bool
    score: float
    log_entry: str
    nearest_baseline: Optional[str] = None

    @classmethod
    def without_precedent(cls, log_entry: str) -> "ScoreResult":
        """Result for an empty baseline: no precedent, maximally anomalous"""
        return cls(is_anomalous=True, score=0.0, log_entry=log_entry, nearest_baseline=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_anomalous": self.is_anomalous,
            "score": self.score,
            "log_entry": self.log_entry,
            "nearest_baseline": self.nearest_baseline,
        }
