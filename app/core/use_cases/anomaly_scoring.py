import logging

from ..domain.entities.score_result import ScoreResult
from ..domain.exceptions import InvalidLogEntryError
from ..domain.value_objects.scoring_config import ScoringConfig
from ..ports.embedding_service import EmbeddingService
from ..ports.vector_store import BaselineIndex

logger = logging.getLogger(__name__)


class AnomalyScoringUseCase:
    """
    Scores a log entry by its similarity to the nearest baseline entry.

    Stateless: concurrent calls share nothing but the injected collaborators.
    A log is anomalous when its best similarity is strictly below the
    threshold; a score equal to the threshold is normal. An empty baseline
    yields ``is_anomalous=True, score=0.0``.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        baseline_index: BaselineIndex,
        config: ScoringConfig,
    ):
        self.embedding_service = embedding_service
        self.baseline_index = baseline_index
        self.config = config

    def _validate_log_entry(self, log_entry: str) -> None:
        if not log_entry or not log_entry.strip():
            raise InvalidLogEntryError("Log entry cannot be empty")
        if len(log_entry) > self.config.max_log_entry_length:
            raise InvalidLogEntryError(
                f"Log entry length {len(log_entry)} exceeds maximum of "
                f"{self.config.max_log_entry_length} characters"
            )

    def is_anomalous(self, score: float) -> bool:
        return score < self.config.anomaly_threshold

    async def score(self, log_entry: str) -> ScoreResult:
        """Embed the log entry, find its nearest baseline precedent and apply the threshold"""
        self._validate_log_entry(log_entry)

        embedding = await self.embedding_service.generate_embedding(log_entry)
        matches = await self.baseline_index.query_nearest(embedding, top_k=self.config.top_k)

        if not matches:
            logger.warning("Baseline index returned no matches; treating log as anomalous")
            return ScoreResult.without_precedent(log_entry)

        best = matches[0]
        return ScoreResult(
            is_anomalous=self.is_anomalous(best.similarity),
            score=best.similarity,
            log_entry=log_entry,
            nearest_baseline=best.entry.text,
        )
