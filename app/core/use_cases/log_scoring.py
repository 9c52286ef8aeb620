from ..domain.entities.score_result import ScoreResult
from ..domain.exceptions import DomainException, UninitializedBaselineError
from ..ports.logger import Logger
from .anomaly_scoring import AnomalyScoringUseCase
from .baseline_initialization import BaselineInitializationUseCase


class LogScoringService:
    """Entry point for scoring requests: gates on baseline readiness and logs decisions"""

    def __init__(
        self,
        initializer: BaselineInitializationUseCase,
        scorer: AnomalyScoringUseCase,
        logger: Logger,
    ):
        self.initializer = initializer
        self.scorer = scorer
        self.logger = logger

    @property
    def is_ready(self) -> bool:
        return self.initializer.is_initialized

    async def check_log(self, log_entry: str) -> ScoreResult:
        if not self.is_ready:
            raise UninitializedBaselineError("Baseline initialization has not completed")

        try:
            result = await self.scorer.score(log_entry)
        except DomainException as e:
            self.logger.error("Scoring failed with %s: %s", type(e).__name__, e)
            raise

        if result.is_anomalous:
            self.logger.warning(
                "Anomalous log (score=%.4f, nearest=%r): %s",
                result.score, result.nearest_baseline, log_entry[:200],
            )
        else:
            self.logger.info("Normal log (score=%.4f)", result.score)
        return result
