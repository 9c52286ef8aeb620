import asyncio
import logging
from typing import List

from ..domain.entities.baseline_entry import BaselineEntry
from ..domain.value_objects.scoring_config import ScoringConfig
from ..ports.embedding_service import EmbeddingService
from ..ports.vector_store import BaselineIndex

logger = logging.getLogger(__name__)


class BaselineInitializationUseCase:
    """Use case for populating the baseline index with normal log templates on startup"""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        baseline_index: BaselineIndex,
        config: ScoringConfig,
        reset_on_startup: bool = False,
    ):
        self.embedding_service = embedding_service
        self.baseline_index = baseline_index
        self.config = config
        self.reset_on_startup = reset_on_startup
        self._lock = asyncio.Lock()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        """True once every baseline upsert has been acknowledged by the store"""
        return self._initialized

    async def initialize(self) -> int:
        """
        Embed the configured templates and upsert them into the baseline index.

        Runs at most once per process; concurrent callers wait on the same lock
        and later calls return immediately. Any failure propagates and leaves
        the use case uninitialized.

        Returns:
            Number of baseline entries written (0 if already initialized)
        """
        async with self._lock:
            if self._initialized:
                logger.debug("Baseline already initialized, skipping")
                return 0
            written = await self._populate()
            self._initialized = True
            return written

    async def _populate(self) -> int:
        name = self.config.collection_name

        if self.reset_on_startup:
            dropped = await self.baseline_index.delete_collection(name)
            logger.info(f"Baseline reset requested; collection '{name}' dropped={dropped}")

        created = await self.baseline_index.ensure_collection(
            name, self.config.vector_size, self.config.distance_metric
        )
        logger.info(
            f"{'Created' if created else 'Verified existing'} baseline collection '{name}' "
            f"(size={self.config.vector_size}, distance={self.config.distance_metric})"
        )

        entries = await self._build_entries(list(self.config.baseline_templates))
        written = await self.baseline_index.upsert(entries)

        # The collection holds exactly the configured templates, all from the current model
        removed = await self.baseline_index.retain_only([entry.id for entry in entries])
        if removed:
            logger.info(f"Removed {removed} stale baseline entries from '{name}'")

        logger.info(f"Successfully indexed {written} normal log entries.")
        return written

    async def _build_entries(self, templates: List[str]) -> List[BaselineEntry]:
        embeddings = await self.embedding_service.generate_embeddings_batch(templates)
        return [
            BaselineEntry.create(self.config.collection_name, template, embedding)
            for template, embedding in zip(templates, embeddings)
        ]
