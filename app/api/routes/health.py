from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...api.deps import get_scoring_config, get_baseline_index, get_baseline_initializer
from ...core.domain.exceptions import IndexUnavailableError
from ...core.domain.value_objects.scoring_config import ScoringConfig
from ...core.ports.vector_store import BaselineIndex
from ...core.use_cases.baseline_initialization import BaselineInitializationUseCase

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    baseline_initialized: bool
    baseline_entries: Optional[int]
    collection_name: str
    embedding_model: str


@router.get("/", response_model=HealthResponse)
async def health(
    config: ScoringConfig = Depends(get_scoring_config),
    index: BaselineIndex = Depends(get_baseline_index),
    initializer: BaselineInitializationUseCase = Depends(get_baseline_initializer)
):
    """
    Report whether the baseline is ready and how many entries it holds.
    """
    initialized = initializer.is_initialized

    try:
        entries = await index.count()
    except IndexUnavailableError:
        entries = None

    return HealthResponse(
        status="ok" if initialized else "initializing",
        baseline_initialized=initialized,
        baseline_entries=entries,
        collection_name=config.collection_name,
        embedding_model=config.embedding_model,
    )
