from fastapi import Request, HTTPException

# Port interfaces
from ..core.ports.vector_store import BaselineIndex
from ..core.domain.value_objects.scoring_config import ScoringConfig

# Use-case classes
from ..core.use_cases.baseline_initialization import BaselineInitializationUseCase
from ..core.use_cases.log_scoring import LogScoringService


# Dependency provider functions
def get_scoring_config(request: Request) -> ScoringConfig:
    config = getattr(request.app.state, "scoring_config", None)
    if config is None:
        raise HTTPException(status_code=500, detail="ScoringConfig not initialized")
    return config


def get_baseline_index(request: Request) -> BaselineIndex:
    index = getattr(request.app.state, "baseline_index", None)
    if index is None:
        raise HTTPException(status_code=500, detail="BaselineIndex not initialized")
    return index


def get_baseline_initializer(request: Request) -> BaselineInitializationUseCase:
    initializer = getattr(request.app.state, "baseline_initializer", None)
    if initializer is None:
        raise HTTPException(status_code=503, detail="Baseline initializer not available")
    return initializer


def get_scoring_service(request: Request) -> LogScoringService:
    service = getattr(request.app.state, "scoring_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Scoring service not initialized")
    return service
