from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ...api.deps import get_scoring_service
from ...config import settings
from ...core.domain.entities.score_result import ScoreResult
from ...core.domain.exceptions import (
    InvalidLogEntryError,
    EmbeddingUnavailableError,
    IndexUnavailableError,
    DimensionMismatchError,
    UninitializedBaselineError,
    DomainException,
)
from ...core.use_cases.log_scoring import LogScoringService

router = APIRouter()


# Pydantic models for request/response
class CheckLogRequest(BaseModel):
    log_entry: str = Field(..., min_length=1, max_length=settings.MAX_LOG_ENTRY_LENGTH)


class AnomalyResponse(BaseModel):
    is_anomalous: bool
    score: float
    log_entry: str
    nearest_baseline: Optional[str] = None


def to_response_model(result: ScoreResult) -> AnomalyResponse:
    return AnomalyResponse(**result.to_dict())


@router.post("/check_log", response_model=AnomalyResponse)
async def check_log(
    req: CheckLogRequest,
    service: LogScoringService = Depends(get_scoring_service)
):
    """
    Score a log entry against the baseline of normal logs.
    """
    try:
        result = await service.check_log(req.log_entry)
    except InvalidLogEntryError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except UninitializedBaselineError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except EmbeddingUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to get embedding: {str(e)}"
        )
    except IndexUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Vector store search failed: {str(e)}"
        )
    except DimensionMismatchError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Embedding dimension mismatch: {str(e)}"
        )
    except DomainException as e:
        raise HTTPException(status_code=500, detail=f"Scoring failed: {str(e)}")
    return to_response_model(result)
