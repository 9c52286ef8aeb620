from pydantic_settings import BaseSettings
from pydantic import Field, HttpUrl, ValidationError
from typing import List, Optional, Literal
import logging

from .core.domain.baseline_templates import DEFAULT_NORMAL_LOGS
from .core.domain.value_objects.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)


class CriticalConfigError(Exception):
    """Custom exception for critical configuration failures."""
    pass


class AppSettings(BaseSettings):
    # Pydantic model configuration
    model_config = {
        'extra': 'ignore',
        'env_file': '.env',
        'env_file_encoding': 'utf-8',
        'validate_default': True,
        'frozen': True,
    }

    # -- Embedding provider (Ollama) --
    OLLAMA_EMBEDDING_BASE_URL: HttpUrl = Field(
        default='http://localhost:11434',
        description='Ollama Embedding base URL.'
    )
    OLLAMA_EMBEDDING_MODEL: str = Field(
        default="bge-m3",
        description="The Ollama embedding model to be used."
    )
    VECTOR_SIZE: int = Field(
        default=1024,
        gt=0,
        description="Dimensionality of every embedding; must match the model."
    )
    EMBEDDING_TIMEOUT: float = Field(
        default=30.0,
        gt=0,
        description="Timeout per embedding request (seconds)."
    )
    EMBEDDING_MAX_RETRIES: int = Field(
        default=1,
        ge=1,
        description="Attempts per embedding request. 1 = no retry."
    )
    EMBEDDING_RETRY_DELAY: float = Field(
        default=1.0,
        ge=0,
        description="Base delay between embedding retries (seconds)."
    )
    EMBEDDING_CONCURRENCY: int = Field(
        default=4,
        ge=1,
        description="Concurrent embedding requests for batch calls.",
    )

    # -- Vector store (Chroma) --
    CHROMA_HOST: Optional[str] = Field(
        default=None,
        description="Chroma server host. When unset an embedded persistent store is used."
    )
    CHROMA_PORT: int = Field(default=8000, description="Chroma server port.")
    CHROMA_PERSIST_DIR: str = Field("./data/vector_db", description="Embedded Chroma data directory.")
    CHROMA_COLLECTION_NAME: str = Field("normal_server_logs", min_length=3)
    VECTOR_STORE_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        description="Timeout per vector store call (seconds)."
    )
    VECTOR_STORE_MAX_WORKERS: int = Field(
        default=4,
        ge=1,
        description="Threads running vector store calls. Timed-out calls hold a thread until they return."
    )
    DISTANCE_METRIC: Literal['cosine'] = Field(
        default='cosine',
        description="Similarity metric for the baseline collection."
    )

    # -- Anomaly scoring --
    ANOMALY_THRESHOLD: float = Field(
        default=0.70,
        ge=-1.0,
        le=1.0,
        description="Similarity below this value is anomalous; equal is normal."
    )
    ANOMALY_TOP_K: int = Field(
        default=1,
        ge=1,
        description="Number of nearest baseline entries to retrieve."
    )
    BASELINE_LOG_TEMPLATES: List[str] = Field(
        default_factory=lambda: list(DEFAULT_NORMAL_LOGS),
        min_length=1,
        description="Normal log lines embedded into the baseline at startup (JSON list in env)."
    )
    BASELINE_RESET_ON_STARTUP: bool = Field(
        default=False,
        description="Drop and rebuild the baseline collection on every startup."
    )
    MAX_LOG_ENTRY_LENGTH: int = Field(
        default=8000,
        gt=0,
        description="Maximum characters accepted per log entry."
    )

    # FastAPI settings
    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(8080)
    LOG_LEVEL: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = Field("INFO")
    DEBUG: bool = Field(False)

    def to_scoring_config(self) -> ScoringConfig:
        return ScoringConfig(
            collection_name=self.CHROMA_COLLECTION_NAME,
            embedding_model=self.OLLAMA_EMBEDDING_MODEL,
            vector_size=self.VECTOR_SIZE,
            anomaly_threshold=self.ANOMALY_THRESHOLD,
            baseline_templates=tuple(self.BASELINE_LOG_TEMPLATES),
            distance_metric=self.DISTANCE_METRIC,
            top_k=self.ANOMALY_TOP_K,
            max_log_entry_length=self.MAX_LOG_ENTRY_LENGTH,
        )


def load_settings() -> AppSettings:
    """Load and validate settings, converting validation failures into CriticalConfigError."""
    try:
        return AppSettings()
    except ValidationError as e:
        error_messages = []
        for error in e.errors():
            field = ".".join(str(loc) for loc in error['loc'])
            message = error['msg']
            error_messages.append(f"  - Field '{field}': {message}")

        full_error_message = "Environment variable validation failed!\n" + "\n".join(error_messages) + \
                             "\nPlease check the logs and your .env file or environment settings."
        logger.error(full_error_message)
        raise CriticalConfigError(full_error_message) from e


# Instantiate settings once at import time.
settings = load_settings()
