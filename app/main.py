import os
import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .infrastructure.logging import setup_logging, RequestLoggingMiddleware

from .config import settings

# Import adapter classes
from .adapters.embedding.ollama_embedding import OllamaEmbeddingService
from .adapters.vector_store.chroma_store import ChromaBaselineIndexAdapter, create_chroma_client
from .adapters.logging.python_logger import PythonLogger

# Port interfaces
from .core.ports.embedding_service import EmbeddingService
from .core.ports.vector_store import BaselineIndex
from .core.domain.value_objects.scoring_config import ScoringConfig

# Use cases
from .core.use_cases.baseline_initialization import BaselineInitializationUseCase
from .core.use_cases.anomaly_scoring import AnomalyScoringUseCase
from .core.use_cases.log_scoring import LogScoringService

# Imports for routers
from .api.routes.logs import router as logs_router
from .api.routes.health import router as health_router


app = FastAPI(
    title="Semantic Log Anomaly Detector",
    debug=settings.DEBUG
)

# Setup logging early
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Adjust in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def wire_scoring_service(
        target: FastAPI,
        embedding_service: EmbeddingService,
        baseline_index: BaselineIndex,
        config: ScoringConfig,
        reset_on_startup: bool = False,
) -> LogScoringService:
    """Build the use cases around the given adapters and store them in app.state"""
    initializer = BaselineInitializationUseCase(
        embedding_service=embedding_service,
        baseline_index=baseline_index,
        config=config,
        reset_on_startup=reset_on_startup,
    )
    scorer = AnomalyScoringUseCase(
        embedding_service=embedding_service,
        baseline_index=baseline_index,
        config=config,
    )
    service = LogScoringService(
        initializer=initializer,
        scorer=scorer,
        logger=PythonLogger("app.scoring"),
    )

    target.state.scoring_config = config
    target.state.embedding_service = embedding_service
    target.state.baseline_index = baseline_index
    target.state.baseline_initializer = initializer
    target.state.scoring_service = service
    return service


async def close_adapters(embedding_service, baseline_index) -> None:
    """Release the HTTP client and the vector store thread pool"""
    if embedding_service and hasattr(embedding_service, "aclose"):
        try:
            await embedding_service.aclose()
            logger.info("Closed embedding_service HTTP client")
        except Exception as e:
            logger.warning(f"Error closing embedding_service client: {e}")

    if baseline_index and hasattr(baseline_index, "close"):
        baseline_index.close()
        logger.info("Closed baseline_index thread pool")


# On startup, instantiate adapters and populate the baseline before serving
@app.on_event("startup")
async def on_startup():
    logger.info("Application startup: instantiating adapters...")
    config = settings.to_scoring_config()

    embedding_service = OllamaEmbeddingService(
        base_url=str(settings.OLLAMA_EMBEDDING_BASE_URL),
        model_name=settings.OLLAMA_EMBEDDING_MODEL,
        dimensions=settings.VECTOR_SIZE,
        timeout=settings.EMBEDDING_TIMEOUT,
        max_retries=settings.EMBEDDING_MAX_RETRIES,
        retry_delay=settings.EMBEDDING_RETRY_DELAY,
        concurrency_limit=settings.EMBEDDING_CONCURRENCY,
        max_text_length=settings.MAX_LOG_ENTRY_LENGTH,
    )
    baseline_index = None

    try:
        if not settings.CHROMA_HOST:
            os.makedirs(settings.CHROMA_PERSIST_DIR, exist_ok=True)
        chroma_client = create_chroma_client(
            persist_directory=settings.CHROMA_PERSIST_DIR,
            host=settings.CHROMA_HOST,
            port=settings.CHROMA_PORT,
        )
        baseline_index = ChromaBaselineIndexAdapter(
            client=chroma_client,
            collection_name=config.collection_name,
            vector_size=config.vector_size,
            timeout=settings.VECTOR_STORE_TIMEOUT,
            max_workers=settings.VECTOR_STORE_MAX_WORKERS,
        )

        service = wire_scoring_service(
            app,
            embedding_service=embedding_service,
            baseline_index=baseline_index,
            config=config,
            reset_on_startup=settings.BASELINE_RESET_ON_STARTUP,
        )

        # Failures here abort startup; the service never serves a partial baseline
        await service.initializer.initialize()
    except Exception:
        logger.exception("Startup failed; closing adapters")
        await close_adapters(embedding_service, baseline_index)
        raise

    logger.info("Startup complete: baseline ready")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Application shutdown: closing resources...")
    await close_adapters(
        getattr(app.state, "embedding_service", None),
        getattr(app.state, "baseline_index", None),
    )
    logger.info("Shutdown complete.")


app.include_router(
    logs_router,
    tags=["logs"]
)

app.include_router(
    health_router,
    prefix="/health",
    tags=["health"]
)


if __name__ == "__main__":
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
