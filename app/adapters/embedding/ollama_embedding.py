import httpx
import asyncio
import logging
from typing import List, Any, Optional
from .base_embedding import BaseEmbeddingService
from ...core.domain.value_objects.embedding import EmbeddingVector
from ...core.domain.exceptions import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


class OllamaEmbeddingService(BaseEmbeddingService):
    """Ollama implementation with bounded timeouts and optional retries"""

    LOCAL_URL_KEYWORDS = ["localhost", "127.0.0.1", "host.docker.internal"]

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model_name: str = "bge-m3",
        dimensions: int = 1024,
        timeout: float = 30.0,
        max_retries: int = 1,
        retry_delay: float = 1.0,
        concurrency_limit: int = 4,
        max_text_length: int = 8000,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(model_name=model_name, dimensions=dimensions, max_text_length=max_text_length)
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.concurrency_limit = concurrency_limit

        limits = httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0
        )

        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            limits=limits,
            follow_redirects=True
        )

    def _is_local(self) -> bool:
        """Detect if Ollama endpoint is local"""
        base = self.base_url.lower()
        return any(kw in base for kw in self.LOCAL_URL_KEYWORDS)

    def _build_api_url(self) -> str:
        """Return the correct API endpoint"""
        if self._is_local():
            return f"{self.base_url}/api/embed"
        else:
            return f"{self.base_url}/api/embeddings"

    def _build_api_payload(self, text: str) -> dict:
        """Build payload for single text (works for both local and cloud)"""
        if self._is_local():
            return {
                "model": self.model_name,
                "input": text
            }
        else:
            return {
                "model": self.model_name,
                "prompt": text
            }

    def _extract_embedding(self, response_json: Any) -> List[float]:
        """Extract embedding vector from API response"""
        if not isinstance(response_json, dict):
            raise EmbeddingUnavailableError("Unexpected embedding response format")

        if self._is_local():
            embeddings = response_json.get("embeddings")
            if not embeddings:
                raise EmbeddingUnavailableError("No embeddings in response")
            embedding = embeddings[0]
        else:
            embedding = response_json.get("embedding")
            if not embedding:
                raise EmbeddingUnavailableError("No embedding in response")

        try:
            return [float(value) for value in embedding]
        except (TypeError, ValueError) as e:
            raise EmbeddingUnavailableError(f"Non-numeric embedding values: {e}") from e

    async def _make_request_with_retry(self, url: str, payload: dict, text_preview: str = "") -> dict:
        """Make HTTP request, retrying transient failures with exponential backoff"""
        last_error = None

        for attempt in range(self.max_retries):
            try:
                logger.debug(
                    f"Embedding request attempt {attempt + 1}/{self.max_retries} "
                    f"for text: {text_preview[:50]}..."
                )

                response = await self.client.post(url, json=payload, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(
                    f"Timeout after {self.timeout}s on attempt {attempt + 1}/{self.max_retries}"
                )

            except httpx.HTTPStatusError as e:
                last_error = e
                # Client errors will not succeed on retry
                if 400 <= e.response.status_code < 500:
                    logger.error(f"Client error (won't retry): {e.response.status_code} - {e.response.text}")
                    raise EmbeddingUnavailableError(
                        f"HTTP {e.response.status_code}: {e.response.text}"
                    ) from e
                logger.warning(
                    f"HTTP error {e.response.status_code} on attempt {attempt + 1}/{self.max_retries}"
                )

            except httpx.RequestError as e:
                last_error = e
                logger.warning(
                    f"Request error on attempt {attempt + 1}/{self.max_retries}: {str(e)}"
                )

            except ValueError as e:
                raise EmbeddingUnavailableError(f"Invalid JSON from embedding provider: {e}") from e

            if attempt < self.max_retries - 1:
                delay = self.retry_delay * (2 ** attempt)
                logger.info(f"Waiting {delay}s before retry...")
                await asyncio.sleep(delay)

        error_msg = f"Embedding provider unavailable after {self.max_retries} attempt(s)"
        if last_error:
            error_msg += f": {type(last_error).__name__}: {last_error}"
        logger.error(error_msg)
        raise EmbeddingUnavailableError(error_msg) from last_error

    async def generate_embedding(self, text: str) -> EmbeddingVector:
        """Generate embedding for single text"""
        text = self._validate_text(text)
        result = await self._make_request_with_retry(
            self._build_api_url(),
            self._build_api_payload(text),
            text_preview=text
        )
        values = self._validate_dimensions(self._extract_embedding(result))
        return EmbeddingVector(
            values=values,
            model_name=self.model_name,
            dimensions=len(values)
        )

    async def generate_embeddings_batch(self, texts: List[str]) -> List[EmbeddingVector]:
        """Generate embeddings concurrently, results in input order"""
        if not texts:
            return []

        texts = self._validate_batch(texts)
        semaphore = asyncio.Semaphore(self.concurrency_limit)
        logger.info(
            f"Generating embeddings for {len(texts)} texts "
            f"(concurrency={self.concurrency_limit})"
        )

        async def process_single_text(text: str) -> EmbeddingVector:
            async with semaphore:
                return await self.generate_embedding(text)

        embeddings = await asyncio.gather(*(process_single_text(text) for text in texts))
        logger.info(f"Successfully generated {len(embeddings)} embeddings")
        return list(embeddings)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
