import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence
import chromadb
from chromadb.api import ClientAPI
from chromadb.config import Settings
from ...core.ports.vector_store import BaselineIndex
from ...core.domain.entities.baseline_entry import BaselineEntry, BaselineMatch
from ...core.domain.value_objects.embedding import EmbeddingVector
from ...core.domain.exceptions import (
    DomainException,
    DimensionMismatchError,
    CollectionConfigMismatchError,
    IndexUnavailableError,
)

logger = logging.getLogger(__name__)


def create_chroma_client(
        persist_directory: Optional[str] = None,
        host: Optional[str] = None,
        port: int = 8000,
) -> ClientAPI:
    """
    Build a Chroma client: remote HttpClient when a host is given, otherwise
    a local PersistentClient rooted at persist_directory.
    """
    settings = Settings(anonymized_telemetry=False)
    try:
        if host:
            logger.info(f"Connecting to Chroma server at {host}:{port}")
            return chromadb.HttpClient(host=host, port=port, settings=settings)
        logger.info(f"Opening persistent Chroma store at {persist_directory}")
        return chromadb.PersistentClient(path=persist_directory, settings=settings)
    except Exception as e:
        raise IndexUnavailableError(f"Could not open Chroma client: {e}") from e


class ChromaBaselineIndexAdapter(BaselineIndex):
    """
    Chroma-based implementation of the BaselineIndex port.

    Chroma's client is synchronous, so every call runs on a private thread pool
    and is bounded by ``timeout`` seconds.
    """

    def __init__(
            self,
            client: ClientAPI,
            collection_name: str,
            vector_size: int,
            timeout: float = 10.0,
            max_workers: int = 4,
    ):
        """
        Args:
            client: Chroma client (persistent, http or ephemeral).
            collection_name: Collection used for query_nearest/upsert/count.
            vector_size: Expected dimensionality of every stored vector.
            timeout: Per-call timeout in seconds.
            max_workers: Size of the thread pool running Chroma calls.
        """
        self._client = client
        self._collection_name = collection_name
        self._vector_size = vector_size
        self._timeout = timeout
        self._collection = None
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="chroma")

    @property
    def collection_name(self) -> str:
        return self._collection_name

    async def _run(self, func: Callable, *args: Any) -> Any:
        """Run a synchronous Chroma call off the event loop with a timeout"""
        # A timed-out call is abandoned, not cancelled: its worker stays busy until
        # Chroma returns, so at most max_workers calls can be in flight.
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(self._executor, func, *args),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Chroma call {func.__name__} timed out after {self._timeout}s")
            raise IndexUnavailableError(f"Vector store timed out after {self._timeout}s") from e
        except DomainException:
            raise
        except Exception as e:
            logger.error(f"Chroma call {func.__name__} failed: {e}")
            raise IndexUnavailableError(f"Vector store unavailable: {e}") from e

    @staticmethod
    def _collection_settings(vector_size: int, distance_metric: str) -> Dict[str, Any]:
        return {"vector_size": vector_size, "distance_metric": distance_metric}

    async def ensure_collection(self, name: str, vector_size: int, distance_metric: str) -> bool:
        return await self._run(self._ensure_collection_sync, name, vector_size, distance_metric)

    def _collection_exists_sync(self, name: str) -> bool:
        # Older clients list names, newer ones list Collection objects
        return any(getattr(c, "name", c) == name for c in self._client.list_collections())

    def _ensure_collection_sync(self, name: str, vector_size: int, distance_metric: str) -> bool:
        expected = self._collection_settings(vector_size, distance_metric)
        created = False
        if self._collection_exists_sync(name):
            collection = self._client.get_collection(name=name, embedding_function=None)
        else:
            collection = self._client.get_or_create_collection(
                name=name,
                configuration={"hnsw": {"space": distance_metric}},
                metadata=expected,
                embedding_function=None,
            )
            created = True
            logger.info(f"Created Chroma collection '{name}' ({expected})")

        metadata = collection.metadata or {}
        actual = {key: metadata.get(key) for key in expected}
        if actual != expected:
            raise CollectionConfigMismatchError(name, expected, actual)

        if name == self._collection_name:
            self._collection = collection
        return created

    def _get_collection_sync(self):
        """Return the cached collection handle, or None if it does not exist"""
        if self._collection is None:
            if not self._collection_exists_sync(self._collection_name):
                return None
            self._collection = self._client.get_collection(
                name=self._collection_name, embedding_function=None
            )
        return self._collection

    async def upsert(self, entries: Sequence[BaselineEntry]) -> int:
        if not entries:
            return 0
        for entry in entries:
            if entry.embedding.dimensions != self._vector_size:
                raise DimensionMismatchError(
                    self._vector_size, entry.embedding.dimensions, source=f"baseline entry {entry.id}"
                )
        return await self._run(self._upsert_sync, list(entries))

    def _upsert_sync(self, entries: List[BaselineEntry]) -> int:
        collection = self._get_collection_sync()
        if collection is None:
            raise IndexUnavailableError(
                f"Collection '{self._collection_name}' does not exist; call ensure_collection first"
            )
        collection.upsert(
            ids=[entry.id for entry in entries],
            embeddings=[list(entry.embedding.values) for entry in entries],
            documents=[entry.text for entry in entries],
            metadatas=[{"embedding_model": entry.embedding.model_name} for entry in entries],
        )
        return len(entries)

    async def query_nearest(self, vector: EmbeddingVector, top_k: int = 1) -> List[BaselineMatch]:
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        if vector.dimensions != self._vector_size:
            raise DimensionMismatchError(self._vector_size, vector.dimensions, source="query vector")
        return await self._run(self._query_nearest_sync, vector, top_k)

    def _query_nearest_sync(self, vector: EmbeddingVector, top_k: int) -> List[BaselineMatch]:
        collection = self._get_collection_sync()
        if collection is None:
            return []
        available = collection.count()
        if available == 0:
            return []

        results = collection.query(
            query_embeddings=[list(vector.values)],
            n_results=min(top_k, available),
            include=["documents", "metadatas", "distances", "embeddings"],
        )

        ids_list = results.get("ids") or [[]]
        documents_list = results.get("documents") or [[]]
        metadatas_list = results.get("metadatas") or [[]]
        distances_list = results.get("distances") or [[]]
        embeddings_list = results.get("embeddings")
        if embeddings_list is None:
            embeddings_list = [[]]

        matches: List[BaselineMatch] = []
        for idx, entry_id in enumerate(ids_list[0]):
            # Cosine distance from Chroma: similarity = 1 - distance, range [-1, 1]
            similarity = 1.0 - float(distances_list[0][idx])
            metadata = metadatas_list[0][idx] if metadatas_list[0] else None
            values = [float(v) for v in embeddings_list[0][idx]]
            embedding = EmbeddingVector(
                values=values,
                model_name=(metadata or {}).get("embedding_model", ""),
                dimensions=len(values),
            )
            matches.append(BaselineMatch(
                entry=BaselineEntry(id=entry_id, text=documents_list[0][idx] or "", embedding=embedding),
                similarity=similarity,
            ))

        matches.sort(key=lambda match: match.similarity, reverse=True)
        return matches

    async def count(self) -> int:
        return await self._run(self._count_sync)

    def _count_sync(self) -> int:
        collection = self._get_collection_sync()
        return collection.count() if collection is not None else 0

    async def retain_only(self, ids: Sequence[str]) -> int:
        return await self._run(self._retain_only_sync, set(ids))

    def _retain_only_sync(self, keep: set) -> int:
        collection = self._get_collection_sync()
        if collection is None:
            return 0
        stored = collection.get(include=[])
        stale = [entry_id for entry_id in stored.get("ids") or [] if entry_id not in keep]
        if stale:
            collection.delete(ids=stale)
            logger.info(f"Deleted {len(stale)} stale entries from '{self._collection_name}'")
        return len(stale)

    async def delete_collection(self, name: str) -> bool:
        return await self._run(self._delete_collection_sync, name)

    def _delete_collection_sync(self, name: str) -> bool:
        if not self._collection_exists_sync(name):
            return False
        self._client.delete_collection(name=name)
        if name == self._collection_name:
            self._collection = None
        logger.info(f"Deleted Chroma collection '{name}'")
        return True

    def close(self) -> None:
        self._executor.shutdown(wait=True)
