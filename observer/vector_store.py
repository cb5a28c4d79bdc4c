# =============================================================================
# Inner Voice - Best-Effort Vector Store
# =============================================================================
# Mirrors each applied observation into a Qdrant collection over its REST
# API. Points carry a zero-vector placeholder and the description, timestamp
# and image as payload. The first failure of any kind, including an
# already-existing collection, disables the integration for the rest of the
# session; it is never retried.
# Calls are serialized so concurrent first use creates the collection once.
# =============================================================================

import base64
import logging
import threading

import numpy as np
import requests

from observer.session import Frame, Observation
from shared.errors import BestEffortIntegrationError

logger = logging.getLogger(__name__)


class VectorStore:
    """
    Best-effort Qdrant sink for observations.

    Args:
        url:        Qdrant base URL (e.g., "http://localhost:6333").
        collection: Collection name, created on first use.
        dimension:  Vector size of the collection.
        timeout:    Request timeout in seconds.
    """

    def __init__(self, url: str, collection: str, dimension: int = 512, timeout: float = 60.0):
        self._url = url.rstrip("/")
        self._collection = collection
        self._dimension = dimension
        self._timeout = timeout
        self._session = requests.Session()
        self._collection_ready = False
        self._lock = threading.Lock()
        self.enabled = True

    @classmethod
    def from_config(cls, config) -> "VectorStore":
        return cls(
            url=config.vector_store_url,
            collection=config.vector_store_collection,
            dimension=config.vector_store_dimension,
            timeout=config.http_timeout_seconds,
        )

    def _put(self, path: str, body: dict) -> None:
        try:
            response = self._session.put(f"{self._url}{path}", json=body, timeout=self._timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise BestEffortIntegrationError(f"PUT {path} failed: {exc}") from exc

    def _ensure_collection(self) -> None:
        if self._collection_ready:
            return
        self._put(
            f"/collections/{self._collection}",
            {"vectors": {"size": self._dimension, "distance": "Cosine"}},
        )
        self._collection_ready = True
        logger.info("Created vector collection %s (dim=%d)", self._collection, self._dimension)

    def upsert(self, observation: Observation, frame: Frame) -> None:
        """
        Store one point for the observation.

        Raises:
            BestEffortIntegrationError: On any failure.
        """
        self._ensure_collection()
        point = {
            "id": observation.frame_id,
            "vector": np.zeros(self._dimension, dtype=np.float32).tolist(),
            "payload": {
                "description": observation.description,
                "timestamp": observation.timestamp,
                "image": base64.b64encode(frame.data).decode("ascii"),
            },
        }
        self._put(f"/collections/{self._collection}/points?wait=true", {"points": [point]})

    def record(self, observation: Observation, frame: Frame) -> bool:
        """
        Upsert if still enabled; disable permanently on the first failure.

        Returns:
            True if the point was stored.
        """
        with self._lock:
            if not self.enabled:
                return False
            try:
                self.upsert(observation, frame)
            except BestEffortIntegrationError as exc:
                self.enabled = False
                logger.warning("Vector store disabled for this session: %s", exc)
                return False
            return True

    def close(self) -> None:
        self._session.close()
