"""Embedding storage and cosine-similarity search mixin.

Vectors are stored as float32 blobs; queries load them into a numpy matrix
and rank by cosine similarity. Message histories are small enough (tens of
thousands of chunks at most) that a brute-force scan is fast.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from unmask.errors import ErrorCode, VectorizeError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from unmask.db.core import UnmaskDBBase

logger = logging.getLogger(__name__)


@dataclass
class VectorMatch:
    """A single nearest-neighbour result."""

    vector_id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.vector_id, "score": round(self.score, 6), "metadata": self.metadata}


def _to_blob(embedding: Sequence[float] | np.ndarray) -> tuple[bytes, int]:
    arr = np.asarray(embedding, dtype=np.float32)
    if arr.ndim != 1 or arr.size == 0:
        raise VectorizeError(
            "Embedding must be a non-empty 1-D vector",
            code=ErrorCode.VEC_DIMENSION_MISMATCH,
        )
    return arr.tobytes(), int(arr.size)


class VectorMixin:
    """Mixin providing the chunk vector store."""

    def upsert_vector(
        self: UnmaskDBBase,
        vector_id: str,
        embedding: Sequence[float] | np.ndarray,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        blob, dim = _to_blob(embedding)
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO chunk_vectors (vector_id, embedding, dim, metadata_json)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(vector_id) DO UPDATE SET
                    embedding = excluded.embedding,
                    dim = excluded.dim,
                    metadata_json = excluded.metadata_json
                """,
                (vector_id, blob, dim, json.dumps(metadata or {})),
            )

    def count_vectors(self: UnmaskDBBase) -> int:
        with self.connection() as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM chunk_vectors").fetchone()
            return int(row["count"])

    def vector_dimensions(self: UnmaskDBBase) -> list[int]:
        """Distinct dimensions present in the store."""
        with self.connection() as conn:
            return [r["dim"] for r in conn.execute("SELECT DISTINCT dim FROM chunk_vectors")]

    def query_vectors(
        self: UnmaskDBBase,
        query: Sequence[float] | np.ndarray,
        top_k: int = 5,
    ) -> list[VectorMatch]:
        """Return the top_k stored vectors most similar to query.

        Vectors whose dimension differs from the query are ignored.

        Args:
            query: Query embedding.
            top_k: Number of matches to return.

        Returns:
            Matches ordered by descending cosine similarity.
        """
        q = np.asarray(query, dtype=np.float32)
        q_norm = float(np.linalg.norm(q))
        if q.ndim != 1 or q_norm == 0.0 or top_k <= 0:
            return []

        with self.connection() as conn:
            rows = conn.execute(
                "SELECT vector_id, embedding, metadata_json FROM chunk_vectors WHERE dim = ?",
                (int(q.size),),
            ).fetchall()

        if not rows:
            return []

        matrix = np.vstack([np.frombuffer(r["embedding"], dtype=np.float32) for r in rows])
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0] = 1.0
        scores = (matrix @ q) / (norms * q_norm)

        k = min(top_k, len(rows))
        top = np.argpartition(-scores, k - 1)[:k]
        top = top[np.argsort(-scores[top])]

        matches = []
        for idx in top:
            row = rows[int(idx)]
            try:
                metadata = json.loads(row["metadata_json"] or "{}")
            except json.JSONDecodeError:
                logger.warning("Corrupt metadata for vector %s", row["vector_id"])
                metadata = {}
            matches.append(VectorMatch(row["vector_id"], float(scores[idx]), metadata))
        return matches

    def clear_vectors(self: UnmaskDBBase) -> int:
        with self.connection() as conn:
            return conn.execute("DELETE FROM chunk_vectors").rowcount
