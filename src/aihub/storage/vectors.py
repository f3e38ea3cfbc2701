"""Embedding serialization and cosine similarity ranking.

Vectors are stored as little-endian float32 blobs. Similarity is computed
with a plain linear scan: a single user's history is small enough that an
approximate index would cost more than it saves.
"""

from collections.abc import Sequence

import numpy as np

_DTYPE = np.dtype("<f4")


def serialize_embedding(embedding: Sequence[float]) -> bytes:
    """Serialize embedding to bytes for storage."""
    return np.asarray(embedding, dtype=_DTYPE).tobytes()


def deserialize_embedding(data: bytes) -> np.ndarray:
    """Deserialize embedding from bytes (4 bytes per float)."""
    usable = len(data) - len(data) % _DTYPE.itemsize
    return np.frombuffer(data[:usable], dtype=_DTYPE)


def validate_embedding(embedding: Sequence[float]) -> np.ndarray:
    """Convert an embedding to float32, rejecting NaN and infinity.

    Raises:
        ValueError: If the vector is not one-dimensional or not finite
    """
    vector = np.asarray(embedding, dtype=_DTYPE)
    if vector.ndim != 1:
        raise ValueError(f"Embedding must be one-dimensional, got shape {vector.shape}")
    if not np.all(np.isfinite(vector)):
        raise ValueError("Embedding contains NaN or infinite values")
    return vector


def rank_by_similarity(
    query: Sequence[float],
    candidates: Sequence[tuple[int, np.ndarray]],
    limit: int,
) -> list[tuple[int, float]]:
    """Score candidates against the query and return the best first.

    Args:
        query: Query vector
        candidates: (conversation_id, vector) pairs; vectors whose length
            differs from the query are skipped
        limit: Maximum number of results

    Returns:
        (conversation_id, similarity) pairs sorted by similarity descending;
        equal scores keep candidate order
    """
    q = np.asarray(query, dtype=np.float64)
    usable = [(cid, vec) for cid, vec in candidates if vec.size == q.size]
    if not usable or q.size == 0 or limit <= 0:
        return []

    ids = np.array([cid for cid, _ in usable], dtype=np.int64)
    matrix = np.vstack([vec for _, vec in usable]).astype(np.float64)

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    scores = np.zeros(len(usable), dtype=np.float64)
    np.divide(dots, norms, out=scores, where=norms != 0)

    order = np.argsort(-scores, kind="stable")[:limit]
    return [(int(ids[i]), float(scores[i])) for i in order]
