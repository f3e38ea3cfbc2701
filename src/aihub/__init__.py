"""AI Hub history - local store for captured AI-conversation transcripts.

Saved conversations can be listed by recency, searched by keyword through an
FTS5 index, searched semantically against caller-supplied embeddings, and
browsed with filters and pagination.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
