"""Storage layer for AI Hub conversation history.

This module provides a local SQLite store for captured AI conversations with:
- Upsert by browser tab, with markdown and optional embeddings
- FTS5 keyword search over Unicode-segmented text, rebuilt on failure
- Linear-scan cosine similarity search over stored embeddings
- Filtered, paginated history listing with matching counts
- Transactional bulk delete and clear, with reset of corrupt databases

Example:
    >>> from aihub.storage import ConversationStore
    >>> store = await ConversationStore.create()
    >>> saved = await store.save("text", site_name="Gemini", url=url, created_at=ts, tab_id="tab-1")
    >>> results = await store.search_keyword("text")
    >>> total = await store.count_history(site_name="Gemini")
"""

from aihub.storage.conversation_store import ConversationStore
from aihub.storage.errors import (
    ConversationStoreError,
    NotFoundError,
    PrepareFailedError,
    ReadFailedError,
    StorageUnavailableError,
    WriteFailedError,
)
from aihub.storage.sqlite_store import SQLiteStore, is_corruption_error
from aihub.storage.types import Conversation, ConversationPreview, HistoryPage

__all__ = [
    "ConversationStore",
    "SQLiteStore",
    "is_corruption_error",
    "Conversation",
    "ConversationPreview",
    "HistoryPage",
    "ConversationStoreError",
    "StorageUnavailableError",
    "PrepareFailedError",
    "WriteFailedError",
    "ReadFailedError",
    "NotFoundError",
]
