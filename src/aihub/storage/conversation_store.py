"""Async conversation store with a single-lane work queue.

This module provides ConversationStore, the interface used by session and
summarizer logic. It wraps SQLiteStore and runs every call on one dedicated
worker thread:

- Calls execute strictly one at a time, in submission order, so mutations
  never interleave with each other or with queries
- Callers await results without blocking the event loop
- A call that has started runs to completion even if its caller is
  cancelled; each mutation is its own transaction

Usage:
    >>> async with await ConversationStore.create() as store:
    ...     saved = await store.save("page text", site_name="Claude", url=url, created_at=ts)
    ...     previews = await store.search_keyword("page")
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, Optional, TypeVar

from aihub.config import AIHubSettings
from aihub.constants import MAX_RESULTS
from aihub.storage.errors import StorageUnavailableError
from aihub.storage.sqlite_store import SQLiteStore
from aihub.storage.types import Conversation, ConversationPreview, HistoryPage
from aihub.types.history import HistoryFilter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _new_lane() -> ThreadPoolExecutor:
    # One worker: the queue is the only lock protecting the connection
    return ThreadPoolExecutor(max_workers=1, thread_name_prefix="conversation-store")


class ConversationStore:
    """Serialized async access to the conversation database.

    Args:
        sqlite_store: SQLiteStore owned by this store
        executor: Single-worker executor the store was created on

    Example:
        >>> store = await ConversationStore.create(Path("/tmp/history.sqlite"))
        >>> await store.clear_history()
        >>> await store.close()
    """

    def __init__(self, sqlite_store: SQLiteStore, executor: Optional[ThreadPoolExecutor] = None):
        self._sqlite = sqlite_store
        self._executor = executor or _new_lane()
        self._closed = False

    @classmethod
    async def create(
        cls,
        db_path: Optional[Path] = None,
        settings: Optional[AIHubSettings] = None,
    ) -> "ConversationStore":
        """Open the database on the work queue and return the store.

        Args:
            db_path: Database file; defaults to the configured path
            settings: Settings to use instead of reading the environment

        Returns:
            Ready ConversationStore
        """
        settings = settings or AIHubSettings()
        path = db_path or settings.get_db_path()

        executor = _new_lane()
        loop = asyncio.get_running_loop()
        sqlite_store = await loop.run_in_executor(
            executor,
            partial(SQLiteStore, path, busy_timeout_ms=settings.busy_timeout_ms),
        )
        logger.info(f"Conversation store ready at {path}")
        return cls(sqlite_store, executor)

    @property
    def db_path(self) -> Path:
        return self._sqlite.db_path

    async def _submit(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Queue a call on the store's lane and wait for its result."""
        if self._closed:
            raise StorageUnavailableError("Conversation store is closed")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, partial(func, *args, **kwargs))

    async def close(self) -> None:
        """Close the database after queued work finishes, then stop the lane."""
        if self._closed:
            return
        # Reject new work first; everything already queued runs before the close job
        self._closed = True
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._executor, self._sqlite.close)
        finally:
            self._executor.shutdown(wait=False)

    async def __aenter__(self) -> "ConversationStore":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit - close the database."""
        await self.close()

    # =========================================================================
    # Mutations
    # =========================================================================

    async def save(
        self,
        content: str,
        site_name: str,
        url: str,
        created_at: int,
        *,
        tab_id: Optional[str] = None,
        markdown: Optional[str] = None,
        embedding: Optional[Sequence[float]] = None,
    ) -> Conversation:
        """Save a conversation (upsert by tab_id). See SQLiteStore.save."""
        return await self._submit(
            self._sqlite.save,
            content,
            site_name,
            url,
            created_at,
            tab_id=tab_id,
            markdown=markdown,
            embedding=embedding,
        )

    async def delete_conversations(self, ids: Iterable[int]) -> None:
        """Delete conversations by id in one transaction."""
        # Materialize before queueing; the iterable may be consumed elsewhere
        await self._submit(self._sqlite.delete_conversations, list(ids))

    async def clear_history(self) -> None:
        """Delete every saved conversation."""
        await self._submit(self._sqlite.clear_history)

    async def rebuild_search_index(self) -> None:
        """Rebuild the keyword search index from stored conversations."""
        await self._submit(self._sqlite.rebuild_search_index)

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_recent(self, limit: int = MAX_RESULTS) -> list[ConversationPreview]:
        return await self._submit(self._sqlite.list_recent, limit)

    async def search_keyword(self, query: str) -> list[ConversationPreview]:
        return await self._submit(self._sqlite.search_keyword, query)

    async def search_semantic(self, query_embedding: Sequence[float]) -> list[ConversationPreview]:
        return await self._submit(self._sqlite.search_semantic, list(query_embedding))

    async def list_history(
        self,
        keyword: str = "",
        site_name: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        code_only: bool = False,
        limit: int = MAX_RESULTS,
        offset: int = 0,
    ) -> list[ConversationPreview]:
        return await self._submit(
            self._sqlite.list_history,
            keyword=keyword,
            site_name=site_name,
            start_time=start_time,
            end_time=end_time,
            code_only=code_only,
            limit=limit,
            offset=offset,
        )

    async def count_history(
        self,
        keyword: str = "",
        site_name: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        code_only: bool = False,
    ) -> int:
        return await self._submit(
            self._sqlite.count_history,
            keyword=keyword,
            site_name=site_name,
            start_time=start_time,
            end_time=end_time,
            code_only=code_only,
        )

    async def history_page(
        self,
        history_filter: HistoryFilter,
        page: int = 0,
        page_size: int = MAX_RESULTS,
    ) -> HistoryPage:
        """Listing and total for one page, computed in a single queued job."""
        return await self._submit(self._sqlite.history_page, history_filter, page, page_size)

    async def fetch_conversation(self, conversation_id: int) -> Optional[Conversation]:
        return await self._submit(self._sqlite.fetch_conversation, conversation_id)

    async def get_conversation(self, conversation_id: int) -> Conversation:
        return await self._submit(self._sqlite.get_conversation, conversation_id)

    async def fetch_conversations(self, ids: Iterable[int]) -> list[Conversation]:
        return await self._submit(self._sqlite.fetch_conversations, list(ids))

    async def count_conversations(self) -> int:
        return await self._submit(self._sqlite.count_conversations)
