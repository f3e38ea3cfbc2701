"""SQLite storage layer for saved AI conversations.

This module provides persistent storage for:
- Conversation transcripts and metadata (conversations)
- Full-text search (FTS5) over tokenized conversation text (conversations_fts)
- Caller-supplied embeddings for semantic search (conversation_embeddings)

The FTS table stores the segmented text produced by aihub.storage.tokenizer,
one row per conversation with rowid == conversation id. It is refreshed on
every save and rebuilt from the conversations table whenever it fails.

SQLiteStore is synchronous and not safe for concurrent use; the async
ConversationStore funnels every call through a single worker.

Example:
    >>> store = SQLiteStore(Path("~/.aihub/conversations.sqlite").expanduser())
    >>> saved = store.save("Hello", site_name="ChatGPT", url="https://chatgpt.com", created_at=1700000000)
    >>> previews = store.search_keyword("hello")
"""

import logging
import sqlite3
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any, Optional, TypeVar

from aihub.config import AIHubSettings
from aihub.constants import (
    CODE_FENCE_MARKER,
    CORRUPTION_MESSAGE_MARKERS,
    MAX_RESULTS,
    PREVIEW_SNIPPET_LENGTH,
    SCHEMA_VERSION,
    SQLITE_CORRUPT,
    SQLITE_NOTADB,
    SQLITE_SIDECAR_SUFFIXES,
)
from aihub.storage.errors import (
    NotFoundError,
    PrepareFailedError,
    ReadFailedError,
    StorageUnavailableError,
    WriteFailedError,
)
from aihub.storage.tokenizer import match_expression, searchable_text
from aihub.storage.types import Conversation, ConversationPreview, HistoryPage
from aihub.storage.vectors import (
    deserialize_embedding,
    rank_by_similarity,
    serialize_embedding,
    validate_embedding,
)
from aihub.types.history import HistoryFilter

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Keep IN (...) lists under SQLITE_MAX_VARIABLE_NUMBER on old builds
_ID_CHUNK_SIZE = 500

_CONVERSATION_COLUMNS = "id, tab_id, site_name, url, content, markdown, created_at"

_PREVIEW_COLUMNS = (
    "c.id, c.site_name, c.url, "
    f"substr(c.content, 1, {PREVIEW_SNIPPET_LENGTH}) AS snippet, c.created_at"
)

_CREATE_FTS = """
    CREATE VIRTUAL TABLE IF NOT EXISTS conversations_fts USING fts5(
        content
    )
"""

# Child tables first so a failure never leaves orphans behind
_DELETE_ORDER = (
    ("conversation_embeddings", "conversation_id"),
    ("conversations_fts", "rowid"),
    ("conversations", "id"),
)


def is_corruption_error(error: BaseException) -> bool:
    """Check whether a SQLite error means the database file is unusable.

    The structured result code is checked first (SQLITE_CORRUPT and
    SQLITE_NOTADB, including their extended variants). The message is
    inspected as well, since not every failure path carries a code.
    """
    code = getattr(error, "sqlite_errorcode", None)
    if isinstance(code, int) and (code & 0xFF) in (SQLITE_CORRUPT, SQLITE_NOTADB):
        return True
    message = str(error).lower()
    return any(marker in message for marker in CORRUPTION_MESSAGE_MARKERS)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _chunks(ids: Sequence[int], size: int = _ID_CHUNK_SIZE) -> Iterator[Sequence[int]]:
    for start in range(0, len(ids), size):
        yield ids[start : start + size]


def _unique_ids(ids: Iterable[int]) -> list[int]:
    """Deduplicate ids, keeping first-seen order."""
    return list(dict.fromkeys(int(i) for i in ids))


class SQLiteStore:
    """SQLite storage for conversations, their search index and embeddings.

    Args:
        db_path: Path to database file, or ":memory:".
                 Defaults to AIHubSettings().get_db_path()
        busy_timeout_ms: SQLite busy timeout in milliseconds

    Attributes:
        db_path: Path to database file
        _conn: SQLite connection, None when the database could not be opened
    """

    def __init__(self, db_path: Optional[Path] = None, busy_timeout_ms: int = 5000):
        """Open the database and create the schema.

        Opening and schema failures are logged, not raised; later calls
        report StorageUnavailableError if no handle could be obtained.
        """
        if db_path is None:
            db_path = AIHubSettings().get_db_path()
        self.db_path = Path(db_path)
        self._busy_timeout_ms = busy_timeout_ms
        self._conn: Optional[sqlite3.Connection] = None

        self._open()
        self._init_schema()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def _in_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    # =========================================================================
    # Connection and Schema
    # =========================================================================

    def _open(self) -> None:
        """Open the connection; leaves _conn as None on failure."""
        try:
            if not self._in_memory:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

            # Transactions are explicit (BEGIN IMMEDIATE ... COMMIT)
            conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            conn.create_function("searchable_text", 1, searchable_text, deterministic=True)
            self._conn = conn
            logger.debug(f"Opened conversation database at {self.db_path}")

        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to open conversation database at {self.db_path}: {e}")
            self._conn = None

    def _init_schema(self) -> None:
        """Create tables and apply additive migrations.

        Every step is best-effort: a failure is logged and the remaining
        steps still run.
        """
        if self._conn is None:
            return

        # WAL allows reads to overlap a write at the engine level
        self._schema_step("PRAGMA journal_mode = WAL")
        self._schema_step(f"PRAGMA busy_timeout = {int(self._busy_timeout_ms)}")

        self._schema_step(
            """
            CREATE TABLE IF NOT EXISTS conversations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                tab_id TEXT,
                site_name TEXT NOT NULL,
                url TEXT NOT NULL,
                content TEXT NOT NULL,
                markdown TEXT,
                created_at INTEGER NOT NULL
            )
        """
        )
        self._schema_step(_CREATE_FTS)
        self._schema_step(
            """
            CREATE TABLE IF NOT EXISTS conversation_embeddings (
                conversation_id INTEGER PRIMARY KEY,
                dimension INTEGER NOT NULL,
                vector BLOB NOT NULL
            )
        """
        )
        self._schema_step(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at REAL NOT NULL
            )
        """
        )

        # Databases created before tab upserts and markdown capture lack these
        self._migrate_add_column("conversations", "tab_id", "TEXT")
        self._migrate_add_column("conversations", "markdown", "TEXT")

        self._schema_step(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS idx_conversations_tab_id
            ON conversations(tab_id)
        """
        )
        self._schema_step(
            """
            CREATE INDEX IF NOT EXISTS idx_conversations_created
            ON conversations(created_at DESC)
        """
        )
        self._schema_step(
            """
            CREATE INDEX IF NOT EXISTS idx_conversations_site
            ON conversations(site_name)
        """
        )

        for version in range(1, SCHEMA_VERSION + 1):
            self._schema_step(
                "INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                (version, time.time()),
            )

    def _schema_step(self, sql: str, params: Sequence[Any] = ()) -> bool:
        if self._conn is None:
            return False
        try:
            self._conn.execute(sql, params)
            return True
        except sqlite3.Error as e:
            logger.warning(f"Schema step failed (continuing): {e}")
            return False

    def _column_names(self, table: str) -> set[str]:
        if self._conn is None:
            return set()
        try:
            rows = self._conn.execute(f"PRAGMA table_info({table})").fetchall()
        except sqlite3.Error as e:
            logger.warning(f"Failed to inspect columns of {table}: {e}")
            return set()
        return {row["name"] for row in rows}

    def _migrate_add_column(self, table: str, column: str, column_type: str) -> None:
        """Add a nullable column if the table exists and lacks it."""
        existing = self._column_names(table)
        if not existing or column in existing:
            return
        if self._schema_step(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}"):
            logger.info(f"Migrated {table}: added column {column}")

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageUnavailableError("Database not available")
        return self._conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside BEGIN IMMEDIATE ... COMMIT, rolling back on error."""
        conn = self._require_conn()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            # Deferred constraints are checked here; a failed COMMIT must roll back too
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                try:
                    conn.execute("ROLLBACK")
                except sqlite3.Error as rollback_error:
                    logger.warning(f"Rollback failed: {rollback_error}")
            raise

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def reset(self) -> None:
        """Destroy and recreate the database.

        Closes the handle, deletes the database file and its WAL/SHM/journal
        siblings, reopens and recreates the schema. All stored history is lost.
        """
        if self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error as e:
                logger.warning(f"Error closing database before reset: {e}")
            self._conn = None

        if not self._in_memory:
            paths = [self.db_path] + [
                self.db_path.with_name(self.db_path.name + suffix)
                for suffix in SQLITE_SIDECAR_SUFFIXES
            ]
            for path in paths:
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    logger.error(f"Failed to remove {path} during reset: {e}")

        self._open()
        self._init_schema()
        logger.warning(f"Conversation database at {self.db_path} was reset")

    def _run_mutation(
        self,
        action: str,
        operation: Callable[[], T],
        retry_after_reset: bool = False,
    ) -> Optional[T]:
        """Run a mutation, resetting the database if it turns out corrupt.

        Args:
            action: Description used in log and error messages
            operation: Callable performing the whole transaction
            retry_after_reset: Run the operation again on the fresh database

        Returns:
            The operation's result, or None when the reset alone completed it

        Raises:
            WriteFailedError: If the operation fails for any other reason
        """
        try:
            return operation()
        except sqlite3.Error as e:
            if not is_corruption_error(e):
                raise WriteFailedError(f"Failed to {action}: {e}") from e
            logger.error(f"Corrupt database detected during {action}: {e}; resetting")

        self.reset()
        if not retry_after_reset:
            return None

        try:
            return operation()
        except sqlite3.Error as e:
            raise WriteFailedError(f"Failed to {action} after reset: {e}") from e

    # =========================================================================
    # Search Index Maintenance
    # =========================================================================

    def _write_fts_entry(self, conn: sqlite3.Connection, conversation_id: int, text: str) -> None:
        conn.execute("DELETE FROM conversations_fts WHERE rowid = ?", (conversation_id,))
        conn.execute(
            "INSERT INTO conversations_fts (rowid, content) VALUES (?, ?)",
            (conversation_id, text),
        )

    def _refresh_fts_entry(self, conn: sqlite3.Connection, conversation_id: int, content: str) -> None:
        """Replace the index row of one conversation, rebuilding the index once on failure."""
        text = searchable_text(content)
        try:
            self._write_fts_entry(conn, conversation_id, text)
        except sqlite3.Error as e:
            logger.warning(f"Search index update failed for {conversation_id}: {e}; rebuilding")
            self._rebuild_fts(conn)
            self._write_fts_entry(conn, conversation_id, text)

    def _rebuild_fts(self, conn: sqlite3.Connection) -> None:
        """Recreate the FTS table from the conversations table."""
        logger.warning("Rebuilding conversation search index")
        conn.execute("DROP TABLE IF EXISTS conversations_fts")
        conn.execute(_CREATE_FTS)
        conn.execute(
            """
            INSERT INTO conversations_fts (rowid, content)
            SELECT id, searchable_text(content) FROM conversations
            """
        )

    def rebuild_search_index(self) -> None:
        """Rebuild the keyword search index from stored conversations.

        Raises:
            StorageUnavailableError: If the database is not open
            WriteFailedError: If the rebuild fails
        """

        def operation() -> None:
            with self._transaction() as conn:
                self._rebuild_fts(conn)

        self._run_mutation("rebuild search index", operation)

    def _fetch_rows(
        self,
        action: str,
        sql: str,
        params: Sequence[Any],
        uses_fts: bool = False,
    ) -> list[sqlite3.Row]:
        """Run a read query.

        Queries touching the FTS index get one rebuild-and-retry.
        """
        conn = self._require_conn()
        try:
            return self._query(conn, sql, params)
        except sqlite3.Error as e:
            if not uses_fts:
                raise ReadFailedError(f"Failed to {action}: {e}") from e
            logger.warning(f"Search query failed during {action}: {e}; rebuilding index")

        try:
            with self._transaction() as tx:
                self._rebuild_fts(tx)
            return self._query(conn, sql, params)
        except sqlite3.Error as e:
            raise PrepareFailedError(f"Failed to {action}: {e}") from e

    @staticmethod
    def _query(conn: sqlite3.Connection, sql: str, params: Sequence[Any]) -> list[sqlite3.Row]:
        with closing(conn.cursor()) as cursor:
            cursor.execute(sql, params)
            return cursor.fetchall()

    # =========================================================================
    # Mutations
    # =========================================================================

    def save(
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
        """Save a conversation, updating in place when the tab was saved before.

        Args:
            content: Extracted page text
            site_name: Site display name
            url: Page URL
            created_at: Unix timestamp in seconds
            tab_id: Browser tab id; an existing row for the tab is updated
            markdown: Rendered markdown form of the content
            embedding: Pre-computed embedding; omitting it removes any stored one

        Returns:
            The stored conversation with its id

        Raises:
            ValueError: If the embedding contains NaN or infinite values
            StorageUnavailableError: If the database is not open
            WriteFailedError: If the write fails
        """
        tab_id = tab_id or None
        created_at = int(created_at)
        vector = None
        if embedding is not None and len(embedding) > 0:
            vector = validate_embedding(embedding)

        def operation() -> Conversation:
            with self._transaction() as conn:
                if tab_id is not None:
                    conn.execute(
                        """
                        INSERT INTO conversations
                            (tab_id, site_name, url, content, markdown, created_at)
                        VALUES (?, ?, ?, ?, ?, ?)
                        ON CONFLICT(tab_id) DO UPDATE SET
                            site_name = excluded.site_name,
                            url = excluded.url,
                            content = excluded.content,
                            markdown = excluded.markdown,
                            created_at = excluded.created_at
                        """,
                        (tab_id, site_name, url, content, markdown, created_at),
                    )
                    row = conn.execute(
                        "SELECT id FROM conversations WHERE tab_id = ?", (tab_id,)
                    ).fetchone()
                    conversation_id = int(row["id"])
                else:
                    cursor = conn.execute(
                        """
                        INSERT INTO conversations
                            (tab_id, site_name, url, content, markdown, created_at)
                        VALUES (NULL, ?, ?, ?, ?, ?)
                        """,
                        (site_name, url, content, markdown, created_at),
                    )
                    conversation_id = int(cursor.lastrowid)

                self._refresh_fts_entry(conn, conversation_id, content)

                if vector is not None:
                    conn.execute(
                        """
                        INSERT OR REPLACE INTO conversation_embeddings
                            (conversation_id, dimension, vector)
                        VALUES (?, ?, ?)
                        """,
                        (conversation_id, int(vector.size), serialize_embedding(vector)),
                    )
                else:
                    conn.execute(
                        "DELETE FROM conversation_embeddings WHERE conversation_id = ?",
                        (conversation_id,),
                    )

            return Conversation(
                id=conversation_id,
                site_name=site_name,
                url=url,
                content=content,
                created_at=created_at,
                tab_id=tab_id,
                markdown=markdown,
            )

        saved = self._run_mutation("save conversation", operation, retry_after_reset=True)
        if saved is None:
            raise WriteFailedError("Failed to save conversation")
        logger.debug(f"Saved conversation {saved.id} (tab={tab_id}, site={site_name})")
        return saved

    def _delete_rows(
        self,
        conn: sqlite3.Connection,
        table: str,
        column: str,
        ids: Sequence[int],
    ) -> None:
        for chunk in _chunks(ids):
            placeholders = ",".join("?" * len(chunk))
            conn.execute(f"DELETE FROM {table} WHERE {column} IN ({placeholders})", chunk)

    def delete_conversations(self, ids: Iterable[int]) -> None:
        """Delete conversations with their index rows and embeddings.

        Duplicate ids are ignored. All three tables change in one
        transaction. A corrupt database is reset instead of reported.

        Raises:
            StorageUnavailableError: If the database is not open
            WriteFailedError: If the delete fails (nothing is removed)
        """
        unique_ids = _unique_ids(ids)
        if not unique_ids:
            return

        def operation() -> None:
            with self._transaction() as conn:
                for table, column in _DELETE_ORDER:
                    self._delete_rows(conn, table, column, unique_ids)

        self._run_mutation("delete conversations", operation)
        logger.debug(f"Deleted {len(unique_ids)} conversation(s)")

    def clear_history(self) -> None:
        """Delete every conversation. A corrupt database is reset instead.

        Raises:
            StorageUnavailableError: If the database is not open
            WriteFailedError: If the wipe fails (nothing is removed)
        """

        def operation() -> None:
            with self._transaction() as conn:
                for table, _ in _DELETE_ORDER:
                    conn.execute(f"DELETE FROM {table}")

        self._run_mutation("clear history", operation)
        logger.info("Conversation history cleared")

    # =========================================================================
    # Queries
    # =========================================================================

    def list_recent(self, limit: int = MAX_RESULTS) -> list[ConversationPreview]:
        """List the most recently saved conversations (at most 50)."""
        rows = self._fetch_rows(
            "list recent conversations",
            f"""
            SELECT {_PREVIEW_COLUMNS}
            FROM conversations c
            ORDER BY c.created_at DESC, c.id DESC
            LIMIT ?
            """,
            (_clamp(limit, 1, MAX_RESULTS),),
        )
        return [ConversationPreview.from_row(row) for row in rows]

    def search_keyword(self, query: str) -> list[ConversationPreview]:
        """FTS5 search with BM25 ranking.

        Every query token must appear as a word prefix. Queries without
        tokens return no results.

        Raises:
            PrepareFailedError: If the search fails even after an index rebuild
        """
        expression = match_expression(query or "")
        if expression is None:
            return []

        # bm25() is lower-is-better, so ascending order is best-first
        rows = self._fetch_rows(
            "search conversations",
            f"""
            SELECT {_PREVIEW_COLUMNS}
            FROM conversations_fts
            JOIN conversations c ON c.id = conversations_fts.rowid
            WHERE conversations_fts MATCH ?
            ORDER BY bm25(conversations_fts)
            LIMIT ?
            """,
            (expression, MAX_RESULTS),
            uses_fts=True,
        )
        return [ConversationPreview.from_row(row) for row in rows]

    def search_semantic(self, query_embedding: Sequence[float]) -> list[ConversationPreview]:
        """Rank conversations by cosine similarity to the query embedding.

        Only embeddings with the query's dimension are compared. This is a
        full scan of the embeddings table.

        Raises:
            ValueError: If the query contains NaN or infinite values
            ReadFailedError: If the scan fails
        """
        if query_embedding is None or len(query_embedding) == 0:
            return []
        query = validate_embedding(query_embedding)

        rows = self._fetch_rows(
            "scan embeddings",
            """
            SELECT conversation_id, vector
            FROM conversation_embeddings
            WHERE dimension = ?
            ORDER BY conversation_id
            """,
            (int(query.size),),
        )
        candidates = [
            (int(row["conversation_id"]), deserialize_embedding(row["vector"])) for row in rows
        ]
        ranked = rank_by_similarity(query, candidates, MAX_RESULTS)

        results: list[ConversationPreview] = []
        for conversation_id, _score in ranked:
            preview = self._fetch_preview(conversation_id)
            if preview is not None:
                results.append(preview)
        return results

    def _fetch_preview(self, conversation_id: int) -> Optional[ConversationPreview]:
        rows = self._fetch_rows(
            "fetch conversation preview",
            f"SELECT {_PREVIEW_COLUMNS} FROM conversations c WHERE c.id = ?",
            (conversation_id,),
        )
        return ConversationPreview.from_row(rows[0]) if rows else None

    def _history_clause(
        self,
        keyword: str,
        site_name: Optional[str],
        start_time: Optional[int],
        end_time: Optional[int],
        code_only: bool,
    ) -> Optional[tuple[str, list[Any], bool]]:
        """Build the FROM/WHERE clause shared by history listing and counting.

        Returns:
            (clause, params, uses_fts), or None when the keyword has no
            searchable tokens and therefore matches nothing
        """
        source = "conversations c"
        conditions: list[str] = []
        params: list[Any] = []
        uses_fts = False

        keyword = (keyword or "").strip()
        if keyword:
            expression = match_expression(keyword)
            if expression is None:
                return None
            # Only keyword filters pay for the index join
            source = "conversations_fts JOIN conversations c ON c.id = conversations_fts.rowid"
            conditions.append("conversations_fts MATCH ?")
            params.append(expression)
            uses_fts = True

        if site_name:
            conditions.append("c.site_name = ?")
            params.append(site_name)

        if start_time is not None:
            conditions.append("c.created_at >= ?")
            params.append(int(start_time))

        if end_time is not None:
            conditions.append("c.created_at <= ?")
            params.append(int(end_time))

        if code_only:
            conditions.append("instr(coalesce(c.markdown, ''), ?) > 0")
            params.append(CODE_FENCE_MARKER)

        where = " WHERE " + " AND ".join(conditions) if conditions else ""
        return f"FROM {source}{where}", params, uses_fts

    def list_history(
        self,
        keyword: str = "",
        site_name: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        code_only: bool = False,
        limit: int = MAX_RESULTS,
        offset: int = 0,
    ) -> list[ConversationPreview]:
        """List conversations matching all given filters, newest first.

        Args:
            keyword: Full-text filter; blank means no keyword filter
            site_name: Exact site name; None or blank means any site
            start_time: Inclusive lower bound on created_at
            end_time: Inclusive upper bound on created_at
            code_only: Only conversations whose markdown has a fenced code block
            limit: Page size (at least 1)
            offset: Rows to skip

        Returns:
            Matching previews
        """
        clause = self._history_clause(keyword, site_name, start_time, end_time, code_only)
        if clause is None:
            return []
        sql_clause, params, uses_fts = clause

        rows = self._fetch_rows(
            "list history",
            f"""
            SELECT {_PREVIEW_COLUMNS}
            {sql_clause}
            ORDER BY c.created_at DESC, c.id DESC
            LIMIT ? OFFSET ?
            """,
            params + [max(1, limit), max(0, offset)],
            uses_fts=uses_fts,
        )
        return [ConversationPreview.from_row(row) for row in rows]

    def count_history(
        self,
        keyword: str = "",
        site_name: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        code_only: bool = False,
    ) -> int:
        """Count conversations matching the filters of list_history."""
        clause = self._history_clause(keyword, site_name, start_time, end_time, code_only)
        if clause is None:
            return 0
        sql_clause, params, uses_fts = clause

        rows = self._fetch_rows(
            "count history",
            f"SELECT COUNT(*) {sql_clause}",
            params,
            uses_fts=uses_fts,
        )
        return rows[0][0] if rows else 0

    def history_page(
        self,
        history_filter: HistoryFilter,
        page: int = 0,
        page_size: int = MAX_RESULTS,
        now: Optional[float] = None,
    ) -> HistoryPage:
        """Fetch one page of filtered history together with the total count."""
        query = history_filter.to_query(now=now)
        limit = max(1, page_size)
        offset = max(0, page) * limit
        return HistoryPage(
            items=self.list_history(**query, limit=limit, offset=offset),
            total=self.count_history(**query),
            offset=offset,
            limit=limit,
        )

    def fetch_conversation(self, conversation_id: int) -> Optional[Conversation]:
        """Get a conversation with its full content, or None if absent."""
        rows = self._fetch_rows(
            "fetch conversation",
            f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE id = ?",
            (int(conversation_id),),
        )
        return Conversation.from_row(rows[0]) if rows else None

    def get_conversation(self, conversation_id: int) -> Conversation:
        """Get a conversation with its full content.

        Raises:
            NotFoundError: If no conversation has this id
        """
        conversation = self.fetch_conversation(conversation_id)
        if conversation is None:
            raise NotFoundError(int(conversation_id))
        return conversation

    def fetch_conversations(self, ids: Iterable[int]) -> list[Conversation]:
        """Get several conversations by id, newest first. Unknown ids are skipped."""
        unique_ids = _unique_ids(ids)
        results: list[Conversation] = []
        for chunk in _chunks(unique_ids):
            placeholders = ",".join("?" * len(chunk))
            rows = self._fetch_rows(
                "fetch conversations",
                f"""
                SELECT {_CONVERSATION_COLUMNS}
                FROM conversations
                WHERE id IN ({placeholders})
                """,
                list(chunk),
            )
            results.extend(Conversation.from_row(row) for row in rows)

        results.sort(key=lambda c: (c.created_at, c.id), reverse=True)
        return results

    def count_conversations(self) -> int:
        """Get total number of stored conversations."""
        rows = self._fetch_rows("count conversations", "SELECT COUNT(*) FROM conversations", ())
        return rows[0][0] if rows else 0
