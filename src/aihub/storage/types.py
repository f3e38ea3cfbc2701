"""Storage layer types for the conversation store.

This module defines the rows returned by the storage layer:
- Conversation: A saved transcript with full content
- ConversationPreview: Read-only projection used by listings and searches
- HistoryPage: One page of filtered history plus the matching total
"""

import sqlite3
from dataclasses import dataclass, field
from typing import Optional

from aihub.constants import SHORT_SNIPPET_LENGTH


@dataclass
class Conversation:
    """A captured AI conversation.

    Attributes:
        id: Row id assigned by the database
        site_name: Display name of the AI site
        url: Page URL the text was captured from
        content: Raw extracted page text
        created_at: Unix timestamp in seconds
        tab_id: Browser tab the capture belongs to (upsert key)
        markdown: Rendered markdown form of the content
    """

    id: int
    site_name: str
    url: str
    content: str
    created_at: int
    tab_id: Optional[str] = None
    markdown: Optional[str] = None

    @property
    def snippet(self) -> str:
        """Trimmed content shortened for compact lists."""
        trimmed = self.content.strip()
        if len(trimmed) <= SHORT_SNIPPET_LENGTH:
            return trimmed
        return trimmed[:SHORT_SNIPPET_LENGTH] + "…"

    @property
    def display_markdown(self) -> str:
        """Markdown when present, otherwise the raw content."""
        markdown = (self.markdown or "").strip()
        return markdown if markdown else self.content

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Conversation":
        """Build a Conversation from a conversations table row."""
        return cls(
            id=row["id"],
            site_name=row["site_name"],
            url=row["url"],
            content=row["content"],
            created_at=row["created_at"],
            tab_id=row["tab_id"],
            markdown=row["markdown"],
        )


@dataclass
class ConversationPreview:
    """Lightweight listing row; never persisted."""

    id: int
    site_name: str
    url: str
    snippet: str
    created_at: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ConversationPreview":
        return cls(
            id=row["id"],
            site_name=row["site_name"],
            url=row["url"],
            snippet=(row["snippet"] or "").strip(),
            created_at=row["created_at"],
        )


@dataclass
class HistoryPage:
    """A page of history results.

    Attributes:
        items: Previews on this page, newest first
        total: Number of conversations matching the filter
        offset: Offset the page starts at
        limit: Page size that was applied
    """

    items: list[ConversationPreview] = field(default_factory=list)
    total: int = 0
    offset: int = 0
    limit: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total
