"""Exceptions raised by the conversation store.

All errors derive from ConversationStoreError so callers can catch the
whole family. Errors caused by the SQLite engine are chained to the
original sqlite3 exception and repeat its message.
"""


class ConversationStoreError(Exception):
    """Base exception for conversation storage errors."""

    pass


class StorageUnavailableError(ConversationStoreError):
    """The database handle is missing or already closed."""

    pass


class PrepareFailedError(ConversationStoreError):
    """A statement could not be compiled or run, even after an index rebuild."""

    pass


class WriteFailedError(ConversationStoreError):
    """A mutation failed and was rolled back."""

    pass


class ReadFailedError(ConversationStoreError):
    """A query failed."""

    pass


class NotFoundError(ConversationStoreError):
    """A conversation looked up by id does not exist."""

    def __init__(self, conversation_id: int):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id
