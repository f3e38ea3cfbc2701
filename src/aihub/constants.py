"""AI Hub storage constants.

Implementation details of the conversation store that are not user settings.
User settings live in aihub.config.
"""

# =============================================================================
# Result limits
# =============================================================================

# Every listing and search is capped to bound scan latency
MAX_RESULTS = 50

# Characters of content shown in a preview row
PREVIEW_SNIPPET_LENGTH = 200

# Characters of content shown in Conversation.snippet
SHORT_SNIPPET_LENGTH = 80

# =============================================================================
# Filters
# =============================================================================

# Markdown must contain this marker for a code-only history listing
CODE_FENCE_MARKER = "```"

# =============================================================================
# Database
# =============================================================================

DEFAULT_DATA_DIR_NAME = ".aihub"
DEFAULT_DB_FILENAME = "conversations.sqlite"

# Files SQLite keeps next to the main database file
SQLITE_SIDECAR_SUFFIXES = ("-wal", "-shm", "-journal")

# Primary result codes that mean the file can no longer be trusted
SQLITE_CORRUPT = 11
SQLITE_NOTADB = 26

# Fallback when the driver exposes no structured error code
CORRUPTION_MESSAGE_MARKERS = ("malformed", "not a database", "corrupt")

SCHEMA_VERSION = 2
