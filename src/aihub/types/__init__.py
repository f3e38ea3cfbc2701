"""Types for AI Hub.

This module exports the filter types used to browse conversation history:
- TimePreset: Time range choices of the history browser
- HistoryFilter: Keyword/site/time/code filters resolved into store queries
"""

from aihub.types.history import HistoryFilter, TimePreset

__all__ = ["HistoryFilter", "TimePreset"]
