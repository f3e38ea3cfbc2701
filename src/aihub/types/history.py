"""History filter types.

HistoryFilter captures the state of the history browser (keyword, site,
time range preset, code-only toggle) and translates it into the arguments of
SQLiteStore.list_history / count_history.
"""

import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class TimePreset(str, Enum):
    """Time range choices of the history browser.

    - ALL: No time bounds
    - TODAY: Since local midnight
    - LAST_7_DAYS / LAST_30_DAYS: Rolling windows ending now
    - CUSTOM: custom_start .. custom_end
    """

    ALL = "all"
    TODAY = "today"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    CUSTOM = "custom"


class HistoryFilter(BaseModel):
    """Filters for browsing saved conversations.

    Attributes:
        keyword: Full-text keyword; blank disables keyword matching
        site_name: Exact site display name; None or blank for all sites
        time_preset: Time range preset
        custom_start: Start of a CUSTOM range
        custom_end: End of a CUSTOM range
        code_only: Only conversations with fenced code in their markdown
    """

    model_config = ConfigDict(frozen=True)

    keyword: str = ""
    site_name: Optional[str] = None
    time_preset: TimePreset = TimePreset.ALL
    custom_start: Optional[datetime] = None
    custom_end: Optional[datetime] = None
    code_only: bool = False

    @model_validator(mode="after")
    def check_custom_range(self) -> "HistoryFilter":
        if (
            self.time_preset == TimePreset.CUSTOM
            and self.custom_start is not None
            and self.custom_end is not None
            and self.custom_start > self.custom_end
        ):
            raise ValueError("custom_start must not be after custom_end")
        return self

    def resolve_range(self, now: Optional[float] = None) -> tuple[Optional[int], Optional[int]]:
        """Resolve the preset into inclusive unix-second bounds.

        Args:
            now: Reference time (unix seconds), defaults to the current time

        Returns:
            (start_time, end_time); either may be None for an open bound
        """
        current = time.time() if now is None else now
        end = int(current)

        if self.time_preset == TimePreset.TODAY:
            midnight = datetime.fromtimestamp(current).replace(
                hour=0, minute=0, second=0, microsecond=0
            )
            return int(midnight.timestamp()), end
        if self.time_preset == TimePreset.LAST_7_DAYS:
            return int(current - timedelta(days=7).total_seconds()), end
        if self.time_preset == TimePreset.LAST_30_DAYS:
            return int(current - timedelta(days=30).total_seconds()), end
        if self.time_preset == TimePreset.CUSTOM:
            start_time = int(self.custom_start.timestamp()) if self.custom_start else None
            end_time = int(self.custom_end.timestamp()) if self.custom_end else None
            return start_time, end_time
        return None, None

    def to_query(self, now: Optional[float] = None) -> dict[str, Any]:
        """Keyword arguments for list_history / count_history."""
        start_time, end_time = self.resolve_range(now)
        site_name = (self.site_name or "").strip() or None
        return {
            "keyword": self.keyword.strip(),
            "site_name": site_name,
            "start_time": start_time,
            "end_time": end_time,
            "code_only": self.code_only,
        }

