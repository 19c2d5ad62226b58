"""Shared helpers."""

from .time_utils import Clock, from_db_time, to_db_time, utc_now

__all__ = ["Clock", "from_db_time", "to_db_time", "utc_now"]
