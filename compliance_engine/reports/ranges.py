"""
Report date ranges.
"""

from datetime import datetime, timedelta

REPORT_RANGES = ("7d", "30d", "90d", "mtd", "ytd")
DEFAULT_RANGE = "30d"


def range_start(range_key: str, now: datetime) -> datetime:
    """
    Start of the reporting window ending at `now`.
    Unknown keys fall back to the last 30 days.
    """
    if range_key == "7d":
        return now - timedelta(days=7)
    if range_key == "90d":
        return now - timedelta(days=90)
    if range_key == "mtd":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if range_key == "ytd":
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return now - timedelta(days=30)
