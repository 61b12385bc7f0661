import datetime
from pathlib import Path
from typing import Optional


def get_resource_path(relative_path: str) -> Path:
    """
    Get absolute path to a resource shipped inside the package.

    Args:
        relative_path: Path relative to the package root (e.g., "resources/templates")

    Returns:
        Absolute Path object
    """
    # This file is ballandchain/utils.py, resources live beside it
    return Path(__file__).parent.absolute() / relative_path


def to_utc(value: datetime.datetime) -> datetime.datetime:
    """Normalize an instant to UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def utc_now(now: Optional[datetime.datetime] = None) -> datetime.datetime:
    """Current instant in UTC, or the given one normalized."""
    if now is None:
        return datetime.datetime.now(datetime.timezone.utc)
    return to_utc(now)


def day_start(day: datetime.date) -> datetime.datetime:
    """00:00:00 UTC of the given calendar day"""
    return datetime.datetime.combine(day, datetime.time(0, 0, 0), tzinfo=datetime.timezone.utc)


def day_end(day: datetime.date) -> datetime.datetime:
    """23:59:59 UTC of the given calendar day"""
    return datetime.datetime.combine(day, datetime.time(23, 59, 59), tzinfo=datetime.timezone.utc)


def format_duration(seconds: int) -> str:
    """Format seconds as HH:MM:SS"""
    hours, remainder = divmod(int(seconds), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
