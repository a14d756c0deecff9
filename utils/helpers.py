"""
Helper Utility Module

This module provides various helper functions used throughout the Meme Studio application.
"""

import json
from typing import Optional, List, Dict, Any, Iterable, Tuple
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is valid.

    Args:
        url: The URL to validate

    Returns:
        bool: True if the URL is valid, False otherwise
    """
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except (TypeError, ValueError, AttributeError):
        return False


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def get_date_range(days_back: int = 7, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Get a date range from now to X days back.

    Args:
        days_back: Number of days to go back
        now: Reference time (defaults to the current UTC time)

    Returns:
        Tuple: (start_date, end_date)
    """
    end_date = now or utc_now()
    start_date = end_date - timedelta(days=days_back)
    return start_date, end_date


def clip(text: Optional[str], max_length: int) -> str:
    """
    Return at most the first max_length characters of text.

    No ellipsis is added, and None becomes "".
    """
    if not text:
        return ""
    return text[:max_length]


def count_occurrences(values: Iterable[Optional[str]]) -> Dict[str, int]:
    """
    Count truthy values, keeping first-seen key order.

    Args:
        values: Values to tally; None and empty strings are skipped.

    Returns:
        Dict[str, int]: value -> occurrences, in first-seen order.
    """
    counts: Dict[str, int] = {}
    for value in values:
        if value:
            counts[value] = counts.get(value, 0) + 1
    return counts


def rank_counts(counts: Dict[str, int], limit: Optional[int] = None) -> List[Tuple[str, int]]:
    """
    Sort a count table by count descending.

    The sort is stable, so equal counts keep their first-seen order.
    """
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked[:limit] if limit is not None else ranked


def format_counts(ranked: Iterable[Tuple[str, int]]) -> str:
    """Render [(label, n), ...] as 'label(n), label(n)'."""
    return ", ".join(f"{label}({count})" for label, count in ranked)


def safe_get(data: Dict[str, Any], *keys, default: Any = None) -> Any:
    """
    Safely get a value from a nested dictionary.

    Args:
        data: The dictionary to search
        *keys: The keys to follow
        default: Default value if key doesn't exist

    Returns:
        The value at the specified keys or the default value
    """
    for key in keys:
        try:
            data = data[key]
        except (KeyError, TypeError, IndexError):
            return default
    return data


def load_json_list(raw: Any) -> List[Any]:
    """
    Decode a JSON-encoded list column.

    Returns an empty list for NULL, blank, malformed or non-list values.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


def to_jsonable(value: Any) -> Any:
    """Recursively convert datetimes to ISO strings for JSON output."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
