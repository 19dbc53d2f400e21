# src/pricewatch/shared/validators.py
"""
Input Validation Utilities - Configuration and User Input Validation

This module provides validation and parsing helpers for the bot token,
list-valued settings, schedule times and numeric command arguments.

Files that USE this module:
- pricewatch.config.settings (uses validation functions in Settings field validators)
- pricewatch.adapters.telegram.handlers (validates command arguments)

Files that this module USES:
- None (pure utility functions)
"""
import re
from datetime import time
from typing import List, Optional


def validate_bot_token(token: str) -> bool:
    """
    Validate Telegram bot token format.

    Args:
        token: Bot token to validate

    Returns:
        True if valid, False otherwise
    """
    if not token:
        return False

    # Bot tokens should be in format: 123456789:ABCDEFghijklmnopQRSTUVwxyz
    pattern = r'^\d{8,10}:[A-Za-z0-9_-]{35}$'
    return bool(re.match(pattern, token))


def validate_numeric_input(value: str, min_val: Optional[float] = None,
                          max_val: Optional[float] = None) -> bool:
    """
    Validate numeric input string.

    Args:
        value: String value to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        True if valid, False otherwise
    """
    if not value:
        return False

    try:
        num_val = float(value)
        if num_val != num_val or num_val in (float("inf"), float("-inf")):
            return False
        if min_val is not None and num_val < min_val:
            return False
        if max_val is not None and num_val > max_val:
            return False
        return True
    except ValueError:
        return False


def split_csv(value: str, lower: bool = False) -> List[str]:
    """
    Split a comma-separated setting into trimmed, non-empty items.

    Args:
        value: Raw setting, e.g. "gold, silver"
        lower: Lower-case every item

    Returns:
        List of items in their original order, duplicates removed
    """
    items: List[str] = []
    for raw in (value or "").split(","):
        item = raw.strip()
        if lower:
            item = item.lower()
        if item and item not in items:
            items.append(item)
    return items


def parse_clock_time(value: str) -> time:
    """
    Parse an "HH:MM" wall-clock time.

    Raises:
        ValueError: If the value is not a valid 24-hour time
    """
    match = re.match(r'^(\d{1,2}):(\d{2})$', (value or "").strip())
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return time(hour, minute)
