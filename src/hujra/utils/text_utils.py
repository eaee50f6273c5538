"""Text processing utilities.

Common text manipulation functions used across modules.
"""

import re
from datetime import date

# Patterns for removing thinking/reasoning blocks from LLM output
THINK_PATTERNS = [
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<thinking>.*?</thinking>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<analysis>.*?</analysis>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
]

# Eastern Arabic (U+0660..) and Persian/Kurdish (U+06F0..) digits -> ASCII
_DIGIT_TABLE = str.maketrans(
    "٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹",
    "01234567890123456789",
)


def strip_think(text: str) -> str:
    """Remove thinking/reasoning tags from LLM output.

    Removes:
    - <think>...</think> blocks
    - <thinking>...</thinking> blocks
    - <analysis>...</analysis> blocks
    - <reasoning>...</reasoning> blocks

    Args:
        text: Raw LLM output text

    Returns:
        Cleaned text without thinking artifacts
    """
    result = text
    for pattern in THINK_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


def normalize_digits(value: str) -> str:
    """Convert Eastern Arabic and Kurdish digits to ASCII digits.

    Tutors type page counts and amounts on phone keyboards that emit
    locale digits ("١٥" for 15). Everything else is left untouched.

    Args:
        value: Raw user input

    Returns:
        Input with locale digits replaced and surrounding whitespace stripped
    """
    if not value:
        return ""
    return value.translate(_DIGIT_TABLE).strip()


def today_iso() -> str:
    """Today's date as YYYY-MM-DD (visit dates and backup filenames)."""
    return date.today().isoformat()
