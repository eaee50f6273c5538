"""Data validation helpers.

Numeric fields (page counts, amounts) travel as strings to stay compatible
with the backup format. These helpers check them at the ledger boundary.

Functions:
- is_non_negative_int(value) -> bool
- require_non_negative_int(value, field_name) -> str
- parse_iso_date(value) -> str
"""

from datetime import date


class MalformedValueError(ValueError):
    """Raised when a string-encoded numeric field is not a non-negative integer."""

    def __init__(self, field_name: str, value: str):
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Malformed value for '{field_name}': {value!r} is not a non-negative integer"
        )


def is_non_negative_int(value: str) -> bool:
    """Check whether value is a plain decimal non-negative integer.

    Empty strings are not numbers. Signs, decimals and spaces are rejected.
    """
    return bool(value) and value.isascii() and value.isdigit()


def require_non_negative_int(value: str, field_name: str) -> str:
    """Return value unchanged if numeric, else raise MalformedValueError.

    Args:
        value: String-encoded number (already digit-normalized)
        field_name: Name used in the error message

    Returns:
        The same string

    Raises:
        MalformedValueError: If value is not a non-negative integer
    """
    if not is_non_negative_int(value):
        raise MalformedValueError(field_name, value)
    return value


def parse_iso_date(value: str) -> str:
    """Validate a YYYY-MM-DD calendar date and return it normalized.

    Raises:
        ValueError: If value is not an ISO calendar date
    """
    return date.fromisoformat(value.strip()).isoformat()
