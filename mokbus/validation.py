"""
Validation of caller-supplied protocol values.

Values typed into UI fields arrive as strings or integers. They are
checked here, before any frame is built, and rejected with a
ValidationError naming the field and its allowed range.
"""

from __future__ import annotations

from typing import Any

from mokbus.exceptions import ValidationError
from mokbus.protocol.constants import ProtocolConstants


def parse_int_field(value: Any, field: str, minimum: int, maximum: int) -> int:
    """
    Validate an integer field.

    Accepts integers and decimal integer strings (surrounding whitespace
    allowed). Booleans are rejected.

    Args:
        value: Raw field value.
        field: Field name for the error message.
        minimum: Smallest allowed value.
        maximum: Largest allowed value.

    Returns:
        The validated integer.

    Raises:
        ValidationError: If the value is not an integer in minimum..maximum.

    Example:
        >>> parse_int_field(" 12 ", "address", 1, 247)
        12
    """
    if isinstance(value, bool):
        raise ValidationError(field, minimum, maximum, value)

    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValidationError(field, minimum, maximum, value)

    if not minimum <= number <= maximum:
        raise ValidationError(field, minimum, maximum, value)
    return number


def parse_address_field(value: Any, field: str) -> int:
    """Validate a device address field (1..247)."""
    return parse_int_field(
        value,
        field,
        ProtocolConstants.MIN_DEVICE_ADDRESS,
        ProtocolConstants.MAX_DEVICE_ADDRESS,
    )


def validate_window(
    start: Any,
    end: Any,
    minimum: int,
    maximum: int,
) -> tuple[int, int]:
    """
    Validate an address window for a range request.

    Args:
        start: First address.
        end: Last address.
        minimum: Smallest allowed address.
        maximum: Largest allowed address.

    Returns:
        Validated (start, end).

    Raises:
        ValidationError: If either bound is out of range or start > end.
    """
    first = parse_int_field(start, "start", minimum, maximum)
    last = parse_int_field(end, "end", first, maximum)
    return first, last
