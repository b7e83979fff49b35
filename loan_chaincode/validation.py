"""
Argument validation shared by the lifecycle operations.

All arguments arrive as strings at the transport boundary. Parsing is strict
so that every replica accepts and rejects exactly the same inputs.
"""

import math
import re
from typing import List

from .errors import InvalidArgumentError

_DECIMAL_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?", re.ASCII)
_INTEGER_PATTERN = re.compile(r"[+-]?\d+", re.ASCII)

# Integer arguments are bounded to a signed 64-bit value
MAX_INTEGER = 2 ** 63 - 1


def require_args(args: List[str], *counts: int) -> None:
    """
    Check the number of positional arguments.
    
    Raises:
        InvalidArgumentError: If ``len(args)`` is not one of ``counts``
    """
    if len(args) not in counts:
        expected = " or ".join(str(count) for count in counts)
        raise InvalidArgumentError(
            f"Incorrect number of arguments. Expected {expected}, got {len(args)}"
        )


def parse_decimal(value: str, field_name: str) -> float:
    """
    Parse a finite decimal number.
    
    Args:
        value: Raw string argument
        field_name: Name used in the error message
        
    Returns:
        The parsed value
        
    Raises:
        InvalidArgumentError: If the value is not a finite decimal literal
    """
    if not isinstance(value, str) or not _DECIMAL_PATTERN.fullmatch(value):
        raise InvalidArgumentError(f"Invalid {field_name}: {value!r}")
    parsed = float(value)
    if not math.isfinite(parsed):
        raise InvalidArgumentError(f"Invalid {field_name}: {value!r} is out of range")
    return parsed


def parse_non_negative_decimal(value: str, field_name: str) -> float:
    """Parse a finite decimal number that must not be negative."""
    parsed = parse_decimal(value, field_name)
    if parsed < 0:
        raise InvalidArgumentError(f"Invalid {field_name}: must not be negative")
    # Normalise -0.0 so the stored bytes are identical
    return parsed + 0.0


def parse_positive_integer(value: str, field_name: str) -> int:
    """Parse a base-10 integer greater than zero."""
    if not isinstance(value, str) or not _INTEGER_PATTERN.fullmatch(value):
        raise InvalidArgumentError(f"Invalid {field_name}: {value!r}")
    try:
        parsed = int(value)
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid {field_name}: out of range") from e
    if parsed > MAX_INTEGER:
        raise InvalidArgumentError(f"Invalid {field_name}: out of range")
    if parsed <= 0:
        raise InvalidArgumentError(f"Invalid {field_name}: must be greater than zero")
    return parsed


def require_non_empty(value: str, field_name: str) -> str:
    """Reject empty identifiers."""
    if not value:
        raise InvalidArgumentError(f"{field_name} must not be empty")
    return value
