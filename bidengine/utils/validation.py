"""
Input Validation - sanitization of values entering the engine.

Guards the arguments of bid placement before any storage access:
- Non-integer or out-of-range amounts and ids
- Oversized or malformed identities
"""

import re
from typing import Any, Tuple

# =============================================================================
# Constants
# =============================================================================

# Bid amounts fit a signed 32-bit column
MAX_AMOUNT = 2**31 - 1
MAX_ID = 2**63 - 1
MAX_IDENTITY_LENGTH = 255

IDENTITY_PATTERN = r"^[^@\s]+@[^@\s]+$"


# =============================================================================
# Validation Functions
# =============================================================================


def validate_integer(
    value: Any,
    name: str,
    min_val: int = 0,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_bid_amount(amount: Any) -> Tuple[bool, str]:
    """A bid amount is a strictly positive integer."""
    return validate_integer(amount, "bid_amount", 1, MAX_AMOUNT)


def validate_identifier(value: Any, name: str) -> Tuple[bool, str]:
    """Database identifiers are positive integers."""
    return validate_integer(value, name, 1, MAX_ID)


def validate_identity(value: Any) -> Tuple[bool, str]:
    """Validate a bidder identity (an email address)."""
    if not isinstance(value, str):
        return False, f"identity must be str, got {type(value).__name__}"

    if len(value) > MAX_IDENTITY_LENGTH:
        return False, f"identity exceeds max length {MAX_IDENTITY_LENGTH}"

    if not re.match(IDENTITY_PATTERN, value):
        return False, "identity is not an email address"

    return True, ""


__all__ = [
    "validate_integer",
    "validate_bid_amount",
    "validate_identifier",
    "validate_identity",
    "MAX_AMOUNT",
    "MAX_ID",
    "MAX_IDENTITY_LENGTH",
]
