"""
Error Taxonomy for Renewcast

Only two conditions abort a computation:
- InvalidConfiguration: non-positive capacity/height, losses outside 0-100,
  inconsistent wind thresholds, or an object that is not an asset variant
- InvalidInput: an empty weather series handed to the forecast assembler

Everything else (missing fields, fewer than 3 paired observations,
zero-variance series) degrades into defined result values and quality
report counts instead of raising.

Features:
- Exception hierarchy rooted at RenewcastError
- Error categorization for batch runs (invalid_configuration, invalid_input, unknown)
"""

import logging
from enum import Enum
from typing import Tuple

logger = logging.getLogger(__name__)


class RenewcastError(Exception):
    """Base class for all errors raised by renewcast."""


class InvalidConfiguration(RenewcastError, ValueError):
    """Asset or engine parameters are unusable; no partial result is produced."""


class InvalidInput(RenewcastError, ValueError):
    """The input series cannot produce a result (e.g. empty forecast input)."""


class ErrorType(Enum):
    """Categories of errors for batch reporting."""
    INVALID_CONFIGURATION = "invalid_configuration"
    INVALID_INPUT = "invalid_input"
    UNKNOWN = "unknown"


def categorize_error(exception: Exception) -> Tuple[ErrorType, str]:
    """
    Categorize an exception for batch reporting.

    Returns:
        Tuple of (ErrorType, error_message)
    """
    error_msg = str(exception)[:200]  # Truncate long messages

    if isinstance(exception, InvalidConfiguration):
        return (ErrorType.INVALID_CONFIGURATION, f"Invalid configuration: {error_msg}")

    elif isinstance(exception, InvalidInput):
        return (ErrorType.INVALID_INPUT, f"Invalid input: {error_msg}")

    else:
        logger.debug(f"[categorize_error] Uncategorized {type(exception).__name__}: {error_msg}")
        return (ErrorType.UNKNOWN, f"{type(exception).__name__}: {error_msg}")
