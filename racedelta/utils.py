"""
Utility Functions for Race Delta Analysis

This module provides the value coercion used when parsing extractor rows and
the rounding applied when derived records are serialized to JSON.
"""

import math
from typing import Optional

import numpy as np


def safe_float(value) -> float:
    """
    Coerce an extractor field to float.

    Args:
        value: Number, numeric string, or None.

    Returns:
        The float value, or np.nan when the field is missing or not numeric.
    """
    try:
        return float(value)
    except (TypeError, ValueError):
        return np.nan


def optional_float(value) -> Optional[float]:
    """Coerce to float, mapping missing or non-finite values to None."""
    number = safe_float(value)
    if not math.isfinite(number):
        return None
    return number


def round_float(value, digits: int = 3) -> Optional[float]:
    """
    Round a derived value for a JSON payload.

    JSON has no NaN or Infinity, so those become None (null).

    Args:
        value: Value to round (float, numpy scalar or None).
        digits: Decimal places. Default 3.

    Returns:
        Rounded float, or None.
    """
    if value is None or not np.isfinite(value):
        return None
    return round(float(value), digits)


def coordinate_value(value) -> Optional[float]:
    """Latitude/longitude for a payload at full precision; NaN becomes None."""
    if value is None or np.isnan(value):
        return None
    return float(value)
