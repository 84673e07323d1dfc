from __future__ import annotations
import math
from typing import Optional, Union

Number = Union[int, float]


# --- Input Validation Helpers ---

def _require_number(name: str, value: Number, kind: str) -> None:
    # bool is an int subclass but never a meaningful link parameter
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name}: expected {kind}, got {type(value).__name__} ({value!r})")


def _check_bounds(name: str, value: Number, min_value: Optional[Number], max_value: Optional[Number]) -> None:
    if min_value is not None and value < min_value:
        raise ValueError(f"{name}: {value} < minimum {min_value}")
    if max_value is not None and value > max_value:
        raise ValueError(f"{name}: {value} > maximum {max_value}")


def validate_int(
    name: str,
    value: Number,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    """
    Coerce a whole-number count (ticks, node ids) to ``int``.

    Parameters
    ----------
    name : str
        Label used in the error message.
    value : int or float
        Candidate value; a float is accepted only if it is integral.
    min_value, max_value : int, optional
        Inclusive bounds.

    Returns
    -------
    int

    Raises
    ------
    ValueError
        On non-numeric, fractional or out-of-range input.
    """
    _require_number(name, value, "int")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{name}: expected int, got float {value}")
    count = int(value)
    _check_bounds(name, count, min_value, max_value)
    return count


def validate_float(
    name: str,
    value: Number,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    allow_nan: bool = False,
    allow_inf: bool = False,
) -> float:
    """
    Coerce a physical quantity (meters, Hz, dB) to ``float``.

    NaN and infinity are rejected unless explicitly allowed; bounds are
    inclusive.

    Raises
    ------
    ValueError
        On non-numeric, non-finite or out-of-range input.
    """
    _require_number(name, value, "float")
    quantity = float(value)
    if math.isnan(quantity) and not allow_nan:
        raise ValueError(f"{name}: NaN not allowed")
    if math.isinf(quantity) and not allow_inf:
        raise ValueError(f"{name}: infinity not allowed")
    _check_bounds(name, quantity, min_value, max_value)
    return quantity


def validate_positive(name: str, value: Number) -> float:
    """Validate a finite, strictly positive float."""
    quantity = validate_float(name, value)
    if quantity <= 0.0:
        raise ValueError(f"{name}: must be > 0, got {quantity}")
    return quantity


# --- Decibel Conversions ---

def dbm_to_dbw(p_dbm: float) -> float:
    return p_dbm - 30.0


def dbw_to_dbm(p_dbw: float) -> float:
    return p_dbw + 30.0
