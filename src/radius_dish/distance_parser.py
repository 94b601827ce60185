"""
Unit-aware parsing of free-form length strings.

Accepted forms (case-insensitive, whitespace between tokens allowed):

    4267        bare number, millimetres
    4267mm      millimetres
    4.267m      metres
    168in  168"
    14ft   14'
    14ft6in  14'6"   feet plus inches

Every result is expressed in millimetres. Bad input never raises; it comes
back as a failed ``DistanceResult`` carrying an error code and a message.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Optional, Tuple

from radius_dish.contracts import DistanceResult

logger = logging.getLogger(__name__)

MM_PER_INCH = 25.4
MM_PER_FOOT = 304.8
MM_PER_METRE = 1000.0

# Longest tokens first so "mm" wins over "m".
_UNIT_TOKENS: Tuple[Tuple[str, str], ...] = (
    ("mm", "mm"),
    ("m", "m"),
    ("in", "in"),
    ("ft", "ft"),
    ('"', "in"),
    ("″", "in"),  # double prime
    ("”", "in"),  # right double quotation mark
    ("'", "ft"),
    ("′", "ft"),  # prime
    ("’", "ft"),  # right single quotation mark
)

_UNIT_SCALE = {
    "mm": 1.0,
    "m": MM_PER_METRE,
    "in": MM_PER_INCH,
    "ft": MM_PER_FOOT,
}

_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:e[+-]?\d+)?")


def parse_distance(text: Optional[str]) -> DistanceResult:
    """Parse *text* into a distance in millimetres."""
    if text is None:
        return DistanceResult.failure("empty", "No distance given")
    source = text.strip().lower()
    if not source:
        return DistanceResult.failure("empty", "No distance given")

    value, unit, rest = _read_component(source)
    if value is None:
        return DistanceResult.failure(
            "no_number", f"No number found in {text.strip()!r}"
        )
    if unit is None:
        return DistanceResult.failure(
            "unknown_unit", f"Unrecognised unit in {text.strip()!r}"
        )

    components = [(value, unit)]
    if unit == "ft" and rest:
        inches, inch_unit, rest = _read_component(rest)
        if inches is None or inch_unit != "in":
            return DistanceResult.failure(
                "unknown_unit",
                f"Expected inches after feet in {text.strip()!r}",
            )
        components.append((inches, inch_unit))

    if rest:
        return DistanceResult.failure(
            "unknown_unit", f"Unexpected trailing text {rest!r}"
        )

    total = 0.0
    for amount, unit_name in components:
        if not math.isfinite(amount):
            return DistanceResult.failure("not_finite", "Distance is not finite")
        if amount < 0:
            return DistanceResult.failure(
                "non_positive", "Distance must be greater than zero"
            )
        total += amount * _UNIT_SCALE[unit_name]

    if not math.isfinite(total):
        return DistanceResult.failure("not_finite", "Distance is not finite")
    if total <= 0:
        return DistanceResult.failure(
            "non_positive", "Distance must be greater than zero"
        )
    return DistanceResult.success(total)


def parse_radius(text: Optional[str]) -> Optional[float]:
    """Millimetre value of *text*, or ``None`` when it cannot be parsed."""
    result = parse_distance(text)
    if not result.ok:
        logger.debug("Rejected radius %r: %s", text, result.message)
        return None
    return result.value_mm


def format_feet(value_mm: float, digits: int = 3) -> str:
    return f"{value_mm / MM_PER_FOOT:.{digits}f} ft"


def _read_component(source: str) -> Tuple[Optional[float], Optional[str], str]:
    """Read ``number [unit]`` from the front of *source*.

    Returns (value, unit, remainder). A missing unit at the end of input
    means millimetres; an unknown suffix gives ``unit=None``.
    """
    match = _NUMBER.match(source)
    if match is None:
        return None, None, source
    value = float(match.group(0))
    rest = source[match.end():].lstrip()
    if not rest:
        return value, "mm", ""
    for token, unit in _UNIT_TOKENS:
        if rest.startswith(token):
            return value, unit, rest[len(token):].lstrip()
    return value, None, rest
