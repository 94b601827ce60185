"""Value types shared by the radius dish engine."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]
Bounds2D = Tuple[float, float, float, float]  # (min_x, min_y, max_x, max_y)

_TILE_LABEL = re.compile(r"^\s*c\s*(\d+)\s*r\s*(\d+)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class DistanceResult:
    """Tagged result of parsing a length string.

    Exactly one of ``value_mm`` / ``error`` is set.
    """

    value_mm: Optional[float] = None
    error: Optional[str] = None  # "empty" | "no_number" | "unknown_unit" | ...
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value_mm: float) -> "DistanceResult":
        return cls(value_mm=float(value_mm))

    @classmethod
    def failure(cls, error: str, message: str) -> "DistanceResult":
        return cls(error=error, message=message)


@dataclass(frozen=True)
class ConfigIssue:
    """A single reason a dish configuration is unusable (or questionable)."""

    code: str
    severity: str  # "error" or "warning"
    message: str
    field: Optional[str] = None
    value: Optional[float] = None
    limit: Optional[float] = None

    @property
    def is_error(self) -> bool:
        return self.severity == "error"


@dataclass(frozen=True)
class SectionGrid:
    """Partition of the dish plan rectangle into equal tiles."""

    sections_x: int = 1
    sections_y: int = 1

    def __post_init__(self):
        for name in ("sections_x", "sections_y"):
            value = getattr(self, name)
            try:
                count = int(value)
            except (TypeError, ValueError):
                raise ValueError(f"{name} must be an integer, got {value!r}") from None
            if count != value:
                raise ValueError(f"{name} must be an integer, got {value!r}")
            # frozen dataclass: normalise 2.0 -> 2 so range() accepts it
            object.__setattr__(self, name, count)
        if self.sections_x < 1 or self.sections_y < 1:
            raise ValueError(
                f"Section grid must be at least 1x1, got "
                f"{self.sections_x}x{self.sections_y}"
            )

    @property
    def tile_count(self) -> int:
        return self.sections_x * self.sections_y

    def contains(self, address: "TileAddress") -> bool:
        return 0 <= address.col < self.sections_x and 0 <= address.row < self.sections_y


@dataclass(frozen=True)
class TileAddress:
    """Zero-based (column, row) of one tile; column 0 is leftmost (min x),
    row 0 sits at the min-y edge of the dish."""

    col: int
    row: int

    @property
    def label(self) -> str:
        return f"C{self.col + 1}R{self.row + 1}"

    def flipped(self, grid: SectionGrid) -> "TileAddress":
        """Mirror the row index, for callers that number rows front-to-back."""
        return TileAddress(self.col, grid.sections_y - 1 - self.row)

    @classmethod
    def from_label(cls, label: str) -> "TileAddress":
        """Parse a one-based ``C<col>R<row>`` label (e.g. ``C2R1``)."""
        match = _TILE_LABEL.match(label)
        if match is None:
            raise ValueError(f"Tile label must look like C1R2, got {label!r}")
        col, row = int(match.group(1)), int(match.group(2))
        if col < 1 or row < 1:
            raise ValueError(f"Tile label indices are one-based, got {label!r}")
        return cls(col - 1, row - 1)
