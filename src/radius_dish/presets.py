"""
Common dish radii, printer / CNC bed sizes and mesh quality levels.

Radii are kept as the strings a user would type, so they go through the
same parser as free-form input.
"""

import math
from dataclasses import dataclass
from typing import Dict, Tuple

from radius_dish.contracts import SectionGrid

MAX_SECTIONS = 10
SEGMENT_RANGE: Tuple[int, int, int] = (24, 96, 8)  # (min, max, step)
DEFAULT_SEGMENTS = 48


@dataclass(frozen=True)
class RadiusPreset:
    """A named sphere radius."""

    label: str
    raw: str


@dataclass(frozen=True)
class BedPreset:
    """Usable build area of a printer or CNC bed, in mm."""

    label: str
    width_mm: float
    height_mm: float


RADIUS_PRESETS: Dict[str, RadiusPreset] = {
    "guitar_top": RadiusPreset("14 ft - Guitar top", "14ft"),
    "guitar_back": RadiusPreset("25 ft - Guitar back", "25ft"),
    "mandolin_top": RadiusPreset("15 ft - Mandolin top", "15ft"),
    "violin_plate": RadiusPreset("28 ft - Violin plate", "28ft"),
    "metric_1000": RadiusPreset("1000 mm", "1000mm"),
}

BED_PRESETS: Dict[str, BedPreset] = {
    "ender3": BedPreset("Ender 3 / small", 220, 220),
    "prusa_mk4": BedPreset("Prusa MK4", 250, 210),
    "bambu_p1_x1": BedPreset("Bambu P1/X1", 256, 256),
    "voron_300": BedPreset("Voron 2.4 300", 300, 300),
    "custom_600": BedPreset("Custom 600x600", 600, 600),
    "cnc_1200x600": BedPreset("CNC bed 1200x600", 1200, 600),
}


def quality_label(segments: int) -> str:
    """Human name for a tessellation density."""
    if segments < 40:
        return "Draft"
    if segments < 64:
        return "Standard"
    if segments < 80:
        return "Fine"
    return "Ultra"


def clamp_sections(n: int) -> int:
    return max(1, min(MAX_SECTIONS, int(n)))


def sections_for_bed(
    dish_width: float,
    dish_height: float,
    bed_width: float,
    bed_height: float,
) -> SectionGrid:
    """Smallest grid whose tiles fit the bed without rotating them.

    Raises:
        ValueError: if even a 10x10 grid does not fit.
    """
    if bed_width <= 0 or bed_height <= 0:
        raise ValueError("Bed dimensions must be positive")
    sections_x = max(1, math.ceil(dish_width / bed_width))
    sections_y = max(1, math.ceil(dish_height / bed_height))
    if sections_x > MAX_SECTIONS or sections_y > MAX_SECTIONS:
        raise ValueError(
            f"Dish {dish_width:.0f}x{dish_height:.0f}mm needs a "
            f"{sections_x}x{sections_y} grid on a {bed_width:.0f}x{bed_height:.0f}mm "
            f"bed; at most {MAX_SECTIONS} per side is supported"
        )
    return SectionGrid(sections_x, sections_y)


def find_bed_preset(name: str) -> BedPreset:
    """Look up a bed preset by key or (case-insensitive) label."""
    if name in BED_PRESETS:
        return BED_PRESETS[name]
    wanted = name.strip().lower()
    for preset in BED_PRESETS.values():
        if preset.label.lower() == wanted:
            return preset
    raise KeyError(f"Unknown bed preset {name!r}; choose from {sorted(BED_PRESETS)}")
