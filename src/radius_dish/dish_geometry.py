"""
Spherical radius-dish geometry: curve radius, sag, validity and tiling.

Height convention: the flat rim is the plane z = 0 and the spherical cap
dips into the dish, so the deepest point (the centre) sits at z = -sag.
The flat base of every section sits at z = -thickness.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

import numpy as np
from shapely.geometry import Polygon, box

from radius_dish.contracts import Bounds2D, ConfigIssue, SectionGrid, TileAddress
from radius_dish.distance_parser import MM_PER_FOOT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DishConfig:
    """Physical parameters of a dish, all in millimetres."""

    dish_width: float
    dish_height: float
    rim_width: float
    thickness: float
    sphere_radius: float

    @property
    def curve_radius(self) -> float:
        return curve_radius(self.dish_width, self.dish_height, self.rim_width)

    @property
    def sag(self) -> Optional[float]:
        return sag(self.sphere_radius, self.dish_width, self.dish_height, self.rim_width)

    def is_valid(self) -> bool:
        return is_valid(
            self.dish_width,
            self.dish_height,
            self.rim_width,
            self.thickness,
            self.sphere_radius,
        )

    def issues(self) -> List[ConfigIssue]:
        return check_config(
            self.dish_width,
            self.dish_height,
            self.rim_width,
            self.thickness,
            self.sphere_radius,
        )

    def summary(self) -> Dict[str, float]:
        """Derived numbers a caller typically shows next to the inputs."""
        if not self.is_valid():
            raise ValueError("Cannot summarise an invalid dish configuration")
        depth = float(self.sag)
        return {
            "sphere_radius_mm": float(self.sphere_radius),
            "sphere_radius_ft": float(self.sphere_radius) / MM_PER_FOOT,
            "curve_radius_mm": float(self.curve_radius),
            "curved_diameter_mm": float(2.0 * self.curve_radius),
            "sag_mm": depth,
            "centre_thickness_mm": float(self.thickness) - depth,
        }


# ─── Curvature ───────────────────────────────────────────────────────────────


def curve_radius(width: float, height: float, rim: float) -> float:
    """Radius of the largest centred circle inside the flat rim border."""
    return max(0.0, min(float(width), float(height)) / 2.0 - float(rim))


def sag(sphere_radius: float, width: float, height: float, rim: float) -> Optional[float]:
    """Depth of the spherical cap at the dish centre.

    ``None`` when the sphere is too small to span the curved area; callers
    are expected to gate on ``is_valid`` first.
    """
    c_r = curve_radius(width, height, rim)
    r_sphere = float(sphere_radius)
    if not r_sphere > c_r:
        return None
    return r_sphere - math.sqrt(r_sphere * r_sphere - c_r * c_r)


def is_valid(
    width: float,
    height: float,
    rim: float,
    thickness: float,
    sphere_radius: float,
) -> bool:
    """Gate every mesh request must pass."""
    return not any(
        issue.is_error
        for issue in check_config(width, height, rim, thickness, sphere_radius)
    )


def check_config(
    width: float,
    height: float,
    rim: float,
    thickness: float,
    sphere_radius: float,
) -> List[ConfigIssue]:
    """Reasons the configuration cannot (or should not) be built.

    Returns list of issues (no error-severity issue = valid).
    """
    fields = {
        "dish_width": width,
        "dish_height": height,
        "rim_width": rim,
        "thickness": thickness,
        "sphere_radius": sphere_radius,
    }
    issues: List[ConfigIssue] = []
    numbers: Dict[str, float] = {}
    for name, value in fields.items():
        try:
            number = float(value)
        except (TypeError, ValueError):
            issues.append(ConfigIssue(
                code="not_finite",
                severity="error",
                message=f"{name} is not a number",
                field=name,
            ))
            continue
        numbers[name] = number
        if not math.isfinite(number):
            issues.append(ConfigIssue(
                code="not_finite",
                severity="error",
                message=f"{name} must be a finite number",
                field=name,
                value=number,
            ))
        elif number <= 0:
            issues.append(ConfigIssue(
                code="non_positive",
                severity="error",
                message=f"{name} must be greater than zero",
                field=name,
                value=number,
                limit=0.0,
            ))
    if issues:
        return issues

    # compare the coerced values so numeric strings behave like numbers
    width = numbers["dish_width"]
    height = numbers["dish_height"]
    rim = numbers["rim_width"]
    thickness = numbers["thickness"]
    sphere_radius = numbers["sphere_radius"]

    half_min = min(width, height) / 2.0
    if rim >= half_min:
        issues.append(ConfigIssue(
            code="rim_too_wide",
            severity="error",
            message=f"Rim width must be less than {half_min:.0f}mm for this dish size",
            field="rim_width",
            value=float(rim),
            limit=half_min,
        ))
        return issues

    c_r = curve_radius(width, height, rim)
    if sphere_radius <= c_r:
        issues.append(ConfigIssue(
            code="radius_too_small",
            severity="error",
            message=f"Radius must be larger than {c_r:.0f}mm for this dish size",
            field="sphere_radius",
            value=float(sphere_radius),
            limit=c_r,
        ))
        return issues

    depth = sag(sphere_radius, width, height, rim)
    if depth >= thickness:
        issues.append(ConfigIssue(
            code="cap_through_base",
            severity="warning",
            message=(
                f"Sag {depth:.2f}mm reaches the base at thickness {thickness:.2f}mm; "
                "the centre of the dish will have no material"
            ),
            field="thickness",
            value=float(thickness),
            limit=float(depth),
        ))
    return issues


def surface_height(config: DishConfig, x, y) -> np.ndarray:
    """Top-surface z at plan position(s) (x, y), rim plane = 0."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    rho = np.hypot(x, y)
    c_r = config.curve_radius
    depth = config.sag
    if depth is None:
        raise ValueError("surface_height requires a valid dish configuration")

    r_sphere = float(config.sphere_radius)
    inside = rho <= c_r
    # min() keeps the sqrt argument non-negative on the rim side of the mask
    rho_cap = np.minimum(rho, c_r)
    drop = r_sphere - np.sqrt(r_sphere * r_sphere - rho_cap * rho_cap)
    return np.where(inside, drop - depth, 0.0)


# ─── Tiling ──────────────────────────────────────────────────────────────────


def tile_bounds(config: DishConfig, grid: SectionGrid, address: TileAddress) -> Bounds2D:
    """Plan rectangle of one tile in dish-centred coordinates."""
    if not grid.contains(address):
        raise ValueError(
            f"Tile {address.label} is outside the "
            f"{grid.sections_x}x{grid.sections_y} grid"
        )
    w = float(config.dish_width)
    h = float(config.dish_height)
    min_x = -w / 2.0 + w * address.col / grid.sections_x
    max_x = -w / 2.0 + w * (address.col + 1) / grid.sections_x
    min_y = -h / 2.0 + h * address.row / grid.sections_y
    max_y = -h / 2.0 + h * (address.row + 1) / grid.sections_y
    return (min_x, min_y, max_x, max_y)


def iter_tiles(grid: SectionGrid) -> Iterator[TileAddress]:
    """All tile addresses, row by row."""
    for row in range(grid.sections_y):
        for col in range(grid.sections_x):
            yield TileAddress(col, row)


def tile_polygons(config: DishConfig, grid: SectionGrid) -> Dict[TileAddress, Polygon]:
    """Plan-view footprint of every tile as a Shapely box."""
    return {
        address: box(*tile_bounds(config, grid, address))
        for address in iter_tiles(grid)
    }


def tile_region(config: DishConfig, grid: SectionGrid, address: TileAddress) -> str:
    """Classify a tile as "cap", "rim" or "mixed".

    Informational only; the mesh builder classifies per sample point.
    """
    min_x, min_y, max_x, max_y = tile_bounds(config, grid, address)
    c_r = config.curve_radius
    # nearest and farthest points of the rectangle from the dish centre
    near_x = min(max(0.0, min_x), max_x)
    near_y = min(max(0.0, min_y), max_y)
    far_x = max(abs(min_x), abs(max_x))
    far_y = max(abs(min_y), abs(max_y))
    if math.hypot(far_x, far_y) <= c_r:
        return "cap"
    if math.hypot(near_x, near_y) >= c_r:
        return "rim"
    return "mixed"
