"""Public API for the radius dish geometry and section mesh engine."""

from radius_dish.contracts import ConfigIssue, DistanceResult, SectionGrid, TileAddress
from radius_dish.dish_geometry import (
    DishConfig,
    check_config,
    curve_radius,
    is_valid,
    iter_tiles,
    sag,
    surface_height,
    tile_bounds,
)
from radius_dish.distance_parser import parse_distance, parse_radius
from radius_dish.section_mesh import SectionMesh, build_section_mesh, find_open_edges
from radius_dish.stl_writer import serialize_stl, write_stl

__all__ = [
    "ConfigIssue",
    "DishConfig",
    "DistanceResult",
    "SectionGrid",
    "SectionMesh",
    "TileAddress",
    "build_section_mesh",
    "check_config",
    "curve_radius",
    "find_open_edges",
    "is_valid",
    "iter_tiles",
    "parse_distance",
    "parse_radius",
    "sag",
    "serialize_stl",
    "surface_height",
    "tile_bounds",
    "write_stl",
]
