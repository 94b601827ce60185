"""
DXF plan-view template of a sectioned dish.

Uses ezdxf to produce a DXF file with two layers:
  - CUT (red, ACI 1): dish outline and tile rectangles
  - ENGRAVE (blue, ACI 5): curved-area boundary circle and tile labels

Units: millimeters. Format: R2010. The dish centre is moved to
(width/2, height/2) so every coordinate is positive.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

import ezdxf
from ezdxf.enums import TextEntityAlignment
from shapely import affinity
from shapely.geometry import Polygon, box

from radius_dish.contracts import SectionGrid
from radius_dish.dish_geometry import DishConfig, tile_polygons

logger = logging.getLogger(__name__)


@dataclass
class LayoutDXFConfig:
    """Configuration for the section layout DXF."""
    cut_layer: str = "CUT"
    engrave_layer: str = "ENGRAVE"
    cut_color: int = 1       # ACI red
    engrave_color: int = 5   # ACI blue
    add_labels: bool = True
    label_height_mm: float = 8.0


def section_layout_to_dxf(
    config: DishConfig,
    grid: SectionGrid,
    filepath: str,
    name: str = "radius_dish",
    layout: Optional[LayoutDXFConfig] = None,
) -> str:
    """Export the tile grid and curved-area boundary to a DXF file.

    Args:
        config: Dish parameters.
        grid: Section grid to draw.
        filepath: Output DXF file path.
        name: Title text placed under the dish outline.
        layout: DXF export settings.

    Returns:
        Path to created DXF file.
    """
    if layout is None:
        layout = LayoutDXFConfig()

    doc = ezdxf.new("R2010")
    doc.units = ezdxf.units.MM
    msp = doc.modelspace()
    doc.layers.add(layout.cut_layer, color=layout.cut_color)
    doc.layers.add(layout.engrave_layer, color=layout.engrave_color)

    shift_x = float(config.dish_width) / 2.0
    shift_y = float(config.dish_height) / 2.0

    outline = box(-shift_x, -shift_y, shift_x, shift_y)
    _add_polygon(msp, affinity.translate(outline, shift_x, shift_y), layout.cut_layer)

    for address, tile in tile_polygons(config, grid).items():
        placed = affinity.translate(tile, shift_x, shift_y)
        _add_polygon(msp, placed, layout.cut_layer)
        if layout.add_labels:
            centre = placed.centroid
            msp.add_text(
                address.label,
                height=layout.label_height_mm,
                dxfattribs={"layer": layout.engrave_layer},
            ).set_placement((centre.x, centre.y), align=TextEntityAlignment.MIDDLE_CENTER)

    if config.curve_radius > 0:
        msp.add_circle(
            (shift_x, shift_y),
            config.curve_radius,
            dxfattribs={"layer": layout.engrave_layer},
        )

    if layout.add_labels:
        msp.add_text(
            name,
            height=layout.label_height_mm,
            dxfattribs={"layer": layout.engrave_layer},
        ).set_placement(
            (shift_x, -layout.label_height_mm * 2),
            align=TextEntityAlignment.MIDDLE_CENTER,
        )

    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    doc.saveas(filepath)
    logger.info("Exported layout DXF: %s", filepath)
    return filepath


def _add_polygon(msp, polygon: Polygon, layer: str) -> None:
    """Add a Shapely polygon exterior as a closed LWPolyline."""
    if polygon.is_empty:
        return
    coords = list(polygon.exterior.coords)
    msp.add_lwpolyline(coords, close=True, dxfattribs={"layer": layer})
