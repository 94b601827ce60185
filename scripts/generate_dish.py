#!/usr/bin/env python3
"""Generate STL sections of a spherical radius dish."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from radius_dish.contracts import TileAddress
from radius_dish.export import (
    DishRequest,
    ExportConfig,
    export_all_sections,
    export_sections,
)
from radius_dish.presets import (
    DEFAULT_SEGMENTS,
    clamp_sections,
    find_bed_preset,
    quality_label,
    sections_for_bed,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate printable / machinable sections of a radius dish"
    )
    parser.add_argument(
        "--radius", required=True, help="Sphere radius, e.g. 14ft, 4267mm, 168in, 14'6\""
    )
    parser.add_argument("--width", type=float, default=600.0, help="Dish width (mm)")
    parser.add_argument("--height", type=float, default=600.0, help="Dish height (mm)")
    parser.add_argument(
        "--rim", type=float, default=50.0, help="Flat rim width around the curve (mm)"
    )
    parser.add_argument(
        "--thickness", type=float, default=50.0, help="Dish thickness at the rim (mm)"
    )
    parser.add_argument("--sections-x", type=int, default=2, help="Left-right splits")
    parser.add_argument("--sections-y", type=int, default=2, help="Front-back splits")
    parser.add_argument(
        "--bed",
        default=None,
        help="Bed preset key or label; overrides --sections-x/--sections-y",
    )
    parser.add_argument(
        "--segments",
        type=int,
        default=DEFAULT_SEGMENTS,
        help="Grid subdivisions per section side",
    )
    parser.add_argument(
        "--tile",
        action="append",
        default=None,
        help="Only export this tile, e.g. C1R2 (repeatable)",
    )
    parser.add_argument(
        "--conforming-base",
        action="store_true",
        help="Fan the base so the mesh has no T-junctions",
    )
    parser.add_argument(
        "--layout-dxf", action="store_true", help="Also write a plan-view layout DXF"
    )
    parser.add_argument("--out-dir", default="dish_out", help="Output directory")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    sections_x = clamp_sections(args.sections_x)
    sections_y = clamp_sections(args.sections_y)
    if args.bed:
        try:
            bed = find_bed_preset(args.bed)
            grid = sections_for_bed(args.width, args.height, bed.width_mm, bed.height_mm)
        except (KeyError, ValueError) as exc:
            parser.error(str(exc))
        sections_x, sections_y = grid.sections_x, grid.sections_y

    request = DishRequest(
        radius=args.radius,
        dish_width=args.width,
        dish_height=args.height,
        rim_width=args.rim,
        thickness=args.thickness,
        sections_x=sections_x,
        sections_y=sections_y,
    )
    config = ExportConfig(
        segments=max(1, int(args.segments)),
        conforming_base=args.conforming_base,
        export_layout_dxf=args.layout_dxf,
    )

    if args.tile:
        try:
            addresses = [TileAddress.from_label(label) for label in args.tile]
            result = export_sections(request, addresses, args.out_dir, config=config)
        except ValueError as exc:
            parser.error(str(exc))
    else:
        result = export_all_sections(request, args.out_dir, config=config)

    if not result.ok:
        for issue in result.issues:
            if issue.is_error:
                print(f"Error: {issue.message}", file=sys.stderr)
        return 2

    for issue in result.issues:
        print(f"Warning: {issue.message}")

    dish, _ = request.resolve()
    summary = dish.summary()
    print(
        f"Sphere radius: {summary['sphere_radius_mm']:.1f} mm "
        f"({summary['sphere_radius_ft']:.3f} ft)"
    )
    print(f"Sag depth: {summary['sag_mm']:.3f} mm")
    print(f"Curved area: {summary['curved_diameter_mm']:.0f} mm diameter")
    print(f"Sections: {sections_x} x {sections_y}")
    print(f"Mesh quality: {quality_label(config.segments)} ({config.segments})")
    for tile in result.tiles:
        print(f"{tile.label}: {tile.path} ({tile.triangle_count} triangles)")
    if result.layout_path:
        print(f"Layout DXF: {result.layout_path}")
    if result.manifest_path:
        print(f"Manifest: {result.manifest_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
