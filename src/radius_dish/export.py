"""
Caller-side export of dish sections to STL files.

Resolves raw user input into a ``DishConfig``, asks an injected quota
capability for permission, builds each requested tile, and writes one
binary STL per tile plus an optional JSON manifest and layout DXF. The
geometry engine itself never touches the filesystem; this module does.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from radius_dish.contracts import ConfigIssue, SectionGrid, TileAddress
from radius_dish.dish_geometry import DishConfig, iter_tiles, tile_bounds
from radius_dish.distance_parser import parse_distance
from radius_dish.layout_dxf import section_layout_to_dxf
from radius_dish.presets import DEFAULT_SEGMENTS, quality_label
from radius_dish.section_mesh import build_section_mesh
from radius_dish.stl_writer import write_stl

logger = logging.getLogger(__name__)

QuotaCheck = Callable[[], bool]

FREE_USES = 3


@dataclass(frozen=True)
class DishRequest:
    """Raw dish inputs as a user enters them."""

    radius: str
    dish_width: float
    dish_height: float
    rim_width: float
    thickness: float
    sections_x: int = 1
    sections_y: int = 1

    def resolve(self) -> Tuple[Optional[DishConfig], List[ConfigIssue]]:
        """Parse the radius and validate everything.

        A ``cap_through_base`` warning from the calculator is raised to an
        error here: with the cap below the base plane the section walls fold
        through the base and the STL is not a valid solid.

        Returns:
            (config, issues); config is None whenever an error-severity
            issue is present.
        """
        issues: List[ConfigIssue] = []
        try:
            self.grid
        except ValueError as exc:
            issues.append(ConfigIssue(
                code="bad_sections",
                severity="error",
                message=str(exc),
                field="sections",
            ))

        parsed = parse_distance(self.radius)
        if not parsed.ok:
            issues.append(ConfigIssue(
                code="radius_unparseable",
                severity="error",
                message="Can't parse radius, try e.g. 14ft or 4267mm",
                field="sphere_radius",
            ))
            return None, issues

        config = DishConfig(
            dish_width=self.dish_width,
            dish_height=self.dish_height,
            rim_width=self.rim_width,
            thickness=self.thickness,
            sphere_radius=parsed.value_mm,
        )
        for issue in config.issues():
            if issue.code == "cap_through_base":
                issue = replace(issue, severity="error")
            issues.append(issue)
        if any(issue.is_error for issue in issues):
            return None, issues
        return config, issues

    @property
    def grid(self) -> SectionGrid:
        return SectionGrid(self.sections_x, self.sections_y)


@dataclass
class ExportConfig:
    """Configuration for section export."""
    segments: int = DEFAULT_SEGMENTS
    conforming_base: bool = False
    write_manifest: bool = True
    export_layout_dxf: bool = False
    filename_prefix: str = "radius_dish"


@dataclass
class TileExport:
    label: str
    col: int
    row: int
    path: str
    triangle_count: int
    volume_mm3: float
    bounds_mm: List[float]


@dataclass
class ExportResult:
    status: str  # "ok" | "invalid" | "quota_exceeded"
    tiles: List[TileExport] = field(default_factory=list)
    issues: List[ConfigIssue] = field(default_factory=list)
    manifest_path: Optional[str] = None
    layout_path: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def paths(self) -> List[str]:
        return [tile.path for tile in self.tiles]


class FreeUseQuota:
    """In-memory usage counter: a few free exports, unlimited when subscribed."""

    def __init__(self, free_uses: int = FREE_USES, subscribed: bool = False):
        self.free_uses = free_uses
        self.subscribed = subscribed
        self.used = 0

    @property
    def remaining(self) -> int:
        return max(0, self.free_uses - self.used)

    def __call__(self) -> bool:
        if self.subscribed:
            return True
        self.used += 1
        return self.used <= self.free_uses


def section_filename(
    radius_text: str,
    address: TileAddress,
    prefix: str = "radius_dish",
    extension: str = ".stl",
) -> str:
    """``radius_dish_14ft_C1R2.stl`` style name for one tile."""
    radius_part = re.sub(r"\s+", "_", radius_text.strip())
    return f"{prefix}_{radius_part}_{address.label}{extension}"


def export_section(
    request: DishRequest,
    col: int,
    row: int,
    output_dir: str,
    config: Optional[ExportConfig] = None,
    quota: Optional[QuotaCheck] = None,
) -> ExportResult:
    """Export a single tile.

    Raises:
        ValueError: if (col, row) lies outside the request's grid.
    """
    return export_sections(
        request, [TileAddress(int(col), int(row))], output_dir, config, quota
    )


def export_sections(
    request: DishRequest,
    addresses: Iterable[TileAddress],
    output_dir: str,
    config: Optional[ExportConfig] = None,
    quota: Optional[QuotaCheck] = None,
) -> ExportResult:
    """Export the given tiles under one quota use and one manifest.

    Raises:
        ValueError: if no address is given or any address lies outside
            the request's grid.
    """
    addresses = list(addresses)
    if not addresses:
        raise ValueError("No tiles requested")
    grid = _request_grid(request)
    if grid is not None:
        for address in addresses:
            if not grid.contains(address):
                raise ValueError(
                    f"Tile {address.label} is outside the "
                    f"{grid.sections_x}x{grid.sections_y} grid"
                )
    return _export_tiles(request, addresses, output_dir, config, quota)


def export_all_sections(
    request: DishRequest,
    output_dir: str,
    config: Optional[ExportConfig] = None,
    quota: Optional[QuotaCheck] = None,
) -> ExportResult:
    """Export every tile of the request's grid, one at a time."""
    grid = _request_grid(request)
    addresses = list(iter_tiles(grid)) if grid is not None else []
    return _export_tiles(request, addresses, output_dir, config, quota)


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


# ─── Internal helpers ────────────────────────────────────────────────────────


def _request_grid(request: DishRequest) -> Optional[SectionGrid]:
    """The request's grid, or None when its section counts are unusable."""
    try:
        return request.grid
    except ValueError:
        return None


def _export_tiles(
    request: DishRequest,
    addresses: Iterable[TileAddress],
    output_dir: str,
    config: Optional[ExportConfig],
    quota: Optional[QuotaCheck],
) -> ExportResult:
    if config is None:
        config = ExportConfig()

    dish, issues = request.resolve()
    if dish is None:
        logger.warning(
            "Refusing export for radius %r: %s",
            request.radius, "; ".join(i.message for i in issues if i.is_error),
        )
        return ExportResult(status="invalid", issues=issues)

    if quota is not None and not quota():
        logger.warning("Export quota exhausted")
        return ExportResult(status="quota_exceeded", issues=issues)

    grid = request.grid
    os.makedirs(output_dir, exist_ok=True)
    result = ExportResult(status="ok", issues=issues)

    for address in addresses:
        mesh = build_section_mesh(
            dish,
            grid.sections_x,
            grid.sections_y,
            address.col,
            address.row,
            config.segments,
            conforming_base=config.conforming_base,
        )
        filename = section_filename(request.radius, address, prefix=config.filename_prefix)
        path = write_stl(
            mesh,
            os.path.join(output_dir, filename),
            header=f"{config.filename_prefix} R={dish.sphere_radius:.1f}mm {address.label}",
        )
        result.tiles.append(TileExport(
            label=address.label,
            col=address.col,
            row=address.row,
            path=path,
            triangle_count=mesh.triangle_count,
            volume_mm3=float(mesh.to_trimesh().volume),
            bounds_mm=[float(v) for v in mesh.bounds.reshape(-1)],
        ))

    if config.export_layout_dxf:
        radius_part = re.sub(r"\s+", "_", request.radius.strip())
        result.layout_path = section_layout_to_dxf(
            dish,
            grid,
            os.path.join(output_dir, f"{config.filename_prefix}_{radius_part}_layout.dxf"),
            name=f"R {request.radius.strip()}  {grid.sections_x}x{grid.sections_y}",
        )

    if config.write_manifest:
        manifest_path = Path(output_dir) / "manifest.json"
        write_json(manifest_path, _manifest(request, dish, grid, config, result))
        result.manifest_path = str(manifest_path)

    logger.info("Exported %d section(s) to %s", len(result.tiles), output_dir)
    return result


def _manifest(
    request: DishRequest,
    dish: DishConfig,
    grid: SectionGrid,
    config: ExportConfig,
    result: ExportResult,
) -> Dict[str, Any]:
    tiles = []
    for tile in result.tiles:
        entry = asdict(tile)
        entry["path"] = os.path.basename(tile.path)
        entry["plan_bounds_mm"] = list(
            tile_bounds(dish, grid, TileAddress(tile.col, tile.row))
        )
        tiles.append(entry)
    return {
        "input": asdict(request),
        "geometry": dish.summary(),
        "grid": {"sections_x": grid.sections_x, "sections_y": grid.sections_y},
        "mesh": {
            "segments": config.segments,
            "quality": quality_label(config.segments),
            "conforming_base": config.conforming_base,
        },
        "warnings": [i.message for i in result.issues if not i.is_error],
        "tiles": tiles,
        "layout_dxf": os.path.basename(result.layout_path) if result.layout_path else None,
    }
