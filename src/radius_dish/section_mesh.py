"""
Closed triangle meshes for individual dish sections.

A section is the solid between the dish's top surface and the flat base
plane z = -thickness, clipped to one tile's plan rectangle:

  - top: regular grid over the tile, two triangles per cell
  - walls: one vertical strip per tile edge, two triangles per grid segment
  - base: a single rectangle, or a centre fan matching every wall vertex
    when ``conforming_base`` is requested

Triangles are independent (no shared-vertex indexing); normals follow the
counter-clockwise-from-outside winding.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
import trimesh

from radius_dish.contracts import SectionGrid, TileAddress
from radius_dish.dish_geometry import DishConfig, surface_height, tile_bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SectionMesh:
    """Triangle soup for one printable section."""

    triangles: np.ndarray  # (N, 3, 3) vertex positions, mm
    normals: np.ndarray    # (N, 3) unit outward normals
    label: str = ""

    @property
    def triangle_count(self) -> int:
        return int(len(self.triangles))

    @property
    def bounds(self) -> np.ndarray:
        """(2, 3) array of min and max corners."""
        points = self.triangles.reshape(-1, 3)
        return np.array([points.min(axis=0), points.max(axis=0)])

    def to_trimesh(self) -> trimesh.Trimesh:
        """Indexed copy with coincident vertices merged."""
        vertices = self.triangles.reshape(-1, 3)
        faces = np.arange(len(vertices)).reshape(-1, 3)
        return trimesh.Trimesh(vertices=vertices, faces=faces, process=True)


def build_section_mesh(
    config: DishConfig,
    sections_x: int,
    sections_y: int,
    col: int,
    row: int,
    segments: int = 48,
    *,
    conforming_base: bool = False,
) -> SectionMesh:
    """Build the closed mesh for tile (col, row) of the dish.

    Args:
        config: Dish parameters; must pass ``is_valid``.
        sections_x: Number of tile columns.
        sections_y: Number of tile rows.
        col: Zero-based column, 0 = min x.
        row: Zero-based row, 0 = min y.
        segments: Grid subdivisions per tile side (>= 1).
        conforming_base: Fan the base so it shares every wall vertex.

    Raises:
        ValueError: on any precondition violation. No partial mesh is
            produced for bad input.
    """
    if not config.is_valid():
        problems = "; ".join(i.message for i in config.issues() if i.is_error)
        raise ValueError(f"Invalid dish configuration: {problems}")
    if int(segments) != segments or segments < 1:
        raise ValueError(f"segments must be a positive integer, got {segments!r}")
    grid = SectionGrid(int(sections_x), int(sections_y))
    address = TileAddress(int(col), int(row))
    if not grid.contains(address):
        raise ValueError(
            f"Tile ({col}, {row}) is outside the {sections_x}x{sections_y} grid"
        )

    segments = int(segments)
    min_x, min_y, max_x, max_y = tile_bounds(config, grid, address)
    base_z = -float(config.thickness)

    xs = np.linspace(min_x, max_x, segments + 1)
    ys = np.linspace(min_y, max_y, segments + 1)
    grid_x, grid_y = np.meshgrid(xs, ys, indexing="xy")
    grid_z = surface_height(config, grid_x, grid_y)
    points = np.stack([grid_x, grid_y, grid_z], axis=-1)  # [iy, ix, xyz]

    top = _top_triangles(points)
    loop = _boundary_loop(points)
    walls = np.concatenate([_wall_triangles(edge, base_z) for edge in loop])
    if conforming_base:
        base = _fan_base(loop, base_z, (min_x, min_y, max_x, max_y))
    else:
        base = _rect_base((min_x, min_y, max_x, max_y), base_z)

    triangles = np.concatenate([top, walls, base])
    normals = triangle_normals(triangles)

    logger.debug(
        "Built section %s: %d triangles (%d top, %d wall, %d base)",
        address.label, len(triangles), len(top), len(walls), len(base),
    )
    return SectionMesh(triangles=triangles, normals=normals, label=address.label)


def expected_triangle_count(segments: int, conforming_base: bool = False) -> int:
    base = 4 * segments if conforming_base else 2
    return 2 * segments * segments + 8 * segments + base


def triangle_normals(triangles: np.ndarray) -> np.ndarray:
    """Unit normals from vertex winding; degenerate triangles get zeros."""
    cross = np.cross(
        triangles[:, 1] - triangles[:, 0],
        triangles[:, 2] - triangles[:, 0],
    )
    length = np.linalg.norm(cross, axis=1, keepdims=True)
    safe = np.where(length > 0.0, length, 1.0)
    return np.where(length > 0.0, cross / safe, 0.0)


# ─── Closure checks ──────────────────────────────────────────────────────────


def find_open_edges(
    mesh: SectionMesh,
    decimals: int = 6,
    tolerance: float = 1e-6,
) -> np.ndarray:
    """Edges that are not closed by exactly one opposite-direction partner.

    Edges are first split at any vertex lying in their interior, so a long
    base edge matched by several shorter wall edges (a T-junction) counts
    as closed.

    Returns:
        (K, 2, 3) array of offending edge end points (empty = closed).
    """
    keys = np.round(mesh.triangles.reshape(-1, 3), decimals)
    unique, inverse = np.unique(keys, axis=0, return_inverse=True)
    corners = np.asarray(inverse).reshape(-1, 3)

    directed = corners[:, [0, 1, 1, 2, 2, 0]].reshape(-1, 2)
    directed = directed[directed[:, 0] != directed[:, 1]]

    undirected = Counter(
        (int(min(a, b)), int(max(a, b))) for a, b in directed
    )
    split_cache: Dict[Tuple[int, int], List[int]] = {}
    counts: Counter = Counter()
    for a, b in directed:
        a, b = int(a), int(b)
        pair = (min(a, b), max(a, b))
        if undirected[pair] != 1:
            counts[(a, b)] += 1
            continue
        if pair not in split_cache:
            split_cache[pair] = _interior_vertices(unique, pair[0], pair[1], tolerance)
        chain = split_cache[pair]
        if a != pair[0]:
            chain = chain[::-1]
        path = [a] + chain + [b]
        for start, end in zip(path[:-1], path[1:]):
            counts[(start, end)] += 1

    open_pairs = set()
    for (a, b), n in counts.items():
        if n != 1 or counts.get((b, a), 0) != 1:
            open_pairs.add((min(a, b), max(a, b)))

    if not open_pairs:
        return np.zeros((0, 2, 3))
    ordered = sorted(open_pairs)
    return np.array([[unique[a], unique[b]] for a, b in ordered])


def is_closed(mesh: SectionMesh) -> bool:
    return len(find_open_edges(mesh)) == 0


# ─── Internal helpers ────────────────────────────────────────────────────────


def _top_triangles(points: np.ndarray) -> np.ndarray:
    p00 = points[:-1, :-1]
    p10 = points[:-1, 1:]
    p11 = points[1:, 1:]
    p01 = points[1:, :-1]
    first = np.stack([p00, p10, p11], axis=-2)
    second = np.stack([p00, p11, p01], axis=-2)
    return np.stack([first, second], axis=2).reshape(-1, 3, 3)


def _boundary_loop(points: np.ndarray) -> List[np.ndarray]:
    """Top-surface boundary as four edges, counter-clockwise from above."""
    return [
        points[0, :],        # min y, x increasing
        points[:, -1],       # max x, y increasing
        points[-1, ::-1],    # max y, x decreasing
        points[::-1, 0],     # min x, y decreasing
    ]


def _wall_triangles(edge: np.ndarray, base_z: float) -> np.ndarray:
    """Vertical strip under one boundary edge, facing outward."""
    lower = edge.copy()
    lower[:, 2] = base_z
    top_a, top_b = edge[:-1], edge[1:]
    bot_a, bot_b = lower[:-1], lower[1:]
    first = np.stack([bot_a, bot_b, top_b], axis=1)
    second = np.stack([bot_a, top_b, top_a], axis=1)
    return np.stack([first, second], axis=1).reshape(-1, 3, 3)


def _rect_base(rect, base_z: float) -> np.ndarray:
    min_x, min_y, max_x, max_y = rect
    c00 = (min_x, min_y, base_z)
    c10 = (max_x, min_y, base_z)
    c11 = (max_x, max_y, base_z)
    c01 = (min_x, max_y, base_z)
    return np.array([[c00, c11, c10], [c00, c01, c11]], dtype=np.float64)


def _fan_base(loop: List[np.ndarray], base_z: float, rect) -> np.ndarray:
    min_x, min_y, max_x, max_y = rect
    ring = np.concatenate([edge[:-1] for edge in loop]).copy()
    ring[:, 2] = base_z
    centre = np.array([(min_x + max_x) / 2.0, (min_y + max_y) / 2.0, base_z])
    nxt = np.roll(ring, -1, axis=0)
    hub = np.broadcast_to(centre, ring.shape)
    return np.stack([hub, nxt, ring], axis=1)


def _interior_vertices(
    vertices: np.ndarray,
    a: int,
    b: int,
    tolerance: float,
) -> List[int]:
    """Indices of vertices strictly inside segment a-b, ordered from a."""
    start = vertices[a]
    direction = vertices[b] - start
    length_sq = float(direction @ direction)
    if length_sq == 0.0:
        return []
    t = (vertices - start) @ direction / length_sq
    offset = vertices - (start + t[:, None] * direction)
    dist = np.linalg.norm(offset, axis=1)
    eps = tolerance / np.sqrt(length_sq)
    mask = (t > eps) & (t < 1.0 - eps) & (dist < tolerance)
    inside = np.nonzero(mask)[0]
    return [int(i) for i in inside[np.argsort(t[inside])]]
