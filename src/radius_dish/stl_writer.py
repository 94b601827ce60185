"""
Binary STL encoding for section meshes.

Layout (all little-endian):
  80-byte header | uint32 triangle count |
  per triangle: float32[3] normal, float32[3][3] vertices, uint16 attribute
"""

from __future__ import annotations

import logging
import os
from typing import Union

import numpy as np

from radius_dish.section_mesh import SectionMesh

logger = logging.getLogger(__name__)

HEADER_SIZE = 80
RECORD_SIZE = 50

_HEADER_DTYPE = np.dtype([("header", "S80"), ("count", "<u4")])
_RECORD_DTYPE = np.dtype([
    ("normal", "<f4", (3,)),
    ("vertices", "<f4", (3, 3)),
    ("attribute", "<u2"),
])


def stl_header(text: Union[str, bytes] = b"") -> bytes:
    """80-byte header; never starts with ``solid`` (ASCII STL marker)."""
    raw = text.encode("ascii", "replace") if isinstance(text, str) else bytes(text)
    if raw[:5].lower() == b"solid":
        raw = b"binary " + raw
    return raw[:HEADER_SIZE].ljust(HEADER_SIZE, b"\x00")


def serialize_stl(mesh: SectionMesh, header: Union[str, bytes] = b"") -> bytes:
    """Encode *mesh* as a binary STL buffer of ``84 + 50 * n`` bytes."""
    count = mesh.triangle_count

    head = np.zeros(1, dtype=_HEADER_DTYPE)
    head["header"] = stl_header(header)
    head["count"] = count

    records = np.zeros(count, dtype=_RECORD_DTYPE)
    records["normal"] = mesh.normals
    records["vertices"] = mesh.triangles
    # attribute stays zero

    return head.tobytes() + records.tobytes()


def write_stl(
    mesh: SectionMesh,
    filepath: str,
    header: Union[str, bytes] = b"",
) -> str:
    """Serialize *mesh* and write it to *filepath*.

    Returns:
        Path to created STL file.
    """
    payload = serialize_stl(mesh, header=header)
    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    with open(filepath, "wb") as f:
        f.write(payload)
    logger.info("Exported STL: %s (%d triangles)", filepath, mesh.triangle_count)
    return filepath


def read_stl_triangle_count(buffer: bytes) -> int:
    """Triangle count stored after the header of a binary STL buffer."""
    if len(buffer) < HEADER_SIZE + 4:
        raise ValueError(f"Buffer too short for binary STL: {len(buffer)} bytes")
    head = np.frombuffer(buffer[: HEADER_SIZE + 4], dtype=_HEADER_DTYPE)
    return int(head["count"][0])
