from __future__ import annotations

XYZ = tuple[int, int, int]
XZ = tuple[int, int]

CHUNK_WIDTH = 16
CHUNK_HEIGHT = 256


def chunk_origin(chunk: XZ) -> XZ:
    cx, cz = chunk
    return cx * CHUNK_WIDTH, cz * CHUNK_WIDTH


def index_to_position(index: int, length: int, width: int) -> XYZ:
    """Recover (x, y, z) from a flattened schematic index.

    Flatten order is X fastest, then Z, then Y. Both divisions use `width`,
    matching how existing schematics were indexed by the legacy tooling.
    """
    x = index % length
    z = ((index - x) // width) % length
    y = (((index - x) // width) - z) // length
    return x, y, z
