from __future__ import annotations

from typing import NamedTuple

from .coordinates import CHUNK_WIDTH
from .errors import BoundsError


class ChunkBounds(NamedTuple):
    min_x: int
    min_y: int
    min_z: int
    max_x: int
    max_y: int
    max_z: int

    @classmethod
    def parse(cls, text: str | None) -> ChunkBounds:
        if not text:
            return UNBOUNDED

        parts = text.split(":")
        if len(parts) != 6:
            raise BoundsError(text)
        try:
            values = [int(part) for part in parts]
        except ValueError:
            raise BoundsError(text)

        bounds = cls(*values)
        for axis in "xyz":
            if getattr(bounds, f"min_{axis}") > getattr(bounds, f"max_{axis}"):
                raise BoundsError(text, f"min_{axis} is greater than max_{axis}")
        return bounds

    def contains(self, x: int, y: int, z: int) -> bool:
        return (
            self.min_x <= x <= self.max_x
            and self.min_y <= y <= self.max_y
            and self.min_z <= z <= self.max_z
        )

    def coarse_contains(self, cx: int, cz: int) -> bool:
        start_x, start_z = cx * CHUNK_WIDTH, cz * CHUNK_WIDTH
        end_x, end_z = start_x + CHUNK_WIDTH - 1, start_z + CHUNK_WIDTH - 1
        return (
            start_x <= self.max_x
            and end_x >= self.min_x
            and start_z <= self.max_z
            and end_z >= self.min_z
        )


# wider than any world border
_LIMIT = 2**31 - 1
UNBOUNDED = ChunkBounds(-_LIMIT - 1, -_LIMIT - 1, -_LIMIT - 1, _LIMIT, _LIMIT, _LIMIT)
