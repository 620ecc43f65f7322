from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nbtlib import Compound


class BlockFlags(IntFlag):
    NONE = 0
    HAS_METADATA = 0b01
    HAS_TILE_NBT = 0b10


@dataclass(frozen=True)
class BlockDiff:
    id: int
    metadata: int = 0
    tile_data: Compound | None = None
    flags: BlockFlags = field(init=False)

    def __post_init__(self):
        # presence, not content: an empty compound still counts as tile data
        flags = BlockFlags.NONE
        if self.metadata != 0:
            flags |= BlockFlags.HAS_METADATA
        if self.tile_data is not None:
            flags |= BlockFlags.HAS_TILE_NBT
        object.__setattr__(self, "flags", flags)

    @property
    def has_metadata(self) -> bool:
        return BlockFlags.HAS_METADATA in self.flags

    @property
    def has_tile_data(self) -> bool:
        return BlockFlags.HAS_TILE_NBT in self.flags
