from __future__ import annotations

import logging
from collections import deque
from itertools import product
from typing import TYPE_CHECKING

from msgspec import Struct
from nbtlib.tag import Array, Compound, List

from .blocks import BlockDiff
from .bounds import UNBOUNDED
from .coordinates import CHUNK_HEIGHT, CHUNK_WIDTH, chunk_origin
from .structure import ScarifStructure

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from nbtlib.tag import Base as Tag

    from .bounds import ChunkBounds
    from .world import ChunkSource, WorldSource

logger = logging.getLogger(__name__)


class DiffSummary(Struct):
    total: int = 0
    processed: int = 0
    skipped: int = 0
    diffed_chunks: int = 0
    diffed_blocks: int = 0
    diffed_tiles: int = 0

    @property
    def remaining(self) -> int:
        return self.total - self.processed - self.skipped


class WorldDiffer:
    """Collects every block of `world` that differs from `original`.

    Blocks are compared by name, each id resolved through its own world's map,
    then by metadata and tile entity content. A block whose id is missing from
    either map cannot be compared; it is treated as unchanged and never shows
    up in the output.
    """

    def __init__(
        self,
        *,
        original: WorldSource,
        world: WorldSource,
        original_ids: Mapping[int, str],
        world_ids: Mapping[int, str],
        bounds: ChunkBounds = UNBOUNDED,
    ):
        self._original = original
        self._world = world
        self._original_ids = original_ids
        self._world_ids = world_ids
        self._bounds = bounds

        self.structure = ScarifStructure(world_ids)
        self.summary = DiffSummary()

    def process(self) -> Iterator[DiffSummary]:
        self.summary.total = self._world.chunk_count()
        for chunk in self._world.iter_chunks():
            self._process_chunk(chunk)
            yield self.summary

    def _process_chunk(self, chunk: ChunkSource) -> None:
        cx, cz = chunk.x, chunk.z
        in_bounds = self._bounds.coarse_contains(cx, cz)
        if not in_bounds or not self._original.chunk_exists(cx, cz):
            self.summary.skipped += 1
            return

        self.summary.processed += 1
        original_chunk = self._original.get_chunk(cx, cz)
        origin_x, origin_z = chunk_origin((cx, cz))
        diffed_before = self.summary.diffed_blocks

        for y, x, z in product(
            range(CHUNK_HEIGHT), range(CHUNK_WIDTH), range(CHUNK_WIDTH)
        ):
            if not self._bounds.contains(origin_x + x, y, origin_z + z):
                continue

            block_id = chunk.get_id(x, y, z)
            original_id = original_chunk.get_id(x, y, z)
            if original_id not in self._original_ids or block_id not in self._world_ids:
                continue

            metadata = chunk.get_data(x, y, z)
            tile = chunk.get_tile_entity(x, y, z)
            original_tile = original_chunk.get_tile_entity(x, y, z)
            tile_changed = not same_tile(original_tile, tile)

            if (
                self._original_ids[original_id] == self._world_ids[block_id]
                and original_chunk.get_data(x, y, z) == metadata
                and not tile_changed
            ):
                continue

            if tile_changed:
                self.summary.diffed_tiles += 1
            self.summary.diffed_blocks += 1
            self.structure.add((cx, cz), (x, y, z), BlockDiff(block_id, metadata, tile))

        if self.summary.diffed_blocks != diffed_before:
            self.summary.diffed_chunks += 1
            logger.debug(
                "Chunk (%d, %d): %d blocks changed",
                cx,
                cz,
                self.summary.diffed_blocks - diffed_before,
            )


def diff_worlds(
    *,
    original: WorldSource,
    world: WorldSource,
    original_ids: Mapping[int, str],
    world_ids: Mapping[int, str],
    bounds: ChunkBounds = UNBOUNDED,
) -> tuple[ScarifStructure, DiffSummary]:
    differ = WorldDiffer(
        original=original,
        world=world,
        original_ids=original_ids,
        world_ids=world_ids,
        bounds=bounds,
    )
    deque(differ.process(), maxlen=0)
    return differ.structure, differ.summary


def same_tile(a: Tag | None, b: Tag | None) -> bool:
    """Compare two NBT tags by content, including each tag's type.

    nbtlib's own equality treats `Byte(1)` and `Int(1)` as equal.
    """
    if a is None or b is None:
        return a is b
    if type(a) is not type(b):
        return False
    if isinstance(a, Compound):
        return a.keys() == b.keys() and all(same_tile(a[key], b[key]) for key in a)
    if isinstance(a, List):
        return len(a) == len(b) and all(map(same_tile, a, b))
    if isinstance(a, Array):
        return a.tobytes() == b.tobytes()
    return a == b
