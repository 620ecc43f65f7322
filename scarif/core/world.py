from __future__ import annotations

import gzip
import io
import logging
import struct
import zlib
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple, Protocol

import nbtlib
from click import UsageError

from .coordinates import CHUNK_WIDTH

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .coordinates import XYZ, XZ

logger = logging.getLogger(__name__)

SECTOR_SIZE = 4096
REGION_WIDTH = 32
CHUNKS_PER_REGION = REGION_WIDTH * REGION_WIDTH

_COMPRESSION_GZIP = 1
_COMPRESSION_ZLIB = 2
_COMPRESSION_NONE = 3

_READ_ERRORS = (OSError, EOFError, zlib.error, struct.error, KeyError, ValueError)


class ChunkSource(Protocol):
    x: int
    z: int

    def get_id(self, x: int, y: int, z: int) -> int: ...
    def get_data(self, x: int, y: int, z: int) -> int: ...
    def get_tile_entity(self, x: int, y: int, z: int) -> nbtlib.Compound | None: ...


class WorldSource(Protocol):
    def chunk_exists(self, cx: int, cz: int) -> bool: ...
    def get_chunk(self, cx: int, cz: int) -> ChunkSource: ...
    def iter_chunks(self) -> Iterator[ChunkSource]: ...
    def chunk_count(self) -> int: ...


class ChunkLoadError(Exception):
    def __init__(self, chunk_coords: XZ, reason: str = ""):
        cx, cz = chunk_coords
        super().__init__(f"Failed to load chunk ({cx}, {cz}). {reason}".strip())
        self.chunk_coords = chunk_coords


class _Section(NamedTuple):
    blocks: bytes
    add: bytes | None
    data: bytes | None


class Chunk:
    def __init__(
        self,
        x: int,
        z: int,
        sections: dict[int, _Section],
        tile_entities: dict[XYZ, nbtlib.Compound],
    ):
        self.x = x
        self.z = z
        self._sections = sections
        self._tile_entities = tile_entities

    @classmethod
    def from_nbt(cls, root: nbtlib.Compound) -> Chunk:
        level = root["Level"] if "Level" in root else root
        cx, cz = int(level["xPos"]), int(level["zPos"])

        sections: dict[int, _Section] = {}
        for section in level.get("Sections", []):
            if "Blocks" not in section:
                continue
            sections[int(section["Y"])] = _Section(
                blocks=bytes(section["Blocks"]),
                add=bytes(section["Add"]) if "Add" in section else None,
                data=bytes(section["Data"]) if "Data" in section else None,
            )

        tile_entities: dict[XYZ, nbtlib.Compound] = {}
        for tile in level.get("TileEntities", []):
            x = int(tile["x"]) - cx * CHUNK_WIDTH
            z = int(tile["z"]) - cz * CHUNK_WIDTH
            tile_entities[x, int(tile["y"]), z] = tile

        return cls(cx, cz, sections, tile_entities)

    def get_id(self, x: int, y: int, z: int) -> int:
        if not (section := self._sections.get(y >> 4)):
            return 0
        index = _section_index(x, y, z)
        block_id = section.blocks[index]
        if section.add:
            block_id |= _nibble(section.add, index) << 8
        return block_id

    def get_data(self, x: int, y: int, z: int) -> int:
        if not (section := self._sections.get(y >> 4)) or not section.data:
            return 0
        return _nibble(section.data, _section_index(x, y, z))

    def get_tile_entity(self, x: int, y: int, z: int) -> nbtlib.Compound | None:
        return self._tile_entities.get((x, y, z))


class Region:
    def __init__(self, path: Path):
        self.path = path
        with path.open("rb") as f:
            header = f.read(SECTOR_SIZE).ljust(SECTOR_SIZE, b"\0")
        self._offsets = [
            entry >> 8 for entry in struct.unpack(f">{CHUNKS_PER_REGION}I", header)
        ]

    def has_chunk(self, index: int) -> bool:
        return self._offsets[index] != 0

    def chunk_indexes(self) -> list[int]:
        return [i for i, offset in enumerate(self._offsets) if offset]

    def read_chunk(self, index: int) -> nbtlib.Compound | None:
        if not (sector_offset := self._offsets[index]):
            return None
        with self.path.open("rb") as f:
            f.seek(sector_offset * SECTOR_SIZE)
            header = f.read(5)
            if len(header) < 5:
                return None
            length, compression = struct.unpack(">IB", header)
            data = f.read(length - 1)

        if compression == _COMPRESSION_GZIP:
            data = gzip.decompress(data)
        elif compression == _COMPRESSION_ZLIB:
            data = zlib.decompress(data)
        elif compression != _COMPRESSION_NONE:
            logger.debug("Unknown compression %d in %s", compression, self.path)
            return None
        return nbtlib.File.parse(io.BytesIO(data))


class World:
    """Read-only view of one dimension of a pre-1.13 Anvil save."""

    def __init__(self, region_dir: Path):
        self.region_dir = region_dir
        self._regions: dict[XZ, Region | None] = {}

    @classmethod
    def open(cls, world_path: str | Path, dimension: int = 0) -> World:
        world_path = Path(world_path)
        if not world_path.is_dir():
            raise UsageError(f"World path '{world_path}' does not exist.")

        region_dir = world_path / _dimension_folder(dimension) / "region"
        if not region_dir.is_dir():
            raise UsageError(f"World '{world_path}' has no dimension {dimension}.")
        return cls(region_dir)

    def chunk_exists(self, cx: int, cz: int) -> bool:
        region = self._region(cx >> 5, cz >> 5)
        return region is not None and region.has_chunk(_chunk_index(cx, cz))

    def get_chunk(self, cx: int, cz: int) -> Chunk:
        region = self._region(cx >> 5, cz >> 5)
        if not region or not region.has_chunk(_chunk_index(cx, cz)):
            raise ChunkLoadError((cx, cz), "Chunk does not exist.")
        try:
            tag = region.read_chunk(_chunk_index(cx, cz))
            if tag is None:
                raise ChunkLoadError((cx, cz), "Unsupported chunk encoding.")
            return Chunk.from_nbt(tag)
        except _READ_ERRORS as e:
            raise ChunkLoadError((cx, cz), str(e)) from e

    def iter_chunks(self) -> Iterator[Chunk]:
        for rx, rz in self._region_coords():
            region = self._region(rx, rz)
            assert region is not None
            for index in region.chunk_indexes():
                cx = rx * REGION_WIDTH + index % REGION_WIDTH
                cz = rz * REGION_WIDTH + index // REGION_WIDTH
                yield self.get_chunk(cx, cz)

    def chunk_count(self) -> int:
        return sum(
            len(region.chunk_indexes())
            for rx, rz in self._region_coords()
            if (region := self._region(rx, rz))
        )

    def _region(self, rx: int, rz: int) -> Region | None:
        if (rx, rz) not in self._regions:
            path = self.region_dir / f"r.{rx}.{rz}.mca"
            self._regions[rx, rz] = Region(path) if path.is_file() else None
        return self._regions[rx, rz]

    def _region_coords(self) -> list[XZ]:
        coords = []
        for path in self.region_dir.glob("r.*.*.mca"):
            try:
                _, rx, rz, _ = path.name.split(".")
                coords.append((int(rx), int(rz)))
            except ValueError:
                continue
        return sorted(coords)


def _dimension_folder(dimension: int) -> str:
    return "." if dimension == 0 else f"DIM{dimension}"


def _chunk_index(cx: int, cz: int) -> int:
    return (cx & 31) + (cz & 31) * REGION_WIDTH


def _section_index(x: int, y: int, z: int) -> int:
    return ((y & 15) << 8) | (z << 4) | x


def _nibble(array: bytes, index: int) -> int:
    value = array[index >> 1]
    return value >> 4 if index & 1 else value & 0x0F
