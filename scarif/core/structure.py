from __future__ import annotations

import io
import logging
import struct
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

import brotli
import nbtlib

from .blocks import BlockDiff, BlockFlags
from .errors import FormatError

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from .coordinates import XYZ, XZ

    ChunkEntries = list[tuple[XYZ, BlockDiff]]

logger = logging.getLogger(__name__)

MAGIC = b"SCRF"
VERSION = 1
BROTLI_QUALITY = 11
TILE_ROOT_NAME = "tile"

_INT = struct.Struct("<i")
_SHORT = struct.Struct("<h")
_CHUNK_HEADER = struct.Struct("<iii")  # x, z, block count
_BLOCK_HEADER = struct.Struct("<BBhB")  # packed xz, y, id, flags
_BYTE = struct.Struct("<B")


class ScarifStructure:
    """Per-chunk list of changed blocks, plus the id table needed to read them.

    Chunks keep their insertion order, and so do the blocks inside each chunk.
    Positions are chunk-local and are not deduplicated.
    """

    version = VERSION

    def __init__(self, id_map: Mapping[int, str] | None = None):
        self.id_map: dict[int, str] = dict(id_map or {})
        self._chunks: dict[XZ, ChunkEntries] = {}

    def add(self, chunk: XZ, pos: XYZ, block: BlockDiff) -> None:
        if chunk not in self._chunks:
            self._chunks[chunk] = []
        self._chunks[chunk].append((pos, block))

    @property
    def count(self) -> int:
        return len(self._chunks)

    @property
    def block_count(self) -> int:
        return sum(len(entries) for entries in self._chunks.values())

    def __getitem__(self, chunk: XZ) -> ChunkEntries:
        return self._chunks[chunk]

    def __contains__(self, chunk: object) -> bool:
        return chunk in self._chunks

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[tuple[XZ, ChunkEntries]]:
        yield from self._chunks.items()

    def save(self, path: str | Path) -> None:
        with open(path, "wb") as f:
            self.dump(f)
        logger.debug("Saved %d chunks to %s", self.count, path)

    def dump(self, fileobj: BinaryIO) -> None:
        writer = _BrotliWriter(fileobj)
        writer.write(MAGIC)
        writer.write(_INT.pack(self.version))
        writer.write(_INT.pack(len(self._chunks)))
        writer.write(_INT.pack(len(self.id_map)))

        for block_id, name in self.id_map.items():
            writer.write(_SHORT.pack(_int16(block_id)))
            writer.write(name.encode("utf-8") + b"\0")

        for (cx, cz), entries in self._chunks.items():
            writer.write(_CHUNK_HEADER.pack(cx, cz, len(entries)))
            for (x, y, z), block in entries:
                # out-of-range local coordinates wrap
                packed_xz = ((x & 0x0F) << 4) | (z & 0x0F)
                header = (packed_xz, y & 0xFF, _int16(block.id), block.flags)
                writer.write(_BLOCK_HEADER.pack(*header))
                if block.has_metadata:
                    writer.write(_BYTE.pack(block.metadata & 0xFF))
                if block.has_tile_data:
                    payload = _encode_tile(block.tile_data)
                    writer.write(_INT.pack(len(payload)))
                    writer.write(payload)

        writer.close()

    @classmethod
    def load(cls, path: str | Path) -> ScarifStructure:
        with open(path, "rb") as f:
            return cls.parse(f)

    @classmethod
    def parse(cls, fileobj: BinaryIO) -> ScarifStructure:
        try:
            data = brotli.decompress(fileobj.read())
        except brotli.error as e:
            raise FormatError(f"Not a compressed SCRF stream: {e}") from e

        reader = _Reader(data)
        if (magic := reader.read(len(MAGIC))) != MAGIC:
            raise FormatError(f"Bad magic {magic!r}; expected {MAGIC!r}.")
        (version,) = reader.unpack(_INT)
        if version != VERSION:
            raise FormatError(f"Unsupported SCRF version {version}.")

        (chunk_count,) = reader.unpack(_INT)
        (id_count,) = reader.unpack(_INT)
        if chunk_count < 0 or id_count < 0:
            raise FormatError("Negative count in SCRF header.")

        id_map: dict[int, str] = {}
        for _ in range(id_count):
            (block_id,) = reader.unpack(_SHORT)
            id_map[block_id] = reader.read_cstring()

        structure = cls(id_map)
        for _ in range(chunk_count):
            cx, cz, block_count = reader.unpack(_CHUNK_HEADER)
            if block_count < 0:
                raise FormatError(f"Negative block count in chunk {(cx, cz)}.")
            # an empty chunk record still claims its slot
            structure._chunks.setdefault((cx, cz), [])
            for _ in range(block_count):
                packed_xz, y, block_id, flags = reader.unpack(_BLOCK_HEADER)
                metadata = 0
                tile_data = None
                if flags & BlockFlags.HAS_METADATA:
                    (metadata,) = reader.unpack(_BYTE)
                if flags & BlockFlags.HAS_TILE_NBT:
                    (length,) = reader.unpack(_INT)
                    if length < 0:
                        raise FormatError("Negative tile payload length.")
                    tile_data = _decode_tile(reader.read(length))
                structure.add(
                    (cx, cz),
                    (packed_xz >> 4, y, packed_xz & 0x0F),
                    BlockDiff(block_id, metadata, tile_data),
                )

        if reader.remaining:
            raise FormatError(f"{reader.remaining} unexpected trailing bytes.")
        return structure


def _encode_tile(tile: nbtlib.Compound, root_name: str = TILE_ROOT_NAME) -> bytes:
    tree = nbtlib.File(tile)
    tree.root_name = root_name
    buffer = io.BytesIO()
    tree.write(buffer)
    return buffer.getvalue()


def _decode_tile(payload: bytes) -> nbtlib.Compound:
    try:
        tree = nbtlib.File.parse(io.BytesIO(payload))
    except (struct.error, EOFError, IndexError, KeyError, TypeError, ValueError) as e:
        raise FormatError(f"Malformed tile payload: {e}") from e
    # nbtlib reads short strings and a missing End tag without complaint
    if _encode_tile(tree, tree.root_name) != payload:
        raise FormatError("Tile payload is truncated or malformed.")
    return nbtlib.Compound(tree)


def _int16(value: int) -> int:
    return ((value + 0x8000) & 0xFFFF) - 0x8000


class _BrotliWriter:
    def __init__(self, fileobj: BinaryIO):
        self._fileobj = fileobj
        self._compressor = brotli.Compressor(quality=BROTLI_QUALITY)

    def write(self, data: bytes) -> None:
        if output := self._compressor.process(data):
            self._fileobj.write(output)

    def close(self) -> None:
        self._fileobj.write(self._compressor.finish())


class _Reader:
    def __init__(self, data: bytes):
        self._data = data
        self._offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def read(self, size: int) -> bytes:
        if size > self.remaining:
            raise FormatError("Unexpected end of SCRF stream.")
        start = self._offset
        self._offset += size
        return self._data[start : self._offset]

    def unpack(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self.read(fmt.size))

    def read_cstring(self) -> str:
        end = self._data.find(b"\0", self._offset)
        if end < 0:
            raise FormatError("Unterminated name in SCRF id table.")
        raw = self.read(end - self._offset)
        self._offset += 1
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError(f"Invalid name in SCRF id table: {e}") from e
