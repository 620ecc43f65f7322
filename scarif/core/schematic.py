from __future__ import annotations

import logging
from array import array
from pathlib import Path
from typing import TYPE_CHECKING

import nbtlib
from click import UsageError
from msgspec import Struct

from .coordinates import index_to_position

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from .idmap import IdMap

logger = logging.getLogger(__name__)


class TranslationFailure(Struct, frozen=True):
    id: int
    x: int
    y: int
    z: int


def unpack_id(
    blocks: bytes | bytearray, add_blocks: bytes | bytearray, index: int
) -> int:
    """Read the 12-bit id at `index`.

    `blocks` holds the low byte. The high nibble comes from the low half of
    the shared `add_blocks` byte for odd indexes and from its high half for
    even ones.
    """
    add = add_blocks[index >> 1]
    if index & 1:
        return ((add & 0x0F) << 8) + blocks[index]
    return ((add & 0xF0) << 4) + blocks[index]


def pack_id(blocks: bytearray, add_blocks: bytearray, index: int, value: int) -> None:
    blocks[index] = value & 0xFF
    high = (value >> 8) & 0x0F
    add = add_blocks[index >> 1]
    if index & 1:
        add_blocks[index >> 1] = (add & 0xF0) | high
    else:
        add_blocks[index >> 1] = (add & 0x0F) | (high << 4)


def translate_id(old_id: int, source: Mapping[int, str], target: IdMap) -> int | None:
    if old_id not in source:
        return None
    return target.find(source[old_id])


class Schematic:
    def __init__(self, tree: nbtlib.File):
        self.tree = tree
        root = tree["Schematic"] if "Schematic" in tree else tree
        for key in ("Blocks", "Length", "Width"):
            if key not in root:
                raise UsageError(f"Schematic is missing '{key}'.")

        self.root = root
        self.length = int(root["Length"])
        self.width = int(root["Width"])
        self.blocks = bytearray(bytes(root["Blocks"]))

        add_blocks = bytes(root["AddBlocks"]) if "AddBlocks" in root else b""
        # one nibble per block; an array that already covers them is kept as is
        if len(add_blocks) < (len(self.blocks) + 1) >> 1:
            add_blocks = add_blocks.ljust((len(self.blocks) >> 1) + 1, b"\0")
        self.add_blocks = bytearray(add_blocks)

    @classmethod
    def load(cls, path: str | Path) -> Schematic:
        try:
            return cls(nbtlib.load(path))
        except FileNotFoundError:
            raise UsageError(f"Schematic '{path}' does not exist.")

    def save(self, path: str | Path) -> None:
        self.root["Blocks"] = _byte_array(self.blocks)
        self.root["AddBlocks"] = _byte_array(self.add_blocks)
        self.tree.save(path, gzipped=True)

    def __len__(self) -> int:
        return len(self.blocks)


def _byte_array(data: bytearray) -> nbtlib.ByteArray:
    # nbtlib stores bytes as signed
    return nbtlib.ByteArray(array("b", bytes(data)))


class SchematicTranslator:
    """Rewrites a schematic's block ids from one id map to another by name.

    An id that cannot be translated keeps its low byte, loses its high nibble,
    and is recorded in `failures`; the pass never stops on it.
    """

    def __init__(
        self, schematic: Schematic, *, source: Mapping[int, str], target: IdMap
    ):
        self.schematic = schematic
        self.source = source
        self.target = target
        self.failures: list[TranslationFailure] = []

    def process(self) -> Iterator[int]:
        schematic = self.schematic
        blocks, add_blocks = schematic.blocks, schematic.add_blocks

        for index in range(len(blocks)):
            old_id = unpack_id(blocks, add_blocks, index)
            new_id = translate_id(old_id, self.source, self.target)
            if new_id is None:
                x, y, z = index_to_position(index, schematic.length, schematic.width)
                self.failures.append(TranslationFailure(old_id, x, y, z))
                logger.debug("No translation for #%d at %d,%d,%d", old_id, x, y, z)
                new_id = old_id & 0xFF

            pack_id(blocks, add_blocks, index, new_id)
            yield index
