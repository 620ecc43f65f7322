from dataclasses import FrozenInstanceError

import pytest
from nbtlib import Compound, String

from scarif.core.blocks import BlockDiff, BlockFlags


@pytest.mark.parametrize(
    "metadata, tile_data, expected",
    [
        (0, None, BlockFlags.NONE),
        (3, None, BlockFlags.HAS_METADATA),
        (0, Compound({"id": String("Chest")}), BlockFlags.HAS_TILE_NBT),
        (
            15,
            Compound({"id": String("Chest")}),
            BlockFlags.HAS_METADATA | BlockFlags.HAS_TILE_NBT,
        ),
        # presence alone sets the flag
        (0, Compound(), BlockFlags.HAS_TILE_NBT),
    ],
)
def test_flags_are_derived(metadata, tile_data, expected):
    block = BlockDiff(1, metadata, tile_data)
    assert block.flags == expected
    expected_bits = (1 if metadata else 0) | (2 if tile_data is not None else 0)
    assert int(block.flags) == expected_bits
    assert block.has_metadata == bool(metadata)
    assert block.has_tile_data == (tile_data is not None)


def test_flags_cannot_be_assigned():
    with pytest.raises(TypeError):
        BlockDiff(1, 0, None, BlockFlags.HAS_METADATA)  # type: ignore[call-arg]

    block = BlockDiff(1)
    with pytest.raises(FrozenInstanceError):
        block.flags = BlockFlags.HAS_METADATA  # type: ignore[misc]
