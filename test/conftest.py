import io
import struct
import zlib
from array import array
from collections import deque
from pathlib import Path

import nbtlib
import pytest

from scarif.core.world import SECTOR_SIZE


@pytest.fixture(autouse=True)
def mock_console(monkeypatch):
    from scarif.cli.console import Console

    for attr in dir(Console):
        if not attr.startswith("_") and callable(getattr(Console, attr)):
            monkeypatch.setattr(Console, attr, lambda *a, **k: None)


@pytest.fixture(autouse=True)
def mock_progress_bar(monkeypatch):
    from scarif.cli.progress_bar import ProgressBar

    def exhaust(jobs_iter, *args, **kwargs):
        deque(jobs_iter, maxlen=0)

    monkeypatch.setattr(ProgressBar, "__enter__", lambda self: exhaust)
    monkeypatch.setattr(ProgressBar, "__exit__", lambda *args: None)


def _signed(data: bytes | bytearray) -> array:
    return array("b", bytes(data))


def _chunk_nbt(cx, cz, blocks, tiles):
    sections = {}
    for (x, y, z), (block_id, metadata) in blocks.items():
        if y >> 4 not in sections:
            sections[y >> 4] = (bytearray(4096), bytearray(2048), bytearray(2048))
        ids, add, data = sections[y >> 4]
        index = ((y & 15) << 8) | (z << 4) | x
        ids[index] = block_id & 0xFF
        shift = 4 if index & 1 else 0
        add[index >> 1] |= ((block_id >> 8) & 0x0F) << shift
        data[index >> 1] |= (metadata & 0x0F) << shift

    return nbtlib.Compound({
        "Level": nbtlib.Compound({
            "xPos": nbtlib.Int(cx),
            "zPos": nbtlib.Int(cz),
            "Sections": nbtlib.List[nbtlib.Compound]([
                nbtlib.Compound({
                    "Y": nbtlib.Byte(y),
                    "Blocks": nbtlib.ByteArray(_signed(ids)),
                    "Add": nbtlib.ByteArray(_signed(add)),
                    "Data": nbtlib.ByteArray(_signed(data)),
                })
                for y, (ids, add, data) in sections.items()
            ]),
            "TileEntities": nbtlib.List[nbtlib.Compound]([
                nbtlib.Compound({
                    "x": nbtlib.Int(cx * 16 + x),
                    "y": nbtlib.Int(y),
                    "z": nbtlib.Int(cz * 16 + z),
                    **tile,
                })
                for (x, y, z), tile in tiles.items()
            ]),
        })
    })


def _write_region(path: Path, chunks: dict[int, nbtlib.Compound]):
    header = bytearray(SECTOR_SIZE * 2)
    body = bytearray()
    sector = 2
    for index, root in chunks.items():
        buffer = io.BytesIO()
        nbtlib.File(root).write(buffer)
        compressed = zlib.compress(buffer.getvalue())
        payload = struct.pack(">IB", len(compressed) + 1, 2) + compressed
        sectors = -(-len(payload) // SECTOR_SIZE)
        struct.pack_into(">I", header, index * 4, (sector << 8) | sectors)
        body += payload.ljust(sectors * SECTOR_SIZE, b"\0")
        sector += sectors
    path.write_bytes(bytes(header + body))


@pytest.fixture
def make_world(tmp_path):
    """Write a legacy Anvil world.

    `chunks` maps (cx, cz) to {(x, y, z): (id, metadata)}; `tiles` maps
    (cx, cz) to {(x, y, z): tile fields}. `ids` becomes the world's
    cdfidmap.nbt as {id: name}.
    """

    def make(name, chunks, *, ids, tiles=None, dimension=0):
        world_path = tmp_path / name
        folder = "." if dimension == 0 else f"DIM{dimension}"
        region_dir = world_path / folder / "region"
        region_dir.mkdir(parents=True)

        regions: dict[tuple[int, int], dict[int, nbtlib.Compound]] = {}
        for (cx, cz), blocks in chunks.items():
            chunk_tiles = (tiles or {}).get((cx, cz), {})
            index = (cx & 31) + (cz & 31) * 32
            regions.setdefault((cx >> 5, cz >> 5), {})[index] = _chunk_nbt(
                cx, cz, blocks, chunk_tiles
            )
        for (rx, rz), region_chunks in regions.items():
            _write_region(region_dir / f"r.{rx}.{rz}.mca", region_chunks)

        id_map = nbtlib.File({
            block_name: nbtlib.Short(block_id) for block_id, block_name in ids.items()
        })
        id_map.save(world_path / "cdfidmap.nbt", gzipped=True)
        return world_path

    return make
