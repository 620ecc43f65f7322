from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

import nbtlib
from click import UsageError

logger = logging.getLogger(__name__)

ID_MAP_FILENAME = "cdfidmap.nbt"


class IdMap(Mapping[int, str]):
    """Block id to block name, as assigned by one particular world.

    Numeric ids are only meaningful within their own world; compare blocks
    from different worlds by name.
    """

    def __init__(self, entries: Mapping[int, str] | None = None):
        self._names: dict[int, str] = dict(entries or {})
        self._ids: dict[str, int] = {}
        for block_id, name in self._names.items():
            self._ids.setdefault(name, block_id)

    @classmethod
    def load(cls, path: str | Path) -> IdMap:
        path = Path(path)
        try:
            root = nbtlib.load(path)
        except FileNotFoundError:
            raise UsageError(f"Id map '{path}' does not exist.")

        entries = {int(block_id): str(name) for name, block_id in root.items()}
        logger.debug("Loaded %d ids from %s", len(entries), path)
        return cls(entries)

    @classmethod
    def for_world(cls, world_path: str | Path) -> IdMap:
        return cls.load(Path(world_path) / ID_MAP_FILENAME)

    def find(self, name: str) -> int | None:
        return self._ids.get(name)

    def __getitem__(self, block_id: int) -> str:
        return self._names[block_id]

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._names

    def __iter__(self) -> Iterator[int]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self):
        return f"{type(self).__name__}({self._names!r})"
