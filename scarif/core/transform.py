from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from click import UsageError

if TYPE_CHECKING:
    from .structure import ScarifStructure

logger = logging.getLogger(__name__)

Transformer = dict[str, str]


def load_transformer(path: str | Path) -> Transformer:
    """Read `old_name,new_name` rows; rows of any other shape are ignored."""
    transformer: Transformer = {}
    try:
        with open(path, newline="", encoding="utf-8") as f:
            for row in csv.reader(f):
                if len(row) != 2:
                    continue
                old_name, new_name = row
                transformer[old_name] = new_name
    except FileNotFoundError:
        raise UsageError(f"Transformer '{path}' does not exist.")
    return transformer


def apply_transformer(structure: ScarifStructure, transformer: Transformer) -> int:
    renamed = 0
    for block_id, name in structure.id_map.items():
        if name in transformer:
            structure.id_map[block_id] = transformer[name]
            renamed += 1
    logger.debug("Renamed %d of %d ids", renamed, len(structure.id_map))
    return renamed
