from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

from click import UsageError
from humanize import intcomma
from msgspec import json
from typer import Argument, Option

from .console import Console
from .progress_bar import ProgressBar

if TYPE_CHECKING:
    from ..core.differ import DiffSummary


def generate(
    original_path: Annotated[
        Path,
        Argument(
            help="Unmodified world for comparison",
            show_default=False,
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
        ),
    ],
    world_path: Annotated[
        Path,
        Argument(
            help="World to diff",
            show_default=False,
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
        ),
    ],
    output_path: Annotated[
        Path,
        Argument(
            help="Output diff file",
            show_default=False,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    dimension: Annotated[
        int,
        Option("--dim", "-d", help="Dimension to diff"),
    ] = 0,
    bounds: Annotated[
        str | None,
        Option(
            "--bounds",
            "-b",
            help="Coordinate boundaries, inclusive",
            metavar="minX:minY:minZ:maxX:maxY:maxZ",
            show_default="entire world",
        ),
    ] = None,
):
    """Generate an SCRF diff between two copies of a world."""
    from ..core.bounds import ChunkBounds
    from ..core.differ import WorldDiffer
    from ..core.idmap import IdMap
    from ..core.session import AtomicOutput
    from ..core.world import ChunkLoadError, World

    # fail before touching either world
    chunk_bounds = ChunkBounds.parse(bounds)

    original = World.open(original_path, dimension)
    world = World.open(world_path, dimension)
    differ = WorldDiffer(
        original=original,
        world=world,
        original_ids=IdMap.for_world(original_path),
        world_ids=IdMap.for_world(world_path),
        bounds=chunk_bounds,
    )

    try:
        with ProgressBar() as track:
            track(
                differ.process(),
                description="Diffing",
                jobs_count=world.chunk_count(),
            )
    except ChunkLoadError as e:
        raise UsageError(str(e))

    _show_diff_summary(differ.summary)

    with AtomicOutput(output_path) as working_path:
        differ.structure.save(working_path)

    Console.success(
        "Saved {blocks} changed blocks to {path}",
        blocks=intcomma(differ.structure.block_count),
        path=output_path,
        important=True,
    )


def translate(
    input_path: Annotated[
        Path,
        Argument(
            help="Input schematic",
            show_default=False,
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ],
    input_map: Annotated[
        Path,
        Argument(
            help="Id map the schematic was made with",
            show_default=False,
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ],
    output_map: Annotated[
        Path,
        Argument(
            help="Id map to translate to",
            show_default=False,
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ],
    output_path: Annotated[
        Path,
        Argument(
            help="Output schematic",
            show_default=False,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    report_path: Annotated[
        Path | None,
        Option(
            "--report",
            help="Write untranslated blocks to this file as JSON",
            metavar="file",
            file_okay=True,
            dir_okay=False,
        ),
    ] = None,
):
    """Translate a schematic's block ids from one id map to another."""
    from ..core.idmap import IdMap
    from ..core.schematic import Schematic, SchematicTranslator
    from ..core.session import AtomicOutput

    translator = SchematicTranslator(
        Schematic.load(input_path),
        source=IdMap.load(input_map),
        target=IdMap.load(output_map),
    )

    with ProgressBar() as track:
        track(
            translator.process(),
            description="Translating",
            jobs_count=len(translator.schematic),
        )

    with AtomicOutput(output_path) as working_path:
        translator.schematic.save(working_path)

    for failure in translator.failures:
        Console.warn(
            "Failed ID: {id} at {position}",
            id=f"#{failure.id}",
            position=f"{failure.x},{failure.y},{failure.z}",
        )

    if report_path:
        with AtomicOutput(report_path) as working_path:
            working_path.write_bytes(json.encode(translator.failures))

    total = len(translator.schematic)
    if translator.failures:
        Console.warn(
            "{failed} of {total} blocks could not be translated.",
            failed=intcomma(len(translator.failures)),
            total=intcomma(total),
            important=True,
        )
    else:
        Console.success(
            "Translated all {total} blocks.", total=intcomma(total), important=True
        )


def convert(
    input_path: Annotated[
        Path,
        Argument(
            help="Input diff file",
            show_default=False,
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ],
    transformer_path: Annotated[
        Path,
        Argument(
            help="CSV lookup table of old_name,new_name",
            show_default=False,
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ],
    output_path: Annotated[
        Path,
        Argument(
            help="Output diff file",
            show_default=False,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
):
    """Rename the blocks of an SCRF diff with a lookup table."""
    from ..core.errors import FormatError
    from ..core.session import AtomicOutput
    from ..core.structure import ScarifStructure
    from ..core.transform import apply_transformer, load_transformer

    try:
        structure = ScarifStructure.load(input_path)
    except FormatError as e:
        raise UsageError(f"'{input_path}' is not a valid SCRF file. {e}")

    renamed = apply_transformer(structure, load_transformer(transformer_path))

    with AtomicOutput(output_path) as working_path:
        structure.save(working_path)

    Console.success(
        "Renamed {renamed} of {total} block names.",
        renamed=intcomma(renamed),
        total=intcomma(len(structure.id_map)),
        important=True,
    )


def _show_diff_summary(summary: DiffSummary):
    Console.info(
        "Processed {processed} of {total} chunks, skipped {skipped}.",
        processed=intcomma(summary.processed),
        total=intcomma(summary.total),
        skipped=intcomma(summary.skipped),
    )
    Console.info(
        "Diffed {blocks} blocks in {chunks} chunks, {tiles} tile entities.",
        blocks=intcomma(summary.diffed_blocks),
        chunks=intcomma(summary.diffed_chunks),
        tiles=intcomma(summary.diffed_tiles),
    )
