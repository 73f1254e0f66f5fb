"""
Writing a multisample instrument to disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

from ..sampling.mapper import MultisampleMap
from .elmulti import format_elmulti, write_elmulti
from .naming import note_name, sample_filename, sanitize_name
from .wav import write_wav


def export_multisample(
    mapping: MultisampleMap,
    output_dir: Union[str, Path],
    name: str,
    velocity: int,
) -> Path:
    """
    Write every sample as WAV, then the .elmulti file describing them.

    The mapping file is written last, so a failure while writing samples
    never leaves a mapping that points at missing files.

    Args:
        mapping: Key zones with their rendered samples
        output_dir: Directory to write into (created if missing)
        name: Instrument name, already sanitized
        velocity: Velocity the samples were rendered at (used in file names)

    Returns:
        Path of the .elmulti file
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    filenames = []
    for zone in mapping:
        filename = sample_filename(name, velocity, zone.root)
        write_wav(output_dir / filename, zone.sample)
        filenames.append(filename)

    return write_elmulti(output_dir / f"{name}.elmulti", name, mapping, filenames)


__all__ = [
    "export_multisample",
    "format_elmulti",
    "write_elmulti",
    "write_wav",
    "note_name",
    "sample_filename",
    "sanitize_name",
]
