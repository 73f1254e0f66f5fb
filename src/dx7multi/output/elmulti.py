"""
Elektron multi-sample mapping (.elmulti) files.

The format is TOML: a header with the instrument name followed by one
``[[key-zones]]`` table per sample. The device spreads each zone up to the
next zone's pitch, so the computed key range is recorded as a comment only.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence, Union

from ..sampling.mapper import MultisampleMap


# Velocity layer value used by the device for a full-velocity single layer.
FULL_VELOCITY = 0.9960785


def _quote(value: str) -> str:
    """TOML literal string."""
    if "'" in value or "\n" in value:
        raise ValueError(f"Cannot write {value!r} as a TOML literal string")
    return f"'{value}'"


def format_elmulti(name: str, mapping: MultisampleMap, filenames: Sequence[str]) -> str:
    """
    Build the text of an .elmulti file.

    Args:
        name: Instrument name
        mapping: Key zones, ascending
        filenames: Sample file name for each zone, relative to the .elmulti

    Returns:
        File contents
    """
    if len(filenames) != len(mapping):
        raise ValueError(f"Got {len(filenames)} file names for {len(mapping)} zones")

    lines = [
        "# ELEKTRON MULTI-SAMPLE MAPPING FORMAT",
        "version = 0",
        f"name = {_quote(name)}",
    ]
    for zone, filename in zip(mapping, filenames):
        lines += [
            "",
            "[[key-zones]]",
            f"# keys {zone.low}-{zone.high}",
            f"pitch = {zone.root}",
            f"key-center = {float(zone.root)}",
            "",
            "[[key-zones.velocity-layers]]",
            f"velocity = {FULL_VELOCITY}",
            "strategy = 'Forward'",
            "",
            "[[key-zones.velocity-layers.sample-slots]]",
            f"sample = {_quote(filename)}",
            f"trim-end = {zone.sample.frames}",
        ]
    return "\n".join(lines) + "\n"


def write_elmulti(path: Union[str, Path], name: str, mapping: MultisampleMap, filenames: Sequence[str]) -> Path:
    """Write an .elmulti file; see format_elmulti."""
    path = Path(path)
    with open(path, "w", newline="\n", encoding="ascii") as f:
        f.write(format_elmulti(name, mapping, filenames))
    return path
