"""
Key-zone mapping for a set of rendered samples.

Each sample is stretched over the keys closest to it. The boundary between
two neighbouring samples is the midpoint of their notes, rounded down, so an
odd gap gives the extra key to the upper sample.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..errors import ConfigError
from .renderer import RenderedSample


LOWEST_NOTE = 0
HIGHEST_NOTE = 127


@dataclass(frozen=True)
class KeyZone:
    """
    One sample and the keys it plays.

    Attributes:
        sample: Rendered sample
        low: Lowest key of the zone (inclusive)
        high: Highest key of the zone (inclusive)
        root: Key at which the sample plays unshifted
    """
    sample: RenderedSample
    low: int
    high: int
    root: int

    def __contains__(self, note: int) -> bool:
        return self.low <= note <= self.high


@dataclass(frozen=True)
class MultisampleMap:
    """Key zones in ascending order, covering every MIDI note exactly once."""
    zones: tuple[KeyZone, ...]

    def __len__(self) -> int:
        return len(self.zones)

    def __iter__(self):
        return iter(self.zones)

    def zone_for(self, note: int) -> KeyZone:
        """Zone that plays a given note."""
        for zone in self.zones:
            if note in zone:
                return zone
        raise KeyError(f"No zone covers note {note}")


def _validate_zones(zones: Sequence[KeyZone]) -> None:
    """Check that zones partition 0-127 and each holds its root key."""
    expected_low = LOWEST_NOTE
    for zone in zones:
        if zone.low != expected_low:
            raise ConfigError(f"Zone for note {zone.root} starts at {zone.low}, expected {expected_low}")
        if zone.high < zone.low:
            raise ConfigError(f"Zone for note {zone.root} is empty ({zone.low}-{zone.high})")
        if zone.root not in zone:
            raise ConfigError(f"Root {zone.root} outside its zone {zone.low}-{zone.high}")
        expected_low = zone.high + 1
    if expected_low != HIGHEST_NOTE + 1:
        raise ConfigError(f"Zones end at {expected_low - 1}, expected {HIGHEST_NOTE}")


class MultisampleMapper:
    """Computes contiguous key zones from rendered samples."""

    def map(self, samples: Sequence[RenderedSample]) -> MultisampleMap:
        """
        Assign a key range to every sample.

        Args:
            samples: Rendered samples, ascending by note

        Returns:
            MultisampleMap whose zones partition 0-127

        Raises:
            ConfigError: If samples is empty, or notes are not strictly
                ascending or lie outside 0-127
        """
        if not samples:
            raise ConfigError("Cannot build a key map from an empty sample set")

        notes = [s.note for s in samples]
        for previous, current in zip(notes, notes[1:]):
            if current <= previous:
                raise ConfigError(f"Sample notes must be strictly ascending, got {previous} then {current}")
        if notes[0] < LOWEST_NOTE or notes[-1] > HIGHEST_NOTE:
            raise ConfigError(f"Sample notes must lie in {LOWEST_NOTE}-{HIGHEST_NOTE}")

        zones = []
        low = LOWEST_NOTE
        for i, sample in enumerate(samples):
            if i + 1 < len(samples):
                high = (sample.note + samples[i + 1].note) // 2
            else:
                high = HIGHEST_NOTE
            zones.append(KeyZone(sample=sample, low=low, high=high, root=sample.note))
            low = high + 1

        _validate_zones(zones)
        return MultisampleMap(zones=tuple(zones))
