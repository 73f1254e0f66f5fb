"""
Rendering a voice across a range of notes.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from ..dx7.engine import DEFAULT_VELOCITY, MAX_RELEASE, SAMPLE_RATE, FmSynthEngine
from ..dx7.voice import Voice
from ..errors import ConfigError, RangeError
from ..processing import remove_dc


@dataclass
class RenderedSample:
    """
    One rendered note.

    Attributes:
        note: MIDI note the sample was rendered at
        sample_rate: Audio sample rate
        pcm: Mono audio (float64, -1..1)
        key_on_duration: Time the key was held, in seconds
    """
    note: int
    sample_rate: int
    pcm: np.ndarray
    key_on_duration: float

    @property
    def frames(self) -> int:
        return len(self.pcm)

    @property
    def duration(self) -> float:
        """Nominal length in seconds: key-on time plus release tail."""
        return len(self.pcm) / self.sample_rate


def sample_notes(min_note: int, max_note: int, increment: int) -> list[int]:
    """
    Notes to sample: min_note, min_note + increment, ... up to max_note.

    max_note is always the last entry, even when it is off the increment
    grid, so the top of the range is covered.

    Raises:
        ConfigError: If min_note > max_note or increment <= 0
        RangeError: If a bound lies outside 0-127
    """
    if increment <= 0:
        raise ConfigError(f"Note increment must be positive, got {increment}")
    if min_note > max_note:
        raise ConfigError(f"Minimum note {min_note} is above maximum note {max_note}")
    for bound in (min_note, max_note):
        if not 0 <= bound <= 127:
            raise RangeError(f"MIDI note must be 0-127, got {bound}")

    notes = list(range(min_note, max_note + 1, increment))
    if notes[-1] != max_note:
        notes.append(max_note)
    return notes


class SampleRenderer:
    """
    Renders a voice at a series of notes.

    Args:
        voice: Voice to render
        sample_rate: Audio sample rate
        velocity: Fixed MIDI velocity for every note
        max_release: Longest release tail in seconds
        workers: Number of render threads (1 renders in the calling thread)
        dc_block: Remove DC offset from each sample

    Example:
        >>> renderer = SampleRenderer(voice)
        >>> samples = renderer.render(60, 108, 3, key_on_duration=2.0)
        >>> [s.note for s in samples][:3]
        [60, 63, 66]
    """

    def __init__(
        self,
        voice: Voice,
        sample_rate: int = SAMPLE_RATE,
        velocity: int = DEFAULT_VELOCITY,
        max_release: float = MAX_RELEASE,
        workers: int = 1,
        dc_block: bool = True,
    ):
        if workers < 1:
            raise ConfigError(f"Worker count must be at least 1, got {workers}")
        self.engine = FmSynthEngine(voice, sample_rate=sample_rate, velocity=velocity)
        self.sample_rate = sample_rate
        self.max_release = max_release
        self.workers = workers
        self.dc_block = dc_block

    def render_note(self, note: int, key_on_duration: float) -> RenderedSample:
        """Render one note into a RenderedSample."""
        pcm = self.engine.render(note, key_on_duration, max_release=self.max_release)
        if self.dc_block:
            pcm = remove_dc(pcm, self.sample_rate)
        return RenderedSample(note=note, sample_rate=self.sample_rate, pcm=pcm, key_on_duration=key_on_duration)

    def render(
        self,
        min_note: int,
        max_note: int,
        increment: int,
        key_on_duration: float,
        progress: Optional[Callable[[RenderedSample], None]] = None,
    ) -> list[RenderedSample]:
        """
        Render every note of the sampling grid.

        Args:
            min_note: Lowest note
            max_note: Highest note (always rendered)
            increment: Distance between sampled notes
            key_on_duration: Time each key is held, in seconds
            progress: Called with each finished sample, in completion order

        Returns:
            RenderedSamples in ascending note order
        """
        notes = sample_notes(min_note, max_note, increment)
        if not key_on_duration > 0:
            raise ConfigError(f"Key-on duration must be positive, got {key_on_duration}")

        results: list[RenderedSample] = []
        if self.workers == 1:
            for note in notes:
                sample = self.render_note(note, key_on_duration)
                results.append(sample)
                if progress is not None:
                    progress(sample)
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [pool.submit(self.render_note, note, key_on_duration) for note in notes]
                for future in as_completed(futures):
                    sample = future.result()
                    results.append(sample)
                    if progress is not None:
                        progress(sample)

        results.sort(key=lambda s: s.note)
        return results
