"""
Six-operator FM engine for DX7 voices.

Renders one Voice at one MIDI note into a mono float buffer. Control-rate
work (envelopes, LFO, pitch envelope, amplitude targets) runs once per block
of ``BLOCK_SIZE`` samples; the operators themselves are rendered a block at a
time with numpy, in an order where every modulator precedes its targets.
Only the feedback operator needs a per-sample loop.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass, field
from typing import ClassVar

import numpy as np

from ..errors import ConfigError, RangeError
from .algorithms import ALGORITHMS, PROCESSING_ORDER
from .units import (
    AMP_MOD_SENSITIVITY,
    PITCH_MOD_SENSITIVITY,
    envelope_level,
    feedback_to_gain,
    frequency_ratio,
    keyboard_scaling,
    lfo_delay,
    lfo_frequency,
    midi_to_frequency,
    normalize_velocity,
    operator_envelope_increment,
    operator_level,
    pitch_envelope_increment,
    pitch_envelope_level,
    rate_scaling,
)
from .voice import LfoParams, Voice


SAMPLE_RATE = 48000
BLOCK_SIZE = 64
DEFAULT_VELOCITY = 100

# Longest release tail rendered after key-off, in seconds.
MAX_RELEASE = 10.0

# Carrier amplitude below which the voice counts as silent (about -72 dB).
SILENCE_AMPLITUDE = 2.0 ** -12

MAX_AMPLITUDE = 4.0
OUTPUT_GAIN = 0.25

# Sample & hold LFO draws from a fixed seed so renders are repeatable.
LFO_SEED = 0x0DC7

# Envelope timings are specified at this rate.
_REFERENCE_RATE = 44100.0


# =============================================================================
# Sine table
# =============================================================================

SINE_TABLE_SIZE = 4096
SINE_TABLE = np.sin(2.0 * np.pi * np.arange(SINE_TABLE_SIZE + 1) / SINE_TABLE_SIZE)
SINE_TABLE.setflags(write=False)

_SINE_VALUES = SINE_TABLE.tolist()


def sine(phase: np.ndarray) -> np.ndarray:
    """
    Table lookup sine of a phase given in cycles.

    Args:
        phase: Phase in cycles (any real value)

    Returns:
        sin(2 * pi * phase), linearly interpolated from SINE_TABLE
    """
    position = (phase - np.floor(phase)) * SINE_TABLE_SIZE
    index = position.astype(np.int64)
    frac = position - index
    return SINE_TABLE[index] + (SINE_TABLE[index + 1] - SINE_TABLE[index]) * frac


def _sine_scalar(phase: float) -> float:
    position = (phase - math.floor(phase)) * SINE_TABLE_SIZE
    index = int(position)
    frac = position - index
    a = _SINE_VALUES[index]
    return a + (_SINE_VALUES[index + 1] - a) * frac


# =============================================================================
# Envelopes
# =============================================================================

# Marker for "start from the previous segment's level".
PREVIOUS_LEVEL = -100.0


@dataclass
class DXEnvelope:
    """
    DX7-style 4-stage rate/level envelope.

    Envelope stages:
    - Stage 0: From the current value toward L1 at rate R1 (attack)
    - Stage 1: From L1 toward L2 at rate R2 (decay 1)
    - Stage 2: From L2 toward L3 at rate R3, then holds until note_off
    - Stage 3: From the current value toward L4 at rate R4 (release)

    Each segment is a phase running 0 to 1; the value is interpolated
    between the segment's start and target. Rising segments of operator
    envelopes follow a curved shape, falling ones are linear in the
    log-amplitude domain.

    Attributes:
        rates: Rates R1-R4 (0-99)
        levels: Levels L1-L4 (0-99)
        sample_rate: Audio sample rate
        output_level: Operator output level the levels are scaled by
    """
    rates: tuple[int, ...]
    levels: tuple[int, ...]
    sample_rate: int
    output_level: int = 99

    stage: int = field(default=3, init=False)
    phase: float = field(default=1.0, init=False)
    start: float = field(default=0.0, init=False)
    _targets: list[float] = field(default_factory=list, init=False)
    _increments: list[float] = field(default_factory=list, init=False)

    reshape: ClassVar[bool] = True

    def __post_init__(self):
        if len(self.rates) != 4 or len(self.levels) != 4:
            raise ValueError("DXEnvelope requires exactly 4 rates and 4 levels")
        self._targets = self._compute_targets()
        self._increments = self._compute_increments()
        self.reset()

    def _compute_targets(self) -> list[float]:
        return [envelope_level(l, self.output_level) for l in self.levels]

    def _compute_increments(self) -> list[float]:
        scale = _REFERENCE_RATE / self.sample_rate
        increments = []
        for i, rate in enumerate(self.rates):
            start = self._targets[i - 1]
            target = self._targets[i]
            increment = operator_envelope_increment(rate)

            if start == target:
                increment *= 0.6
                if i == 0 and not self.levels[i]:
                    increment *= 20.0
            elif start < target:
                start = max(6.7, start)
                target = max(6.7, target)
                if start == target:
                    increment = 1.0
                else:
                    increment *= 7.2 / (target - start)
            else:
                increment *= 1.0 / (start - target)
            increments.append(increment * scale)
        return increments

    def reset(self) -> None:
        """Return to the idle state, resting at L4."""
        self.stage = 3
        self.phase = 1.0
        self.start = 0.0

    def note_on(self) -> None:
        """Start the attack from the current value."""
        self.start = self.value()
        self.stage = 0
        self.phase = 0.0

    def note_off(self) -> None:
        """Trigger release stage (stage 3)."""
        if self.stage != 3:
            self.start = self.value()
            self.stage = 3
            self.phase = 0.0

    def step(self, rate: float) -> float:
        """
        Advance the envelope by ``rate`` samples' worth of time.

        Args:
            rate: Elapsed samples, already multiplied by any rate scaling

        Returns:
            Envelope value after the step
        """
        self.phase += self._increments[self.stage] * rate
        if self.phase >= 1.0:
            if self.stage >= 2:
                self.phase = 1.0
            else:
                self.phase = 0.0
                self.stage += 1
            self.start = PREVIOUS_LEVEL
        return self.value()

    def value(self) -> float:
        """Current envelope value."""
        start = self._targets[self.stage - 1] if self.start == PREVIOUS_LEVEL else self.start
        target = self._targets[self.stage]
        phase = self.phase
        if self.reshape and start < target:
            start = max(6.7, start)
            target = max(6.7, target)
            phase *= (2.5 - phase) * 0.666667
        return phase * (target - start) + start

    def is_finished(self) -> bool:
        """Check if the release segment has completed."""
        return self.stage == 3 and self.phase >= 1.0


@dataclass
class PitchEnvelope(DXEnvelope):
    """Pitch envelope; values are pitch offsets in octaves."""

    reshape: ClassVar[bool] = False

    def _compute_targets(self) -> list[float]:
        return [pitch_envelope_level(l) for l in self.levels]

    def _compute_increments(self) -> list[float]:
        scale = _REFERENCE_RATE / self.sample_rate
        increments = []
        for i, rate in enumerate(self.rates):
            start = self._targets[i - 1]
            target = self._targets[i]
            increment = pitch_envelope_increment(rate)
            if start != target:
                increment *= 1.0 / abs(start - target)
            elif i != 3:
                increment = 0.2
            increments.append(increment * scale)
        return increments


# =============================================================================
# LFO
# =============================================================================

@dataclass
class LFO:
    """
    Voice LFO with delayed fade-in.

    Attributes:
        params: LFO settings of the voice
        sample_rate: Audio sample rate
        seed: Seed of the sample & hold generator
    """
    params: LfoParams
    sample_rate: int
    seed: int = LFO_SEED

    phase: float = field(default=0.0, init=False)
    delay_phase: float = field(default=0.0, init=False)
    value: float = field(default=0.0, init=False)

    def __post_init__(self):
        p = self.params
        self._frequency = lfo_frequency(p.speed) / self.sample_rate
        self._delay_increments = tuple(inc / self.sample_rate for inc in lfo_delay(p.delay))
        self._pitch_mod_depth = p.pitch_mod_depth * 0.01 * PITCH_MOD_SENSITIVITY[p.pitch_mod_sensitivity]
        self._amp_mod_depth = p.amp_mod_depth * 0.01
        self.reset()

    def reset(self) -> None:
        """Restart at phase 0 with the delay ramp rewound."""
        self._rng = np.random.default_rng(self.seed)
        self._random_value = float(self._rng.random())
        self.phase = 0.0
        self.delay_phase = 0.0
        self.value = self._waveform()

    def step(self, scale: float) -> None:
        """Advance by ``scale`` samples."""
        self.phase += self._frequency * scale
        if self.phase >= 1.0:
            self.phase -= math.floor(self.phase)
            self._random_value = float(self._rng.random())
        self.value = self._waveform()

        self.delay_phase += self._delay_increments[0 if self.delay_phase < 0.5 else 1] * scale
        if self.delay_phase >= 1.0:
            self.delay_phase = 1.0

    def _waveform(self) -> float:
        p = self.phase
        waveform = self.params.waveform
        if waveform == 0:
            return 2.0 * (0.5 - p if p < 0.5 else p - 0.5)
        if waveform == 1:
            return 1.0 - p
        if waveform == 2:
            return p
        if waveform == 3:
            return 0.0 if p < 0.5 else 1.0
        if waveform == 4:
            return 0.5 + 0.5 * math.sin(2.0 * math.pi * (p + 0.5))
        return self._random_value

    def _ramp(self) -> float:
        return 0.0 if self.delay_phase < 0.5 else (self.delay_phase - 0.5) * 2.0

    def pitch_mod(self) -> float:
        """Pitch modulation in octaves."""
        return (self.value - 0.5) * self._ramp() * self._pitch_mod_depth

    def amp_mod(self) -> float:
        """Amplitude modulation amount (0-1)."""
        return (1.0 - self.value) * self._ramp() * self._amp_mod_depth


# =============================================================================
# Engine
# =============================================================================

def _validate_note(note: int) -> None:
    if isinstance(note, bool) or not isinstance(note, (int, np.integer)):
        raise RangeError(f"MIDI note must be an integer, got {note!r}")
    if not 0 <= note <= 127:
        raise RangeError(f"MIDI note must be 0-127, got {note}")


class FmSynthEngine:
    """
    DX7 voice renderer.

    The engine holds no per-note state, so one instance may render several
    notes concurrently.

    Args:
        voice: Voice to render
        sample_rate: Audio sample rate
        velocity: Fixed MIDI key velocity (1-127)

    Example:
        >>> engine = FmSynthEngine(voice, sample_rate=48000)
        >>> audio = engine.render(note=60, key_on_duration=2.0)
    """

    def __init__(self, voice: Voice, sample_rate: int = SAMPLE_RATE, velocity: int = DEFAULT_VELOCITY):
        if sample_rate <= 0:
            raise ConfigError(f"Sample rate must be positive, got {sample_rate}")
        if isinstance(velocity, bool) or not isinstance(velocity, (int, np.integer)) or not 1 <= velocity <= 127:
            raise RangeError(f"Velocity must be an integer 1-127, got {velocity!r}")

        self.voice = voice
        self.sample_rate = sample_rate
        self.velocity = int(velocity)

        algo = ALGORITHMS[voice.algorithm]
        self._order = PROCESSING_ORDER[voice.algorithm]
        self._carriers = tuple(c - 1 for c in algo.carriers)
        self._modulators = {op: [m - 1 for m in algo.modulators_of(op)] for op in range(1, 7)}
        self._feedback_op = algo.feedback
        self._feedback_gain = feedback_to_gain(voice.feedback)

        self._ratios = np.array([
            frequency_ratio(op.coarse, op.fine, op.detune, op.fixed) for op in voice.operators
        ])
        self._fixed = np.array([op.fixed for op in voice.operators])
        self._amp_mod_sensitivity = np.array([
            AMP_MOD_SENSITIVITY[op.amp_mod_sensitivity] for op in voice.operators
        ])

    def render(self, note: int, key_on_duration: float, max_release: float = MAX_RELEASE) -> np.ndarray:
        """
        Render a single note.

        Key-on starts at sample 0 and key-off happens after
        ``key_on_duration`` seconds. Rendering stops once every carrier has
        decayed below SILENCE_AMPLITUDE, or ``max_release`` seconds after
        key-off.

        Args:
            note: MIDI note number (0-127)
            key_on_duration: Time the key is held, in seconds
            max_release: Longest release tail, in seconds

        Returns:
            Mono audio as numpy array (float64) in [-1, 1]

        Raises:
            RangeError: If note is not an integer 0-127
            ConfigError: If key_on_duration <= 0, max_release < 0 or either
                is not finite
        """
        _validate_note(note)
        if not 0 < key_on_duration < math.inf:
            raise ConfigError(f"Key-on duration must be positive and finite, got {key_on_duration}")
        if not 0 <= max_release < math.inf:
            raise ConfigError(f"Maximum release must be finite and not negative, got {max_release}")

        sr = self.sample_rate
        voice = self.voice
        ops = voice.operators
        input_note = note + voice.transpose - 24
        base_frequency = midi_to_frequency(input_note) / sr

        envelopes = [DXEnvelope(op.rates, op.levels, sr, op.output_level) for op in ops]
        pitch_envelope = PitchEnvelope(voice.pitch_rates, voice.pitch_levels, sr)
        lfo = LFO(voice.lfo, sr)

        # Per-note constants
        velocity = normalize_velocity(self.velocity)
        envelope_speed = [rate_scaling(input_note, op.rate_scaling) for op in ops]
        level_offsets = np.array([
            0.125 * min(
                keyboard_scaling(input_note, op.break_point, op.left_depth, op.right_depth,
                                 op.left_curve, op.right_curve)
                + velocity * op.velocity_sensitivity,
                127 - operator_level(op.output_level),
            )
            for op in ops
        ])

        key_on_samples = max(1, int(round(key_on_duration * sr)))
        limit = key_on_samples + int(round(max_release * sr))

        phases = np.zeros(6)
        amplitudes = np.zeros(6)
        feedback = [0.0, 0.0]
        for env in envelopes:
            env.note_on()
        pitch_envelope.note_on()

        blocks = []
        position = 0
        released = False
        silent = False
        while position < limit:
            if not released and position >= key_on_samples:
                for env in envelopes:
                    env.note_off()
                pitch_envelope.note_off()
                released = True
            size = min(BLOCK_SIZE, (limit if released else key_on_samples) - position)

            lfo.step(size)
            pitch_mod = pitch_envelope.step(size) + lfo.pitch_mod()
            pitch_ratio = 2.0 ** pitch_mod
            frequencies = np.where(
                self._fixed,
                self._ratios / sr,
                self._ratios * base_frequency,
            ) * pitch_ratio
            frequencies = np.minimum(frequencies, 0.5)

            levels = np.array([env.step(size * speed) for env, speed in zip(envelopes, envelope_speed)])
            levels += level_offsets
            level_mod = 1.0 - 2.0 ** (6.4 * (self._amp_mod_sensitivity * lfo.amp_mod() - 1.0))
            targets = np.minimum(2.0 ** (-14.0 + levels * level_mod), MAX_AMPLITUDE)

            blocks.append(self._render_block(size, frequencies, amplitudes, targets, phases, feedback))
            amplitudes = targets
            position += size

            if released and all(targets[c] < SILENCE_AMPLITUDE for c in self._carriers):
                silent = True
                break

        if released and not silent and max_release > 0:
            warnings.warn(f"Note {note}: release tail cut at {max_release:g}s before reaching silence")

        output = np.concatenate(blocks) * OUTPUT_GAIN
        if np.max(np.abs(output)) > 1.0:
            warnings.warn(f"Note {note}: output clipped")
            output = np.clip(output, -1.0, 1.0)
        return output

    def _render_block(
        self,
        size: int,
        frequencies: np.ndarray,
        start: np.ndarray,
        end: np.ndarray,
        phases: np.ndarray,
        feedback: list[float],
    ) -> np.ndarray:
        """Render one block of all operators, returning the carrier mix."""
        steps = np.arange(1, size + 1)
        ramp = np.arange(size) / size
        outputs: dict[int, np.ndarray] = {}
        mix = np.zeros(size)

        for op in self._order:
            i = op - 1
            amplitude = start[i] + (end[i] - start[i]) * ramp
            phase = phases[i] + frequencies[i] * steps
            for m in self._modulators[op]:
                phase = phase + outputs[m]

            if op == self._feedback_op and self._feedback_gain > 0.0:
                out = self._render_feedback(phase, amplitude, feedback)
            else:
                out = sine(phase) * amplitude

            phases[i] = (phases[i] + frequencies[i] * size) % 1.0
            outputs[i] = out

        for c in self._carriers:
            mix += outputs[c]
        return mix

    def _render_feedback(self, phase: np.ndarray, amplitude: np.ndarray, history: list[float]) -> np.ndarray:
        """Operator with self-feedback, one sample at a time."""
        gain = self._feedback_gain
        previous0, previous1 = history
        out = []
        for p, a in zip(phase.tolist(), amplitude.tolist()):
            y = _sine_scalar(p + (previous0 + previous1) * gain) * a
            previous1 = previous0
            previous0 = y
            out.append(y)
        history[0] = previous0
        history[1] = previous1
        return np.array(out)


def render_note(
    voice: Voice,
    note: int,
    key_on_duration: float,
    sample_rate: int = SAMPLE_RATE,
    velocity: int = DEFAULT_VELOCITY,
    max_release: float = MAX_RELEASE,
) -> np.ndarray:
    """
    Render one note of a voice.

    Convenience function for quick note rendering without manually
    instantiating FmSynthEngine.

    Example:
        >>> audio = render_note(voice, 60, 2.0)
    """
    engine = FmSynthEngine(voice, sample_rate=sample_rate, velocity=velocity)
    return engine.render(note, key_on_duration, max_release=max_release)
