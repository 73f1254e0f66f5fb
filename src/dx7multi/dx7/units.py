"""
DX7 parameter scaling.

Conversions from the DX7's 0-99 integer parameters to the continuous
quantities the engine works with. Levels are expressed in the engine's
log-amplitude unit, where +1.0 doubles the amplitude (so 0.125 is one eighth
of an octave of gain, the DX7's finest level step).
"""

from __future__ import annotations

import numpy as np


# =============================================================================
# Frequency
# =============================================================================
#
# Ratio mode: coarse 0 is a half, coarse n is n times the note frequency.
# The table holds the same ratios in semitones.
# Fixed mode: coarse (mod 4) selects a decade, fine moves within it.
# =============================================================================

LUT_COARSE = np.array([
    -12.000000, 0.000000, 12.000000, 19.019550,
    24.000000, 27.863137, 31.019550, 33.688259,
    36.000000, 38.039100, 39.863137, 41.513180,
    43.019550, 44.405276, 45.688259, 46.882687,
    48.000000, 49.049554, 50.039100, 50.975130,
    51.863137, 52.707809, 53.513180, 54.282743,
    55.019550, 55.726274, 56.405276, 57.058650,
    57.688259, 58.295772, 58.882687, 59.450356,
])
LUT_COARSE.setflags(write=False)

# One detune step, in semitones.
DETUNE_STEP = 0.015


def midi_to_frequency(note: float) -> float:
    """Equal-tempered frequency of a MIDI note (A4 = 69 = 440 Hz)."""
    return 440.0 * 2.0 ** ((note - 69.0) / 12.0)


def frequency_ratio(coarse: int, fine: int, detune: int, fixed: bool) -> float:
    """
    Operator frequency from its oscillator settings.

    Args:
        coarse: Coarse frequency (0-31)
        fine: Fine frequency (0-99)
        detune: Detune (0-14, 7 = none)
        fixed: Fixed-frequency mode

    Returns:
        Multiple of the note frequency in ratio mode, or an absolute
        frequency in Hz in fixed mode
    """
    detune_semitones = (detune - 7) * DETUNE_STEP
    if fixed:
        semitones = ((coarse & 3) * 100 + fine) * 0.39864 + detune_semitones
        return 2.0 ** (semitones / 12.0)

    semitones = LUT_COARSE[coarse] + detune_semitones
    ratio = 2.0 ** (semitones / 12.0)
    if fine:
        ratio *= 1.0 + 0.01 * fine
    return float(ratio)


# =============================================================================
# Levels and envelope timing
# =============================================================================

def operator_level(level: int) -> int:
    """Map a 0-99 level to the DX7's internal 0-127 attenuation scale."""
    tlc = int(level)
    if level < 20:
        tlc = (tlc * (36 - tlc)) >> 3 if tlc < 15 else 27 + tlc
    else:
        tlc += 28
    return tlc


def envelope_level(level: int, output_level: int) -> float:
    """Envelope segment target (log-amplitude) for an operator."""
    scaled = (operator_level(level) & ~1) + operator_level(output_level) - 133
    return 0.125 * (0.5 if scaled < 1 else scaled)


def operator_envelope_increment(rate: int) -> float:
    """Per-sample phase increment of an envelope segment at 44.1 kHz."""
    rate_scaled = (rate * 41) >> 6
    mantissa = 4 + (rate_scaled & 3)
    exponent = 2 + (rate_scaled >> 2)
    return float(mantissa << exponent) / float(1 << 24)


def pitch_envelope_level(level: int) -> float:
    """Pitch envelope level in octaves (50 = no shift)."""
    l = (level - 50.0) / 32.0
    tail = max(abs(l) + 0.02 - 1.0, 0.0)
    return l * (1.0 + tail * tail * 5.3056)


def pitch_envelope_increment(rate: int) -> float:
    """Per-sample phase increment of a pitch envelope segment at 44.1 kHz."""
    r = rate * 0.01
    return (1.0 + 192.0 * r * (r * r * r * r + 0.3333)) / (21.3 * 44100.0)


# =============================================================================
# Keyboard tracking and velocity
# =============================================================================

def keyboard_scaling(note: float, break_point: int, left_depth: int, right_depth: int,
                     left_curve: int, right_curve: int) -> float:
    """
    Level offset from keyboard level scaling, in 1/8 log-amplitude steps.

    Curves 0 and 3 are linear, 1 and 2 exponential; 0 and 1 attenuate,
    2 and 3 boost.
    """
    x = note - break_point - 15.0
    right = x > 0.0
    curve = right_curve if right else left_curve
    depth = right_depth if right else left_depth

    t = abs(x)
    if curve in (1, 2):
        t = min(t * 0.010467, 1.0)
        t = t * t * t * 96.0
    if curve < 2:
        t = -t
    return t * depth * 0.02677


def rate_scaling(note: float, scaling: int) -> float:
    """Envelope speed multiplier from keyboard rate scaling (0-7)."""
    return 2.0 ** (scaling * (note * 0.33333 - 7.0) * 0.03125)


_VELOCITY_AXIS = np.linspace(0.0, 1.0, 17)
_CUBE_ROOT = np.cbrt(_VELOCITY_AXIS)


def normalize_velocity(velocity: int) -> float:
    """
    Velocity contribution per unit of key velocity sensitivity.

    Args:
        velocity: MIDI velocity (1-127)
    """
    cube_root = float(np.interp(velocity / 127.0, _VELOCITY_AXIS, _CUBE_ROOT))
    return 16.0 * (cube_root - 0.918)


# =============================================================================
# LFO
# =============================================================================

AMP_MOD_SENSITIVITY = (0.0, 0.2588, 0.4274, 1.0)

PITCH_MOD_SENSITIVITY = (
    0.0, 0.0781250, 0.1562500, 0.2578125,
    0.4296875, 0.7187500, 1.1953125, 2.0,
)


def lfo_frequency(speed: int) -> float:
    """LFO frequency in Hz for a 0-99 speed setting."""
    rate_scaled = 1 if speed == 0 else (speed * 165) >> 6
    if rate_scaled < 160:
        rate_scaled *= 11
    else:
        rate_scaled *= 11 + ((rate_scaled - 160) >> 4)
    return rate_scaled * 0.005865


def lfo_delay(delay: int) -> tuple[float, float]:
    """
    LFO delay ramp speeds in Hz for a 0-99 delay setting.

    Returns:
        (hold increment, fade-in increment); the delay phase runs 0-0.5 at
        the first speed, then 0.5-1 at the second while depth fades in
    """
    if delay == 0:
        return 100000.0, 100000.0
    d = 99 - delay
    d = (16 + (d & 15)) << (1 + (d >> 4))
    return d * 0.005865, max(0x80, d & 0xFF80) * 0.005865


def feedback_to_gain(feedback: int) -> float:
    """
    Feedback setting (0-7) to the gain applied to the sum of the operator's last two
    outputs, in cycles of phase.
    """
    return (1 << feedback) / 512.0 if feedback else 0.0
