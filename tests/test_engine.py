from __future__ import annotations

import warnings
from dataclasses import replace

import numpy as np
import pytest

from dx7multi.dx7 import BLOCK_SIZE, LFO, PRESETS, DXEnvelope, FmSynthEngine, LfoParams, Operator, Voice, render_note
from dx7multi.dx7 import units
from dx7multi.errors import ConfigError, RangeError

from conftest import TEST_SAMPLE_RATE

SR = TEST_SAMPLE_RATE


def _dominant_frequency(audio: np.ndarray, sample_rate: int) -> float:
    spectrum = np.abs(np.fft.rfft(audio * np.hanning(len(audio))))
    return float(np.fft.rfftfreq(len(audio), 1.0 / sample_rate)[np.argmax(spectrum)])


def _energy_away_from(audio: np.ndarray, sample_rate: int, frequency: float, width: float = 20.0) -> float:
    """Share of spectral energy further than width Hz from frequency."""
    power = np.abs(np.fft.rfft(audio * np.hanning(len(audio)))) ** 2
    freqs = np.fft.rfftfreq(len(audio), 1.0 / sample_rate)
    return float(power[np.abs(freqs - frequency) > width].sum() / power.sum())


def _with_op1(voice: Voice, **changes) -> Voice:
    return replace(voice, operators=(replace(voice.operators[0], **changes),) + voice.operators[1:])


def _slow_release_voice() -> Voice:
    op1 = Operator(output_level=99, rates=(99, 99, 99, 1))
    return replace(Voice(), operators=(op1,) + Voice().operators[1:])


# =============================================================================
# Units
# =============================================================================

def test_frequency_units() -> None:
    assert units.midi_to_frequency(69) == pytest.approx(440.0)
    assert units.frequency_ratio(1, 0, 7, False) == pytest.approx(1.0)
    assert units.frequency_ratio(0, 0, 7, False) == pytest.approx(0.5)
    assert units.frequency_ratio(2, 0, 7, False) == pytest.approx(2.0)
    assert units.frequency_ratio(1, 50, 7, False) == pytest.approx(1.5)
    assert units.frequency_ratio(1, 0, 14, False) > 1.0 > units.frequency_ratio(1, 0, 0, False)
    # Fixed mode gives Hz: coarse 0-3 are 1, 10, 100, 1000.
    assert units.frequency_ratio(0, 0, 7, True) == pytest.approx(1.0)
    assert units.frequency_ratio(1, 0, 7, True) == pytest.approx(10.0, rel=0.01)
    assert units.frequency_ratio(3, 0, 7, True) == pytest.approx(1000.0, rel=0.01)


def test_level_units() -> None:
    assert units.operator_level(0) == 0
    assert units.operator_level(99) == 127
    assert units.operator_level(20) == 48
    assert units.feedback_to_gain(0) == 0.0
    assert units.feedback_to_gain(7) == pytest.approx(0.25)
    assert units.normalize_velocity(127) > units.normalize_velocity(64) > units.normalize_velocity(1)


def test_keyboard_scaling() -> None:
    # No depth, no effect.
    assert units.keyboard_scaling(100, 39, 0, 0, 0, 0) == 0.0
    # -LIN right curve attenuates above the break point, +LIN boosts.
    assert units.keyboard_scaling(100, 39, 0, 50, 0, 0) < 0.0
    assert units.keyboard_scaling(100, 39, 0, 50, 0, 3) > 0.0
    assert units.rate_scaling(60, 0) == 1.0
    assert units.rate_scaling(100, 7) > units.rate_scaling(40, 7)


# =============================================================================
# Envelopes and LFO
# =============================================================================

def test_envelope_attack_sustain_release() -> None:
    env = DXEnvelope((99, 99, 99, 99), (99, 99, 99, 0), SR, output_level=99)
    env.note_on()
    for _ in range(100):
        env.step(BLOCK_SIZE)
    sustain = env.value()
    assert env.stage == 2
    assert sustain == pytest.approx(units.envelope_level(99, 99))

    env.note_off()
    assert env.stage == 3
    for _ in range(100):
        env.step(BLOCK_SIZE)
    assert env.is_finished()
    assert env.value() < sustain


def test_envelope_requires_four_segments() -> None:
    with pytest.raises(ValueError):
        DXEnvelope((99, 99, 99), (99, 99, 99), SR)


def test_sample_and_hold_lfo_is_seeded() -> None:
    params = LfoParams(speed=99, waveform=5)
    first, second = LFO(params, SR), LFO(params, SR)
    values = []
    for _ in range(200):
        first.step(BLOCK_SIZE)
        second.step(BLOCK_SIZE)
        assert first.value == second.value
        values.append(first.value)
    assert len(set(values)) > 1


def test_lfo_starts_at_phase_zero() -> None:
    lfo = LFO(LfoParams(waveform=1), SR)
    assert lfo.phase == 0.0
    assert lfo.value == 1.0


# =============================================================================
# Rendering
# =============================================================================

def test_init_voice_pitch() -> None:
    audio = render_note(Voice(), 69, key_on_duration=0.5, sample_rate=SR, max_release=0.0)
    assert _dominant_frequency(audio, SR) == pytest.approx(440.0, abs=4.0)
    audio = render_note(Voice(), 81, key_on_duration=0.5, sample_rate=SR, max_release=0.0)
    assert _dominant_frequency(audio, SR) == pytest.approx(880.0, abs=4.0)


def test_transpose_shifts_pitch() -> None:
    voice = replace(Voice(), transpose=36)
    audio = render_note(voice, 57, key_on_duration=0.5, sample_rate=SR, max_release=0.0)
    assert _dominant_frequency(audio, SR) == pytest.approx(440.0, abs=4.0)


def test_pitch_envelope_shifts_pitch() -> None:
    voice = replace(Voice(), pitch_levels=(82, 82, 82, 82))
    audio = render_note(voice, 69, key_on_duration=0.5, sample_rate=SR, max_release=0.0)
    expected = 440.0 * 2.0 ** units.pitch_envelope_level(82)
    assert expected == pytest.approx(881.0, abs=2.0)
    assert _dominant_frequency(audio, SR) == pytest.approx(expected, abs=4.0)


def test_fixed_frequency_ignores_note() -> None:
    voice = _with_op1(Voice(), fixed=True, coarse=2, fine=0)
    for note in (48, 60, 84):
        audio = render_note(voice, note, key_on_duration=1.0, sample_rate=SR, max_release=0.0)
        assert _dominant_frequency(audio, SR) == pytest.approx(100.0, abs=3.0)


def test_modulator_adds_sidebands() -> None:
    plain = render_note(Voice(), 69, 0.5, sample_rate=SR, max_release=0.0)
    op2 = Operator(output_level=80)
    voice = replace(Voice(), operators=(Voice().operators[0], op2) + Voice().operators[2:])
    modulated = render_note(voice, 69, 0.5, sample_rate=SR, max_release=0.0)
    assert _energy_away_from(plain, SR, 440.0) < 0.01
    assert _energy_away_from(modulated, SR, 440.0) > 0.1


def test_feedback_adds_harmonics() -> None:
    op6 = Operator(output_level=99)
    voice = Voice(operators=tuple(Operator() for _ in range(5)) + (op6,), algorithm=32)
    clean = render_note(voice, 69, 0.5, sample_rate=SR, max_release=0.0)
    driven = render_note(replace(voice, feedback=7), 69, 0.5, sample_rate=SR, max_release=0.0)
    assert _energy_away_from(clean, SR, 440.0) < 0.01
    assert _energy_away_from(driven, SR, 440.0) > 0.1


def test_lfo_amp_mod_varies_level() -> None:
    lfo = LfoParams(speed=35, amp_mod_depth=99, waveform=0)
    plain = render_note(Voice(), 69, 1.0, sample_rate=SR, max_release=0.0)
    tremolo = render_note(replace(_with_op1(Voice(), amp_mod_sensitivity=3), lfo=lfo), 69, 1.0,
                          sample_rate=SR, max_release=0.0)

    def window_peaks(audio: np.ndarray) -> np.ndarray:
        return np.abs(audio[800:]).reshape(-1, 400).max(axis=1)

    assert np.ptp(window_peaks(plain)) < 0.02
    assert np.ptp(window_peaks(tremolo)) > 0.1


def test_lfo_pitch_mod_spreads_spectrum() -> None:
    lfo = LfoParams(speed=35, pitch_mod_depth=99, pitch_mod_sensitivity=7, waveform=0)
    vibrato = render_note(replace(Voice(), lfo=lfo), 69, 0.5, sample_rate=SR, max_release=0.0)
    assert _energy_away_from(vibrato, SR, 440.0) > 0.3


def test_lfo_delay_fades_in() -> None:
    lfo = LFO(LfoParams(delay=70, amp_mod_depth=99, waveform=3), SR)
    blocks_per_second = SR // BLOCK_SIZE
    early = []
    for _ in range(blocks_per_second // 2):
        lfo.step(BLOCK_SIZE)
        early.append(lfo.amp_mod())
    for _ in range(2 * blocks_per_second):
        lfo.step(BLOCK_SIZE)
    late = []
    for _ in range(blocks_per_second // 2):
        lfo.step(BLOCK_SIZE)
        late.append(lfo.amp_mod())
    assert max(early) == 0.0
    assert max(late) > 0.9


def test_render_is_deterministic() -> None:
    voice = replace(PRESETS["vibe_pad"], lfo=LfoParams(speed=80, pitch_mod_depth=50, amp_mod_depth=50, waveform=5))
    first = render_note(voice, 60, 0.2, sample_rate=SR, max_release=0.2)
    second = render_note(voice, 60, 0.2, sample_rate=SR, max_release=0.2)
    assert np.array_equal(first, second)


def test_engine_renders_notes_independently() -> None:
    engine = FmSynthEngine(PRESETS["e_piano"], sample_rate=SR)
    first = engine.render(60, 0.1, max_release=0.2)
    engine.render(72, 0.1, max_release=0.2)
    assert np.array_equal(first, engine.render(60, 0.1, max_release=0.2))


@pytest.mark.parametrize("name", sorted(PRESETS))
@pytest.mark.parametrize("note", [24, 60, 96])
def test_output_is_finite_and_bounded(name: str, note: int) -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        audio = render_note(PRESETS[name], note, 0.1, sample_rate=SR, max_release=0.3)
    assert audio.dtype == np.float64
    assert np.all(np.isfinite(audio))
    assert np.max(np.abs(audio)) <= 1.0
    assert np.max(np.abs(audio)) > 0.0
    assert len(audio) <= round(0.1 * SR) + round(0.3 * SR)


def test_silent_voice_stops_one_block_after_key_off() -> None:
    voice = Voice(operators=tuple(Operator() for _ in range(6)))
    audio = render_note(voice, 60, 0.1, sample_rate=SR, max_release=5.0)
    assert len(audio) == int(0.1 * SR) + BLOCK_SIZE


def test_fast_release_ends_before_limit() -> None:
    audio = render_note(Voice(), 60, 0.1, sample_rate=SR, max_release=5.0)
    assert int(0.1 * SR) < len(audio) < int(0.1 * SR) + SR


def test_release_tail_is_capped() -> None:
    with pytest.warns(UserWarning, match="release tail"):
        audio = render_note(_slow_release_voice(), 60, 0.1, sample_rate=SR, max_release=0.05)
    assert len(audio) == int(0.1 * SR) + int(0.05 * SR)


def test_zero_release_stops_at_key_off() -> None:
    audio = render_note(_slow_release_voice(), 60, 0.1, sample_rate=SR, max_release=0.0)
    assert len(audio) == int(0.1 * SR)


def test_velocity_sensitivity() -> None:
    op1 = Operator(output_level=99, velocity_sensitivity=7)
    voice = replace(Voice(), operators=(op1,) + Voice().operators[1:])
    loud = render_note(voice, 60, 0.2, sample_rate=SR, velocity=127, max_release=0.0)
    soft = render_note(voice, 60, 0.2, sample_rate=SR, velocity=20, max_release=0.0)
    assert np.max(np.abs(loud)) > np.max(np.abs(soft))


@pytest.mark.parametrize("note", [-1, 128, 60.5, True])
def test_bad_note_is_range_error(note) -> None:
    with pytest.raises(RangeError):
        render_note(Voice(), note, 0.1, sample_rate=SR)


@pytest.mark.parametrize("velocity", [0, 128, 64.0])
def test_bad_velocity_is_range_error(velocity) -> None:
    with pytest.raises(RangeError):
        FmSynthEngine(Voice(), sample_rate=SR, velocity=velocity)


def test_bad_timing_is_config_error() -> None:
    engine = FmSynthEngine(Voice(), sample_rate=SR)
    with pytest.raises(ConfigError):
        engine.render(60, 0.0)
    with pytest.raises(ConfigError):
        engine.render(60, 0.1, max_release=-1.0)
    with pytest.raises(ConfigError):
        engine.render(60, float("inf"))
    with pytest.raises(ConfigError):
        engine.render(60, 0.1, max_release=float("inf"))
    with pytest.raises(ConfigError):
        FmSynthEngine(Voice(), sample_rate=0)
