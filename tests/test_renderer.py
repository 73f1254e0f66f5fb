from __future__ import annotations

import numpy as np
import pytest

from dx7multi.dx7 import PRESETS, FmSynthEngine, Voice
from dx7multi.errors import ConfigError, RangeError
from dx7multi.processing import peak_level, remove_dc
from dx7multi.sampling import SampleRenderer, sample_notes

from conftest import TEST_SAMPLE_RATE

SR = TEST_SAMPLE_RATE


def test_default_note_grid() -> None:
    notes = sample_notes(60, 108, 3)
    assert notes == list(range(60, 109, 3))
    assert len(notes) == 17


def test_max_note_always_included() -> None:
    assert sample_notes(60, 100, 7) == [60, 67, 74, 81, 88, 95, 100]


def test_single_note_grid() -> None:
    assert sample_notes(60, 60, 3) == [60]


@pytest.mark.parametrize("args", [(60, 108, 0), (60, 108, -3), (72, 60, 3)])
def test_bad_grid_is_config_error(args) -> None:
    with pytest.raises(ConfigError):
        sample_notes(*args)


@pytest.mark.parametrize("args", [(-1, 60, 3), (60, 128, 3)])
def test_grid_outside_midi_range(args) -> None:
    with pytest.raises(RangeError):
        sample_notes(*args)


def test_render_returns_ascending_samples() -> None:
    renderer = SampleRenderer(Voice(), sample_rate=SR, max_release=0.5)
    seen = []
    samples = renderer.render(48, 72, 12, key_on_duration=0.05, progress=lambda s: seen.append(s.note))
    assert [s.note for s in samples] == [48, 60, 72]
    assert seen == [48, 60, 72]
    for sample in samples:
        assert sample.sample_rate == SR
        assert sample.key_on_duration == 0.05
        assert sample.frames == len(sample.pcm)
        assert sample.duration == pytest.approx(sample.frames / SR)


def test_threaded_render_matches_serial() -> None:
    voice = PRESETS["e_piano"]
    serial = SampleRenderer(voice, sample_rate=SR, max_release=0.2).render(48, 84, 6, 0.05)
    seen = []
    threaded = SampleRenderer(voice, sample_rate=SR, max_release=0.2, workers=4).render(
        48, 84, 6, 0.05, progress=lambda s: seen.append(s.note))
    assert [s.note for s in threaded] == [s.note for s in serial]
    assert sorted(seen) == [s.note for s in serial]
    for a, b in zip(serial, threaded):
        assert np.array_equal(a.pcm, b.pcm)


def test_dc_block_can_be_disabled() -> None:
    voice = PRESETS["bass"]
    raw = SampleRenderer(voice, sample_rate=SR, max_release=0.1, dc_block=False).render_note(48, 0.05)
    expected = FmSynthEngine(voice, sample_rate=SR).render(48, 0.05, max_release=0.1)
    assert np.array_equal(raw.pcm, expected)

    filtered = SampleRenderer(voice, sample_rate=SR, max_release=0.1).render_note(48, 0.05)
    assert np.allclose(filtered.pcm, remove_dc(expected, SR))


def test_renderer_rejects_bad_settings() -> None:
    with pytest.raises(ConfigError):
        SampleRenderer(Voice(), sample_rate=SR, workers=0)
    with pytest.raises(ConfigError):
        SampleRenderer(Voice(), sample_rate=SR).render(60, 72, 3, key_on_duration=0.0)


def test_remove_dc() -> None:
    offset = np.full(SR, 0.5)
    assert abs(remove_dc(offset, SR)[-1]) < 0.01
    assert len(remove_dc(np.zeros(0), SR)) == 0
    with pytest.raises(ValueError):
        remove_dc(offset, SR, cutoff_freq=SR)
    with pytest.raises(TypeError):
        remove_dc([0.5, 0.5], SR)


def test_peak_level() -> None:
    assert peak_level(np.zeros(0)) == 0.0
    assert peak_level(np.array([0.1, -0.7, 0.3])) == pytest.approx(0.7)
