from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from dx7multi.output import export_multisample, format_elmulti, note_name, sample_filename, sanitize_name, write_wav
from dx7multi.sampling import MultisampleMapper, RenderedSample


def _ramp_samples(notes, frames: int = 400) -> list[RenderedSample]:
    pcm = np.linspace(-0.5, 0.5, frames)
    return [RenderedSample(note=n, sample_rate=8000, pcm=pcm, key_on_duration=0.02) for n in notes]


def test_note_names() -> None:
    assert note_name(60) == "c3"
    assert note_name(61) == "c#3"
    assert note_name(69) == "a3"
    assert note_name(0) == "c-2"
    assert note_name(127) == "g8"


def test_sanitize_name() -> None:
    assert sanitize_name("SYN.HARMO.") == "SYN_HARMO"
    assert sanitize_name("E.PIANO 1 ") == "E_PIANO_1"
    assert sanitize_name("BRASS-1") == "BRASS-1"
    assert sanitize_name("..  ..") == "voice"
    assert sanitize_name("", fallback="patch") == "patch"


def test_sample_filename() -> None:
    assert sample_filename("SYN_HARMO", 100, 60) == "SYN_HARMO-100-060-c3.wav"
    assert sample_filename("BASS", 7, 108) == "BASS-007-108-c7.wav"


def test_write_wav(tmp_path: Path) -> None:
    (sample,) = _ramp_samples([60])
    path = write_wav(tmp_path / "a.wav", sample)
    data, rate = sf.read(str(path))
    info = sf.info(str(path))
    assert rate == 8000
    assert info.channels == 1
    assert info.subtype == "PCM_16"
    assert len(data) == sample.frames
    assert np.allclose(data, sample.pcm, atol=2.0 / 32768)


def test_format_elmulti() -> None:
    mapping = MultisampleMapper().map(_ramp_samples([60, 63]))
    text = format_elmulti("SYN_HARMO", mapping, ["a.wav", "b.wav"])
    assert text.startswith("# ELEKTRON MULTI-SAMPLE MAPPING FORMAT\nversion = 0\nname = 'SYN_HARMO'\n")
    assert text.count("[[key-zones]]") == 2
    assert "# keys 0-61\npitch = 60\nkey-center = 60.0" in text
    assert "# keys 62-127\npitch = 63\n" in text
    assert "sample = 'b.wav'\ntrim-end = 400\n" in text


def test_format_elmulti_checks_file_count() -> None:
    mapping = MultisampleMapper().map(_ramp_samples([60, 63]))
    with pytest.raises(ValueError):
        format_elmulti("X", mapping, ["a.wav"])


def test_export_multisample(tmp_path: Path) -> None:
    mapping = MultisampleMapper().map(_ramp_samples([60, 66, 72]))
    out = tmp_path / "nested" / "SYN_HARMO"
    elmulti = export_multisample(mapping, out, "SYN_HARMO", 100)

    assert elmulti == out / "SYN_HARMO.elmulti"
    assert sorted(p.name for p in out.iterdir()) == [
        "SYN_HARMO-100-060-c3.wav",
        "SYN_HARMO-100-066-f#3.wav",
        "SYN_HARMO-100-072-c4.wav",
        "SYN_HARMO.elmulti",
    ]
    text = elmulti.read_text(encoding="ascii")
    assert "sample = 'SYN_HARMO-100-066-f#3.wav'" in text
