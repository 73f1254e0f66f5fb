from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from dx7multi.dx7 import build_bank, get_preset

# Small rate keeps engine tests quick.
TEST_SAMPLE_RATE = 8000

HARMO_SLOT = 9


def bank_voices():
    voices = [get_preset(name) for name in ("e_piano", "bass", "bell", "vibe_pad")]
    voices += [replace(get_preset("init"), name=f"SLOT {i:02d}   ") for i in range(len(voices), HARMO_SLOT)]
    voices.append(replace(get_preset("e_piano"), name="SYN.HARMO."))
    return voices


@pytest.fixture
def bank_bytes() -> bytes:
    return build_bank(bank_voices())


@pytest.fixture
def bank_file(tmp_path: Path, bank_bytes: bytes) -> Path:
    path = tmp_path / "bank.syx"
    path.write_bytes(bank_bytes)
    return path
