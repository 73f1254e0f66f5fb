from __future__ import annotations

import random

import numpy as np
import pytest

from dx7multi.errors import ConfigError
from dx7multi.sampling import MultisampleMapper, RenderedSample


def _samples(notes) -> list[RenderedSample]:
    return [RenderedSample(note=n, sample_rate=8000, pcm=np.zeros(10), key_on_duration=0.1) for n in notes]


def _check_partition(notes) -> None:
    mapping = MultisampleMapper().map(_samples(notes))
    covered = []
    for zone in mapping:
        assert zone.low <= zone.root <= zone.high
        covered.extend(range(zone.low, zone.high + 1))
    assert covered == list(range(128))
    assert [z.root for z in mapping] == list(notes)


def test_zones_partition_keyboard() -> None:
    _check_partition(range(60, 109, 3))
    _check_partition([0])
    _check_partition([127])
    _check_partition([0, 127])
    _check_partition([10, 11, 12])


def test_random_note_sets_partition_keyboard() -> None:
    rng = random.Random(3)
    for _ in range(100):
        notes = sorted(rng.sample(range(128), rng.randint(1, 20)))
        _check_partition(notes)


def test_single_sample_covers_everything() -> None:
    (zone,) = MultisampleMapper().map(_samples([60]))
    assert (zone.low, zone.high, zone.root) == (0, 127, 60)


def test_midpoint_boundaries() -> None:
    zones = list(MultisampleMapper().map(_samples([60, 63, 66])))
    assert (zones[0].low, zones[0].high) == (0, 61)
    assert (zones[1].low, zones[1].high) == (62, 64)
    assert (zones[2].low, zones[2].high) == (65, 127)


def test_zone_for_note() -> None:
    mapping = MultisampleMapper().map(_samples([60, 72]))
    assert mapping.zone_for(0).root == 60
    assert mapping.zone_for(66).root == 60
    assert mapping.zone_for(67).root == 72
    assert 100 in mapping.zone_for(127)
    assert len(mapping) == 2


def test_empty_input_is_config_error() -> None:
    with pytest.raises(ConfigError):
        MultisampleMapper().map([])


@pytest.mark.parametrize("notes", [[60, 60], [72, 60], [60, 128], [-1, 60]])
def test_bad_note_order_is_config_error(notes) -> None:
    with pytest.raises(ConfigError):
        MultisampleMapper().map(_samples(notes))
