"""
Yamaha DX7 voice handling and FM synthesis.

Parses SysEx voice banks, decodes the packed voice format and renders voices
with a six-operator FM engine modelled on the DX7's operator routing,
envelopes and LFO.

Example:
    >>> from dx7multi.dx7 import BankParser, render_note
    >>> voice = BankParser.from_file("rom1a.syx").voice(9)
    >>> audio = render_note(voice, 60, key_on_duration=2.0)

Key features:
- 32-voice bulk dumps and single-voice dumps
- Table-driven packed voice decoder and encoder
- All 32 algorithms as static routing data
- 4-stage rate/level envelopes with keyboard rate scaling
- Keyboard level scaling, velocity sensitivity, pitch envelope
- LFO with delay, six waveforms, pitch and amplitude modulation
"""

from .algorithms import ALGORITHMS, Algorithm, get_algorithm, get_carriers, topological_sort, validate_algorithm
from .engine import (
    BLOCK_SIZE,
    DEFAULT_VELOCITY,
    LFO,
    MAX_RELEASE,
    SAMPLE_RATE,
    DXEnvelope,
    FmSynthEngine,
    PitchEnvelope,
    render_note,
)
from .presets import PRESETS, get_preset, list_presets
from .sysex import BankParser, build_bank, build_single_voice, checksum
from .voice import (
    LfoParams,
    Operator,
    Voice,
    decode_unpacked_voice,
    decode_voice,
    encode_voice,
    peek_name,
)


__all__ = [
    # Voice model
    "Voice",
    "Operator",
    "LfoParams",
    "decode_voice",
    "decode_unpacked_voice",
    "encode_voice",
    "peek_name",
    # SysEx
    "BankParser",
    "build_bank",
    "build_single_voice",
    "checksum",
    # Algorithms
    "ALGORITHMS",
    "Algorithm",
    "get_algorithm",
    "get_carriers",
    "topological_sort",
    "validate_algorithm",
    # Engine
    "FmSynthEngine",
    "DXEnvelope",
    "PitchEnvelope",
    "LFO",
    "render_note",
    "SAMPLE_RATE",
    "BLOCK_SIZE",
    "DEFAULT_VELOCITY",
    "MAX_RELEASE",
    # Presets
    "PRESETS",
    "get_preset",
    "list_presets",
]
