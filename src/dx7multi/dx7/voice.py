"""
DX7 voice parameters and the packed voice record.

A bulk dump stores each voice as a 128-byte packed record in which several
parameters share one byte. The layout is described once, as a table of
fields, and both the decoder and the encoder walk that table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from ..errors import FormatError, RangeError


PACKED_VOICE_SIZE = 128
UNPACKED_VOICE_SIZE = 155
NUM_OPERATORS = 6
NAME_LENGTH = 10

PACKED_OPERATOR_SIZE = 17
UNPACKED_OPERATOR_SIZE = 21
NAME_OFFSET = 118
UNPACKED_NAME_OFFSET = 145

WAVEFORMS = ("triangle", "saw down", "saw up", "square", "sine", "sample & hold")
CURVES = ("-LIN", "-EXP", "+EXP", "+LIN")


# =============================================================================
# Field table
# =============================================================================

class Field(NamedTuple):
    """
    One parameter of the voice record.

    Attributes:
        name: Parameter name
        offset: Byte offset in the packed record (relative to the operator
            block for operator fields)
        bit: Lowest bit of the field inside that byte
        width: Number of bits
        maximum: Largest legal value
        unpacked: Byte offset in the 155-byte single-voice layout
    """
    name: str
    offset: int
    bit: int
    width: int
    maximum: int
    unpacked: int

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1

    def read(self, data: bytes, base: int = 0) -> int:
        return (data[base + self.offset] >> self.bit) & self.mask

    def write(self, buf: bytearray, value: int, base: int = 0) -> None:
        buf[base + self.offset] |= (value & self.mask) << self.bit


# Operator block, 17 bytes packed / 21 bytes unpacked.
OPERATOR_FIELDS: tuple[Field, ...] = (
    *(Field(f"r{i + 1}", i, 0, 7, 99, i) for i in range(4)),
    *(Field(f"l{i + 1}", 4 + i, 0, 7, 99, 4 + i) for i in range(4)),
    Field("break_point", 8, 0, 7, 99, 8),
    Field("left_depth", 9, 0, 7, 99, 9),
    Field("right_depth", 10, 0, 7, 99, 10),
    Field("left_curve", 11, 0, 2, 3, 11),
    Field("right_curve", 11, 2, 2, 3, 12),
    Field("rate_scaling", 12, 0, 3, 7, 13),
    Field("detune", 12, 3, 4, 14, 20),
    Field("amp_mod_sensitivity", 13, 0, 2, 3, 14),
    Field("velocity_sensitivity", 13, 2, 3, 7, 15),
    Field("output_level", 14, 0, 7, 99, 16),
    Field("fixed", 15, 0, 1, 1, 17),
    Field("coarse", 15, 1, 5, 31, 18),
    Field("fine", 16, 0, 7, 99, 19),
)

# Voice-wide parameters following the six operator blocks.
GLOBAL_FIELDS: tuple[Field, ...] = (
    *(Field(f"pr{i + 1}", 102 + i, 0, 7, 99, 126 + i) for i in range(4)),
    *(Field(f"pl{i + 1}", 106 + i, 0, 7, 99, 130 + i) for i in range(4)),
    Field("algorithm", 110, 0, 5, 31, 134),
    Field("feedback", 111, 0, 3, 7, 135),
    Field("osc_key_sync", 111, 3, 1, 1, 136),
    Field("lfo_speed", 112, 0, 7, 99, 137),
    Field("lfo_delay", 113, 0, 7, 99, 138),
    Field("lfo_pitch_mod_depth", 114, 0, 7, 99, 139),
    Field("lfo_amp_mod_depth", 115, 0, 7, 99, 140),
    Field("lfo_sync", 116, 0, 1, 1, 141),
    Field("lfo_waveform", 116, 1, 3, 5, 142),
    Field("pitch_mod_sensitivity", 116, 4, 3, 7, 143),
    Field("transpose", 117, 0, 7, 48, 144),
)

LFO_FIELDS = tuple(f for f in GLOBAL_FIELDS if f.name.startswith("lfo_") or f.name == "pitch_mod_sensitivity")


def _check_fields(fields: tuple[Field, ...], values: dict[str, int], where: str = "") -> None:
    """
    Check parameter values against the field table.

    Raises:
        RangeError: If a value is not an integer or lies outside 0 to the
            field's maximum
    """
    for f in fields:
        value = values[f.name]
        if not isinstance(value, int):
            raise RangeError(f"{where}{f.name} must be an integer, got {value!r}")
        if not 0 <= value <= f.maximum:
            raise RangeError(f"{where}{f.name} = {value} outside 0-{f.maximum}")


# =============================================================================
# Voice model
# =============================================================================

@dataclass(frozen=True)
class Operator:
    """
    One DX7 operator. Defaults match the init voice.

    Attributes:
        rates: Envelope rates R1-R4 (0-99)
        levels: Envelope levels L1-L4 (0-99)
        break_point: Keyboard scaling break point (0-99, 39 = C3)
        left_depth: Scaling depth below the break point (0-99)
        right_depth: Scaling depth above the break point (0-99)
        left_curve: Curve below the break point (index into CURVES)
        right_curve: Curve above the break point (index into CURVES)
        rate_scaling: Keyboard rate scaling (0-7)
        amp_mod_sensitivity: LFO amplitude modulation sensitivity (0-3)
        velocity_sensitivity: Key velocity sensitivity (0-7)
        output_level: Operator output level (0-99)
        fixed: True for fixed-frequency mode
        coarse: Coarse frequency (0-31)
        fine: Fine frequency (0-99)
        detune: Detune (0-14, 7 = none)
    """
    rates: tuple[int, int, int, int] = (99, 99, 99, 99)
    levels: tuple[int, int, int, int] = (99, 99, 99, 0)
    break_point: int = 39
    left_depth: int = 0
    right_depth: int = 0
    left_curve: int = 0
    right_curve: int = 0
    rate_scaling: int = 0
    amp_mod_sensitivity: int = 0
    velocity_sensitivity: int = 0
    output_level: int = 0
    fixed: bool = False
    coarse: int = 1
    fine: int = 0
    detune: int = 7

    def __post_init__(self):
        if len(self.rates) != 4 or len(self.levels) != 4:
            raise RangeError("Operator requires exactly 4 rates and 4 levels")
        _check_fields(OPERATOR_FIELDS, _operator_values(self))


@dataclass(frozen=True)
class LfoParams:
    """Global LFO settings of a voice."""
    speed: int = 35
    delay: int = 0
    pitch_mod_depth: int = 0
    amp_mod_depth: int = 0
    sync: bool = True
    waveform: int = 0
    pitch_mod_sensitivity: int = 3

    def __post_init__(self):
        _check_fields(LFO_FIELDS, _lfo_values(self), "LFO ")


def _init_operators() -> tuple[Operator, ...]:
    return (Operator(output_level=99),) + tuple(Operator() for _ in range(NUM_OPERATORS - 1))


@dataclass(frozen=True)
class Voice:
    """
    Complete DX7 voice.

    ``operators[0]`` is OP1 and ``operators[5]`` is OP6, whatever order the
    record stores them in.
    """
    operators: tuple[Operator, ...] = field(default_factory=_init_operators)
    pitch_rates: tuple[int, int, int, int] = (99, 99, 99, 99)
    pitch_levels: tuple[int, int, int, int] = (50, 50, 50, 50)
    algorithm: int = 1
    feedback: int = 0
    osc_key_sync: bool = True
    lfo: LfoParams = field(default_factory=LfoParams)
    transpose: int = 24
    name: str = "INIT VOICE"

    def __post_init__(self):
        if len(self.operators) != NUM_OPERATORS:
            raise RangeError(f"Voice requires exactly {NUM_OPERATORS} operators, got {len(self.operators)}")
        if not isinstance(self.algorithm, int) or not 1 <= self.algorithm <= 32:
            raise RangeError(f"Algorithm must be 1-32, got {self.algorithm}")
        if len(self.pitch_rates) != 4 or len(self.pitch_levels) != 4:
            raise RangeError("Pitch envelope requires exactly 4 rates and 4 levels")
        if not all(isinstance(op, Operator) for op in self.operators):
            raise RangeError("Voice operators must be Operator instances")
        _check_fields(GLOBAL_FIELDS, _global_values(self))

    def operator(self, number: int) -> Operator:
        """Return operator by DX7 number (1-6)."""
        if not 1 <= number <= NUM_OPERATORS:
            raise RangeError(f"Operator number must be 1-6, got {number}")
        return self.operators[number - 1]


# =============================================================================
# Decoding
# =============================================================================

def _read_fields(data: bytes, fields: tuple[Field, ...], base: int, packed: bool, where: str) -> dict[str, int]:
    values = {}
    for f in fields:
        value = f.read(data, base) if packed else data[base + f.unpacked]
        if value > f.maximum:
            raise FormatError(f"{where}{f.name} = {value} exceeds maximum {f.maximum}")
        values[f.name] = value
    return values


def _decode_name(raw: bytes) -> str:
    try:
        return bytes(raw).decode("ascii")
    except UnicodeDecodeError as exc:
        raise FormatError(f"Voice name {bytes(raw)!r} is not 7-bit ASCII") from exc


def _build_operator(v: dict[str, int]) -> Operator:
    return Operator(
        rates=(v["r1"], v["r2"], v["r3"], v["r4"]),
        levels=(v["l1"], v["l2"], v["l3"], v["l4"]),
        break_point=v["break_point"],
        left_depth=v["left_depth"],
        right_depth=v["right_depth"],
        left_curve=v["left_curve"],
        right_curve=v["right_curve"],
        rate_scaling=v["rate_scaling"],
        amp_mod_sensitivity=v["amp_mod_sensitivity"],
        velocity_sensitivity=v["velocity_sensitivity"],
        output_level=v["output_level"],
        fixed=bool(v["fixed"]),
        coarse=v["coarse"],
        fine=v["fine"],
        detune=v["detune"],
    )


def _decode(data: bytes, packed: bool) -> Voice:
    op_size = PACKED_OPERATOR_SIZE if packed else UNPACKED_OPERATOR_SIZE
    blocks = []
    # Operator blocks are stored OP6 first.
    for slot in range(NUM_OPERATORS):
        where = f"OP{NUM_OPERATORS - slot} "
        blocks.append(_build_operator(_read_fields(data, OPERATOR_FIELDS, slot * op_size, packed, where)))

    g = _read_fields(data, GLOBAL_FIELDS, 0, packed, "")
    name_offset = NAME_OFFSET if packed else UNPACKED_NAME_OFFSET

    return Voice(
        operators=tuple(reversed(blocks)),
        pitch_rates=(g["pr1"], g["pr2"], g["pr3"], g["pr4"]),
        pitch_levels=(g["pl1"], g["pl2"], g["pl3"], g["pl4"]),
        algorithm=g["algorithm"] + 1,
        feedback=g["feedback"],
        osc_key_sync=bool(g["osc_key_sync"]),
        lfo=LfoParams(
            speed=g["lfo_speed"],
            delay=g["lfo_delay"],
            pitch_mod_depth=g["lfo_pitch_mod_depth"],
            amp_mod_depth=g["lfo_amp_mod_depth"],
            sync=bool(g["lfo_sync"]),
            waveform=g["lfo_waveform"],
            pitch_mod_sensitivity=g["pitch_mod_sensitivity"],
        ),
        transpose=g["transpose"],
        name=_decode_name(data[name_offset:name_offset + NAME_LENGTH]),
    )


def decode_voice(data: bytes) -> Voice:
    """
    Decode one packed 128-byte voice record.

    Args:
        data: Packed voice record as stored in a 32-voice bulk dump

    Returns:
        Decoded Voice

    Raises:
        FormatError: If the record has the wrong length or a field holds a
            value outside its documented range
    """
    if len(data) != PACKED_VOICE_SIZE:
        raise FormatError(f"Packed voice must be {PACKED_VOICE_SIZE} bytes, got {len(data)}")
    return _decode(data, packed=True)


def decode_unpacked_voice(data: bytes) -> Voice:
    """
    Decode the 155-byte voice record of a single-voice dump.

    Raises:
        FormatError: On wrong length or out-of-range values
    """
    if len(data) != UNPACKED_VOICE_SIZE:
        raise FormatError(f"Unpacked voice must be {UNPACKED_VOICE_SIZE} bytes, got {len(data)}")
    return _decode(data, packed=False)


def peek_name(data: bytes) -> str:
    """
    Read only the 10-character name of a packed voice record.

    No other field is decoded or range checked.
    """
    if len(data) != PACKED_VOICE_SIZE:
        raise FormatError(f"Packed voice must be {PACKED_VOICE_SIZE} bytes, got {len(data)}")
    return _decode_name(data[NAME_OFFSET:NAME_OFFSET + NAME_LENGTH])


# =============================================================================
# Encoding
# =============================================================================

def _operator_values(op: Operator) -> dict[str, int]:
    values = {f"r{i + 1}": r for i, r in enumerate(op.rates)}
    values.update({f"l{i + 1}": l for i, l in enumerate(op.levels)})
    values.update(
        break_point=op.break_point,
        left_depth=op.left_depth,
        right_depth=op.right_depth,
        left_curve=op.left_curve,
        right_curve=op.right_curve,
        rate_scaling=op.rate_scaling,
        detune=op.detune,
        amp_mod_sensitivity=op.amp_mod_sensitivity,
        velocity_sensitivity=op.velocity_sensitivity,
        output_level=op.output_level,
        fixed=int(op.fixed),
        coarse=op.coarse,
        fine=op.fine,
    )
    return values


def _lfo_values(lfo: LfoParams) -> dict[str, int]:
    return dict(
        lfo_speed=lfo.speed,
        lfo_delay=lfo.delay,
        lfo_pitch_mod_depth=lfo.pitch_mod_depth,
        lfo_amp_mod_depth=lfo.amp_mod_depth,
        lfo_sync=int(lfo.sync),
        lfo_waveform=lfo.waveform,
        pitch_mod_sensitivity=lfo.pitch_mod_sensitivity,
    )


def _global_values(voice: Voice) -> dict[str, int]:
    values = {f"pr{i + 1}": r for i, r in enumerate(voice.pitch_rates)}
    values.update({f"pl{i + 1}": l for i, l in enumerate(voice.pitch_levels)})
    values.update(_lfo_values(voice.lfo))
    values.update(
        algorithm=voice.algorithm - 1,
        feedback=voice.feedback,
        osc_key_sync=int(voice.osc_key_sync),
        transpose=voice.transpose,
    )
    return values


def _write_fields(buf: bytearray, fields: tuple[Field, ...], values: dict[str, int], base: int, where: str) -> None:
    _check_fields(fields, values, where)
    for f in fields:
        f.write(buf, values[f.name], base)


def _encode_name(name: str) -> bytes:
    if len(name) > NAME_LENGTH:
        raise RangeError(f"Voice name {name!r} is longer than {NAME_LENGTH} characters")
    try:
        raw = name.ljust(NAME_LENGTH).encode("ascii")
    except UnicodeEncodeError as exc:
        raise RangeError(f"Voice name {name!r} is not ASCII") from exc
    return raw


def encode_voice(voice: Voice) -> bytes:
    """
    Encode a Voice as a packed 128-byte record.

    Unused bits are written as zero, so decoding a record with clear unused
    bits and encoding it again returns the same bytes.

    Raises:
        RangeError: If a parameter lies outside its documented range
    """
    buf = bytearray(PACKED_VOICE_SIZE)
    for slot, op in enumerate(reversed(voice.operators)):
        where = f"OP{NUM_OPERATORS - slot} "
        _write_fields(buf, OPERATOR_FIELDS, _operator_values(op), slot * PACKED_OPERATOR_SIZE, where)
    _write_fields(buf, GLOBAL_FIELDS, _global_values(voice), 0, "")
    buf[NAME_OFFSET:NAME_OFFSET + NAME_LENGTH] = _encode_name(voice.name)
    return bytes(buf)


def pack_unpacked_voice(data: bytes) -> bytes:
    """Convert a 155-byte single-voice record to the packed 128-byte form."""
    return encode_voice(decode_unpacked_voice(data))


def unpack_voice(data: bytes) -> bytes:
    """Convert a packed 128-byte record to the 155-byte single-voice form."""
    if len(data) != PACKED_VOICE_SIZE:
        raise FormatError(f"Packed voice must be {PACKED_VOICE_SIZE} bytes, got {len(data)}")
    out = bytearray(UNPACKED_VOICE_SIZE)
    for slot in range(NUM_OPERATORS):
        for f in OPERATOR_FIELDS:
            out[slot * UNPACKED_OPERATOR_SIZE + f.unpacked] = f.read(data, slot * PACKED_OPERATOR_SIZE)
    for f in GLOBAL_FIELDS:
        out[f.unpacked] = f.read(data)
    out[UNPACKED_NAME_OFFSET:UNPACKED_NAME_OFFSET + NAME_LENGTH] = data[NAME_OFFSET:NAME_OFFSET + NAME_LENGTH]
    return bytes(out)
