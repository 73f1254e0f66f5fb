"""
DX7 SysEx bank parsing.

Two dump formats are understood:

- 32-voice bulk dump (format 9): ``F0 43 0n 09 20 00``, 4096 bytes of packed
  voices, checksum, ``F7``
- single-voice dump (format 0): ``F0 43 0n 00 01 1B``, 155 bytes of unpacked
  voice, checksum, ``F7``

The whole message is validated when the parser is constructed, so a damaged
file fails before any voice is decoded.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence, Union

from ..errors import FormatError, PatchIndexError
from .voice import (
    PACKED_VOICE_SIZE,
    UNPACKED_VOICE_SIZE,
    Voice,
    decode_voice,
    encode_voice,
    pack_unpacked_voice,
    peek_name,
    unpack_voice,
)


SYSEX_START = 0xF0
SYSEX_END = 0xF7
YAMAHA_ID = 0x43

BANK_FORMAT = 0x09
SINGLE_VOICE_FORMAT = 0x00

NUM_VOICES = 32
BANK_DATA_SIZE = NUM_VOICES * PACKED_VOICE_SIZE
HEADER_SIZE = 6
BANK_SIZE = HEADER_SIZE + BANK_DATA_SIZE + 2
SINGLE_VOICE_SIZE = HEADER_SIZE + UNPACKED_VOICE_SIZE + 2

# Byte count field (two 7-bit bytes, MSB first) for each format.
_BYTE_COUNTS = {
    BANK_FORMAT: BANK_DATA_SIZE,
    SINGLE_VOICE_FORMAT: UNPACKED_VOICE_SIZE,
}


def checksum(payload: bytes) -> int:
    """Two's complement of the payload sum, modulo 128."""
    return (-sum(payload)) & 0x7F


class BankParser:
    """
    Validated DX7 SysEx dump giving access to its voice slots.

    Args:
        data: Complete SysEx message

    Raises:
        FormatError: If length, framing, byte count or checksum is wrong

    Example:
        >>> parser = BankParser.from_file("rom1a.syx")
        >>> parser.names()[9]
        (9, 'SYN.HARMO.')
    """

    def __init__(self, data: bytes):
        data = bytes(data)
        if len(data) not in (BANK_SIZE, SINGLE_VOICE_SIZE):
            raise FormatError(
                f"SysEx dump must be {BANK_SIZE} bytes (32-voice bank) or "
                f"{SINGLE_VOICE_SIZE} bytes (single voice), got {len(data)}"
            )
        if data[0] != SYSEX_START or data[-1] != SYSEX_END:
            raise FormatError("Missing SysEx start (F0) or end (F7) byte")
        if data[1] != YAMAHA_ID:
            raise FormatError(f"Not a Yamaha dump: manufacturer id {data[1]:#04x}")
        if data[2] & 0xF0:
            raise FormatError(f"Unexpected sub-status byte {data[2]:#04x}")

        self.format = data[3]
        expected = _BYTE_COUNTS.get(self.format)
        if expected is None:
            raise FormatError(f"Unsupported dump format {self.format}")
        byte_count = (data[4] << 7) | data[5]
        payload = data[HEADER_SIZE:-2]
        if byte_count != expected or len(payload) != expected:
            raise FormatError(f"Byte count {byte_count} does not match format {self.format} ({expected})")

        if any(b > 0x7F for b in payload):
            raise FormatError("Payload contains bytes with the high bit set")
        stored = data[-2]
        if stored != checksum(payload):
            raise FormatError(f"Checksum mismatch: stored {stored:#04x}, computed {checksum(payload):#04x}")

        self.channel = data[2] & 0x0F
        if self.format == BANK_FORMAT:
            self._records = [
                payload[i * PACKED_VOICE_SIZE:(i + 1) * PACKED_VOICE_SIZE]
                for i in range(NUM_VOICES)
            ]
        else:
            self._records = [pack_unpacked_voice(payload)]

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BankParser":
        """Read and validate a SysEx file."""
        return cls(Path(path).read_bytes())

    def __len__(self) -> int:
        return len(self._records)

    def voice_data(self, index: int) -> bytes:
        """
        Return the packed 128-byte record of one slot.

        Args:
            index: 0-based slot number

        Raises:
            PatchIndexError: If index is outside the dump's slots
        """
        if not 0 <= index < len(self._records):
            raise PatchIndexError(f"Patch {index} out of range (dump holds {len(self._records)} voices)")
        return self._records[index]

    def voice(self, index: int) -> Voice:
        """Decode the voice in one slot."""
        return decode_voice(self.voice_data(index))

    def names(self) -> list[tuple[int, str]]:
        """(index, name) for every slot, without decoding the voices."""
        return [(i, peek_name(record)) for i, record in enumerate(self._records)]


def build_bank(voices: Sequence[Voice], channel: int = 0) -> bytes:
    """
    Build a 32-voice bulk dump.

    Slots after the given voices are filled with the init voice.

    Args:
        voices: Up to 32 voices
        channel: MIDI channel nibble (0-15)

    Returns:
        Complete SysEx message
    """
    if len(voices) > NUM_VOICES:
        raise ValueError(f"A bank holds at most {NUM_VOICES} voices, got {len(voices)}")
    if not 0 <= channel <= 15:
        raise ValueError(f"Channel must be 0-15, got {channel}")

    slots = list(voices) + [Voice() for _ in range(NUM_VOICES - len(voices))]
    payload = b"".join(encode_voice(v) for v in slots)
    header = bytes([SYSEX_START, YAMAHA_ID, channel, BANK_FORMAT, BANK_DATA_SIZE >> 7, BANK_DATA_SIZE & 0x7F])
    return header + payload + bytes([checksum(payload), SYSEX_END])


def build_single_voice(voice: Voice, channel: int = 0) -> bytes:
    """Build a single-voice dump (format 0) for one voice."""
    payload = unpack_voice(encode_voice(voice))
    header = bytes([SYSEX_START, YAMAHA_ID, channel, SINGLE_VOICE_FORMAT,
                    UNPACKED_VOICE_SIZE >> 7, UNPACKED_VOICE_SIZE & 0x7F])
    return header + payload + bytes([checksum(payload), SYSEX_END])

