"""
File and instrument naming.
"""

import re


NOTE_NAMES = ["c", "c#", "d", "d#", "e", "f", "f#", "g", "g#", "a", "a#", "b"]

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")


def note_name(note: int) -> str:
    """Convert MIDI note number to Elektron note name (e.g., 60 -> 'c3')."""
    octave = (note // 12) - 2
    return f"{NOTE_NAMES[note % 12]}{octave}"


def sanitize_name(name: str, fallback: str = "voice") -> str:
    """
    Make a voice name safe for use in file names.

    Runs of anything other than ASCII letters, digits, '-' and '_' become a
    single '_'; leading and trailing '_' are dropped.

    Example:
        >>> sanitize_name("SYN.HARMO.")
        'SYN_HARMO'
    """
    cleaned = _UNSAFE.sub("_", name).strip("_")
    return cleaned or fallback


def sample_filename(name: str, velocity: int, note: int) -> str:
    """WAV file name for one sample: <name>-<velocity>-<note>-<notename>.wav."""
    return f"{name}-{velocity:03d}-{note:03d}-{note_name(note)}.wav"
