"""
dx7multi - DX7 voices to multisample instruments.

Reads a voice from a DX7 SysEx bank, renders it with a six-operator FM
engine at a grid of notes and writes the samples together with an Elektron
multi-sample mapping.

Subpackages:
- dx7: SysEx parsing, voice decoding and the FM engine
- sampling: note-range rendering and key-zone mapping
- output: WAV and .elmulti writers
"""

__version__ = "0.1.0"

from .config import RenderConfig
from .errors import ConfigError, Dx7MultiError, FormatError, PatchIndexError, RangeError

__all__ = [
    "__version__",
    "RenderConfig",
    "Dx7MultiError",
    "FormatError",
    "PatchIndexError",
    "RangeError",
    "ConfigError",
]
