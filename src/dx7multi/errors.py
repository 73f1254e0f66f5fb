"""
Error types raised by dx7multi.

Every error derives from both ``Dx7MultiError`` and the builtin exception a
caller would naturally catch (``ValueError`` or ``IndexError``), so code that
only knows the builtins keeps working.
"""


class Dx7MultiError(Exception):
    """Base class for all dx7multi errors."""


class FormatError(Dx7MultiError, ValueError):
    """Malformed, short or checksum-mismatched SysEx input."""


class PatchIndexError(Dx7MultiError, IndexError):
    """Patch number outside the voice slots of a bank."""


class RangeError(Dx7MultiError, ValueError):
    """Synthesis parameter outside its representable domain."""


class ConfigError(Dx7MultiError, ValueError):
    """Invalid render configuration."""


__all__ = [
    "Dx7MultiError",
    "FormatError",
    "PatchIndexError",
    "RangeError",
    "ConfigError",
]
