"""
Render settings, with JSON load and save.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from .dx7.engine import DEFAULT_VELOCITY, MAX_RELEASE, SAMPLE_RATE
from .errors import ConfigError


@dataclass
class RenderConfig:
    """
    Settings for one multisample render.

    Durations are in milliseconds, matching the command line.
    """
    key_on_duration_ms: float = 2000.0
    min_note: int = 60
    max_note: int = 108
    note_increment: int = 3
    sample_rate: int = SAMPLE_RATE
    velocity: int = DEFAULT_VELOCITY
    max_release_ms: float = MAX_RELEASE * 1000.0
    workers: int = 1
    dc_block: bool = True

    @property
    def key_on_duration(self) -> float:
        """Key-on duration in seconds."""
        return self.key_on_duration_ms / 1000.0

    @property
    def max_release(self) -> float:
        """Maximum release tail in seconds."""
        return self.max_release_ms / 1000.0

    def validate(self) -> "RenderConfig":
        """
        Check every setting.

        Raises:
            ConfigError: On the first invalid value
        """
        for name in ("key_on_duration_ms", "max_release_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigError(f"{name} must be a finite number, got {value!r}")
        for name in ("min_note", "max_note", "note_increment", "sample_rate", "velocity", "workers"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        if not isinstance(self.dc_block, bool):
            raise ConfigError(f"dc_block must be true or false, got {self.dc_block!r}")
        if not self.key_on_duration_ms > 0:
            raise ConfigError(f"Key-on duration must be positive, got {self.key_on_duration_ms} ms")
        if not self.max_release_ms >= 0:
            raise ConfigError(f"Maximum release must not be negative, got {self.max_release_ms} ms")
        for name in ("min_note", "max_note"):
            value = getattr(self, name)
            if not 0 <= value <= 127:
                raise ConfigError(f"{name} must be 0-127, got {value}")
        if self.min_note > self.max_note:
            raise ConfigError(f"min_note {self.min_note} is above max_note {self.max_note}")
        if self.note_increment <= 0:
            raise ConfigError(f"note_increment must be positive, got {self.note_increment}")
        if self.sample_rate <= 0:
            raise ConfigError(f"sample_rate must be positive, got {self.sample_rate}")
        if not 1 <= self.velocity <= 127:
            raise ConfigError(f"velocity must be 1-127, got {self.velocity}")
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        return self

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "RenderConfig":
        known = {f.name for f in fields(RenderConfig)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
        return RenderConfig(**d)


def load_config(path: Path) -> RenderConfig:
    """Read a RenderConfig from a JSON file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a JSON object")
    return RenderConfig.from_dict(data)


def save_config(cfg: RenderConfig, path: Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(cfg.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return p
