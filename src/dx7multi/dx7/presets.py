"""
Built-in DX7 voices.

The init voice plus a handful of classic-style patches, useful for trying
the renderer without a SysEx file and for building test banks.
These are starting points, not exact recreations of factory ROM voices.
"""

from .voice import LfoParams, Operator, Voice


def _make_voice(
    name: str,
    algorithm: int,
    op_configs: list[dict],
    feedback: int = 0,
    **settings,
) -> Voice:
    """Helper to build a Voice from simplified per-operator config (OP1 first)."""
    operators = []
    for cfg in op_configs:
        operators.append(Operator(
            rates=tuple(cfg.get("rates", (99, 99, 99, 99))),
            levels=tuple(cfg.get("levels", (99, 99, 99, 0))),
            break_point=cfg.get("break_point", 39),
            left_depth=cfg.get("left_depth", 0),
            right_depth=cfg.get("right_depth", 0),
            left_curve=cfg.get("left_curve", 0),
            right_curve=cfg.get("right_curve", 0),
            rate_scaling=cfg.get("rate_scaling", 0),
            amp_mod_sensitivity=cfg.get("ams", 0),
            velocity_sensitivity=cfg.get("vel_sens", 0),
            output_level=cfg.get("level", 0),
            fixed=cfg.get("fixed", False),
            coarse=cfg.get("coarse", 1),
            fine=cfg.get("fine", 0),
            detune=cfg.get("detune", 7),
        ))
    return Voice(operators=tuple(operators), algorithm=algorithm, feedback=feedback, name=name, **settings)


# =============================================================================
# Built-in voices
# =============================================================================

PRESETS: dict[str, Voice] = {}

# -----------------------------------------------------------------------------
# INIT - The DX7 init voice: a single sine on OP1
# -----------------------------------------------------------------------------
PRESETS["init"] = Voice()

# -----------------------------------------------------------------------------
# E_PIANO - Two stacks, bell-like tine on top of a soft body
# -----------------------------------------------------------------------------
PRESETS["e_piano"] = _make_voice(
    name="E.PIANO   ",
    algorithm=5,
    feedback=6,
    op_configs=[
        {"level": 99, "rates": (96, 25, 25, 67), "levels": (99, 75, 0, 0), "vel_sens": 2,
         "break_point": 41, "right_depth": 19, "right_curve": 0, "rate_scaling": 3},
        {"level": 58, "coarse": 1, "rates": (95, 50, 35, 78), "levels": (99, 75, 0, 0), "vel_sens": 7,
         "rate_scaling": 3},
        {"level": 99, "rates": (95, 20, 20, 50), "levels": (99, 95, 0, 0), "vel_sens": 2, "detune": 6,
         "rate_scaling": 3},
        {"level": 89, "coarse": 14, "rates": (95, 29, 20, 50), "levels": (99, 95, 0, 0), "vel_sens": 6,
         "rate_scaling": 3, "left_depth": 0, "right_depth": 19},
        {"level": 99, "rates": (95, 20, 20, 50), "levels": (99, 95, 0, 0), "detune": 8, "rate_scaling": 3},
        {"level": 79, "rates": (95, 29, 20, 50), "levels": (99, 95, 0, 0), "vel_sens": 6, "rate_scaling": 3},
    ],
    lfo=LfoParams(speed=34, delay=33, pitch_mod_depth=0, amp_mod_depth=0, sync=False, waveform=4,
                  pitch_mod_sensitivity=3),
)

# -----------------------------------------------------------------------------
# BASS - Punchy serial stack with feedback
# -----------------------------------------------------------------------------
PRESETS["bass"] = _make_voice(
    name="SOLID BASS",
    algorithm=16,
    feedback=7,
    op_configs=[
        {"level": 99, "coarse": 0, "rates": (99, 41, 0, 70), "levels": (99, 90, 0, 0), "vel_sens": 2},
        {"level": 80, "coarse": 0, "rates": (99, 60, 20, 70), "levels": (99, 70, 0, 0), "vel_sens": 4},
        {"level": 75, "coarse": 1, "rates": (99, 65, 30, 70), "levels": (99, 60, 0, 0), "vel_sens": 4},
        {"level": 70, "coarse": 3, "rates": (99, 70, 30, 70), "levels": (99, 40, 0, 0)},
        {"level": 72, "coarse": 1, "rates": (99, 50, 25, 70), "levels": (99, 70, 0, 0)},
        {"level": 65, "coarse": 1, "rates": (99, 45, 25, 70), "levels": (99, 80, 0, 0)},
    ],
)

# -----------------------------------------------------------------------------
# BELL - Inharmonic ratios, long decay, fixed-frequency strike
# -----------------------------------------------------------------------------
PRESETS["bell"] = _make_voice(
    name="TUB BELLS ",
    algorithm=5,
    feedback=4,
    op_configs=[
        {"level": 95, "rates": (95, 33, 71, 25), "levels": (99, 0, 32, 0), "vel_sens": 2},
        {"level": 78, "coarse": 3, "fine": 50, "rates": (98, 12, 71, 28), "levels": (99, 0, 32, 0)},
        {"level": 95, "detune": 9, "rates": (95, 33, 71, 25), "levels": (99, 0, 32, 0)},
        {"level": 78, "coarse": 3, "fine": 50, "detune": 5, "rates": (98, 12, 71, 28), "levels": (99, 0, 32, 0)},
        {"level": 99, "fixed": True, "coarse": 2, "fine": 0, "rates": (76, 78, 71, 70), "levels": (99, 0, 0, 0)},
        {"level": 80, "coarse": 2, "fine": 30, "rates": (98, 91, 0, 28), "levels": (99, 0, 0, 0)},
    ],
)

# -----------------------------------------------------------------------------
# VIBE_PAD - Slow strings with delayed LFO vibrato and tremolo
# -----------------------------------------------------------------------------
PRESETS["vibe_pad"] = _make_voice(
    name="VIBE PAD  ",
    algorithm=2,
    feedback=3,
    op_configs=[
        {"level": 97, "rates": (45, 25, 25, 36), "levels": (99, 99, 95, 0), "ams": 1},
        {"level": 75, "rates": (60, 25, 25, 40), "levels": (99, 85, 80, 0)},
        {"level": 96, "detune": 10, "rates": (45, 25, 25, 36), "levels": (99, 99, 95, 0), "ams": 1},
        {"level": 70, "coarse": 2, "rates": (60, 25, 25, 40), "levels": (99, 85, 80, 0)},
        {"level": 60, "coarse": 3, "rates": (55, 25, 25, 40), "levels": (99, 80, 75, 0)},
        {"level": 55, "coarse": 1, "rates": (50, 25, 25, 40), "levels": (99, 80, 75, 0)},
    ],
    pitch_rates=(84, 95, 95, 60),
    pitch_levels=(53, 50, 50, 50),
    lfo=LfoParams(speed=30, delay=60, pitch_mod_depth=8, amp_mod_depth=20, sync=False, waveform=0,
                  pitch_mod_sensitivity=4),
)


def get_preset(name: str) -> Voice:
    """
    Get a built-in voice by name.

    Args:
        name: Preset name (case-insensitive)

    Returns:
        Voice

    Raises:
        KeyError: If preset not found
    """
    name = name.lower()
    if name not in PRESETS:
        available = ", ".join(sorted(PRESETS.keys()))
        raise KeyError(f"Unknown preset '{name}'. Available: {available}")
    return PRESETS[name]


def list_presets() -> list[str]:
    """Return list of available preset names."""
    return list(PRESETS.keys())
