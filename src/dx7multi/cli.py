"""
Command line interface: list the voices in a bank, or render one as a
multisample instrument.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from . import __version__
from .config import RenderConfig, load_config
from .dx7.sysex import BankParser
from .errors import Dx7MultiError
from .output import export_multisample, sanitize_name
from .processing import peak_level
from .sampling import MultisampleMapper, RenderedSample, SampleRenderer


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dx7multi",
        description="Render a DX7 voice from a SysEx bank into a multisample instrument.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    ls = sub.add_parser("list", help="List the voices in a SysEx bank.")
    ls.add_argument("sysex_file", type=Path)

    gen = sub.add_parser("generate", help="Render one voice as WAV samples plus an .elmulti mapping.")
    gen.add_argument("sysex_file", type=Path)
    gen.add_argument("patch_number", type=int, help="0-based voice index, as shown by 'list'.")
    gen.add_argument("--key-on-duration", type=float, metavar="MS", help="Key hold time in ms (default 2000).")
    gen.add_argument("--min-midi-note", type=int, metavar="N", help="Lowest sampled note (default 60).")
    gen.add_argument("--max-midi-note", type=int, metavar="N", help="Highest sampled note (default 108).")
    gen.add_argument("--note-increment", type=int, metavar="N", help="Semitones between samples (default 3).")
    gen.add_argument("--sample-rate", type=int, metavar="HZ", help="Output sample rate (default 48000).")
    gen.add_argument("--velocity", type=int, metavar="V", help="Key velocity 1-127 (default 100).")
    gen.add_argument("--max-release", type=float, metavar="MS", help="Longest release tail in ms (default 10000).")
    gen.add_argument("--jobs", type=int, metavar="N", help="Render threads (default 1).")
    gen.add_argument("--no-dc-block", action="store_true", help="Keep DC offset in the samples.")
    gen.add_argument("--config", type=Path, help="JSON file with render settings; flags override it.")
    gen.add_argument("--output-dir", type=Path, help="Output directory (default ./<voice name>).")
    gen.add_argument("--name", help="Instrument name (default: the voice name).")
    gen.add_argument("-q", "--quiet", action="store_true", help="Only print errors.")

    return p


def _config_from_args(args: argparse.Namespace) -> RenderConfig:
    cfg = load_config(args.config) if args.config else RenderConfig()
    overrides = {
        "key_on_duration_ms": args.key_on_duration,
        "min_note": args.min_midi_note,
        "max_note": args.max_midi_note,
        "note_increment": args.note_increment,
        "sample_rate": args.sample_rate,
        "velocity": args.velocity,
        "max_release_ms": args.max_release,
        "workers": args.jobs,
    }
    cfg = replace(cfg, **{k: v for k, v in overrides.items() if v is not None})
    if args.no_dc_block:
        cfg.dc_block = False
    return cfg.validate()


def cmd_list(args: argparse.Namespace) -> int:
    bank = BankParser.from_file(args.sysex_file)
    for index, name in bank.names():
        print(f"{index}: {name}")
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    cfg = _config_from_args(args)
    bank = BankParser.from_file(args.sysex_file)
    voice = bank.voice(args.patch_number)

    name = sanitize_name(args.name if args.name is not None else voice.name)
    output_dir = args.output_dir if args.output_dir is not None else Path(name)

    def log(msg: str) -> None:
        if not args.quiet:
            print(msg)

    log(f"Voice {args.patch_number}: {voice.name!r} (algorithm {voice.algorithm})")
    log(f"Rendering notes {cfg.min_note}-{cfg.max_note} every {cfg.note_increment} "
        f"at {cfg.sample_rate} Hz, key-on {cfg.key_on_duration_ms:g} ms")

    def progress(sample: RenderedSample) -> None:
        log(f"  note {sample.note:3d}: {sample.duration:.2f}s, peak {peak_level(sample.pcm):.3f}")

    renderer = SampleRenderer(
        voice,
        sample_rate=cfg.sample_rate,
        velocity=cfg.velocity,
        max_release=cfg.max_release,
        workers=cfg.workers,
        dc_block=cfg.dc_block,
    )
    samples = renderer.render(cfg.min_note, cfg.max_note, cfg.note_increment, cfg.key_on_duration, progress=progress)
    mapping = MultisampleMapper().map(samples)

    elmulti = export_multisample(mapping, output_dir, name, cfg.velocity)
    log(f"Wrote {len(mapping)} samples and {elmulti}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    handlers = {"list": cmd_list, "generate": cmd_generate}
    try:
        return handlers[args.cmd](args)
    except (Dx7MultiError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
