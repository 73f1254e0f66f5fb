"""
dx7multi Demo

Builds a SysEx bank from the bundled presets, then renders each voice as a
small multisample instrument.
"""

from pathlib import Path

from dx7multi.dx7 import BankParser, build_bank, get_preset, list_presets
from dx7multi.output import export_multisample, sanitize_name
from dx7multi.processing import peak_level
from dx7multi.sampling import MultisampleMapper, SampleRenderer


def demo_bank(output_dir: Path) -> Path:
    """Write the presets as a 32-voice bank."""
    print("Building preset bank...")

    voices = [get_preset(name) for name in list_presets()]
    path = output_dir / "presets.syx"
    path.write_bytes(build_bank(voices))

    for index, name in BankParser.from_file(path).names()[:len(voices)]:
        print(f"  {index}: {name}")
    return path


def demo_multisample(bank_path: Path, index: int, output_dir: Path, sample_rate: int = 44100):
    """Render one voice of the bank from C2 to C6, one sample per octave."""
    voice = BankParser.from_file(bank_path).voice(index)
    name = sanitize_name(voice.name)
    print(f"\nRendering {name}...")

    renderer = SampleRenderer(voice, sample_rate=sample_rate, max_release=3.0, workers=4)
    samples = renderer.render(48, 96, 12, key_on_duration=1.0)
    for sample in samples:
        print(f"  note {sample.note}: {sample.duration:.2f}s, peak {peak_level(sample.pcm):.3f}")

    mapping = MultisampleMapper().map(samples)
    elmulti = export_multisample(mapping, output_dir / name, name, renderer.engine.velocity)
    print(f"  Mapping: {elmulti}")


def main():
    output_dir = Path("output") / "dx7multi"
    output_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 50)
    print("dx7multi Demo")
    print("=" * 50)

    bank_path = demo_bank(output_dir)
    for index in range(len(list_presets())):
        demo_multisample(bank_path, index, output_dir)

    print("\n" + "=" * 50)
    print(f"All demos complete! Output in: {output_dir}")
    print("=" * 50)


if __name__ == "__main__":
    main()
