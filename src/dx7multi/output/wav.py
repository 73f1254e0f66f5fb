"""
WAV output via soundfile.
"""

from pathlib import Path
from typing import Union

import soundfile as sf

from ..sampling.renderer import RenderedSample


# Sample format of written files.
WAV_SUBTYPE = "PCM_16"


def write_wav(path: Union[str, Path], sample: RenderedSample) -> Path:
    """
    Write one rendered sample as a mono WAV file.

    Args:
        path: Destination file
        sample: Rendered sample

    Returns:
        Path written
    """
    path = Path(path)
    sf.write(str(path), sample.pcm, sample.sample_rate, subtype=WAV_SUBTYPE)
    return path
