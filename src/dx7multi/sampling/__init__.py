"""
Multisampling: render a voice across the keyboard and map the results to
key zones.
"""

from .mapper import KeyZone, MultisampleMap, MultisampleMapper
from .renderer import RenderedSample, SampleRenderer, sample_notes

__all__ = [
    "RenderedSample",
    "SampleRenderer",
    "sample_notes",
    "KeyZone",
    "MultisampleMap",
    "MultisampleMapper",
]
