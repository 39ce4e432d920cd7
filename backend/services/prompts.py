"""Prompt composition for AI avatar generation.

The final prompt is the user's base prompt followed by the phrase for the
selected art style and one phrase per recognised artistic filter::

    compose_prompt("a red fox", "anime", ["pastel", "unknown"])
    # "a red fox, anime style, digital illustration, ..., soft pastel colors, serene lighting"

Unknown styles and filters are ignored rather than rejected so older clients
keep working when the catalogue changes.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

STYLE_SUFFIXES: dict[str, str] = {
    "realistic": (
        "photorealistic studio portrait, high detail, sharp focus, octane render, "
        "trending on ArtStation"
    ),
    "anime": (
        "anime style, digital illustration, vibrant colors, clean lines, trending on Pixiv"
    ),
    "cartoon": "3D Pixar style, cute, cheerful, smooth shading, high resolution",
    "pixelart": "pixel art style, 8-bit, retro gaming aesthetic, perfect pixels",
}

FILTER_PHRASES: dict[str, str] = {
    "vibrant": "vibrant, saturated colors, cinematic lighting",
    "pastel": "soft pastel colors, serene lighting",
    "dark": "dark fantasy, dramatic lighting, moody atmosphere",
    "cinematic": "cinematic lighting, film grain, volumetric light",
    "high_detail": "ultra-detailed, intricate, high resolution, 4k",
    "fantasy": "fantasy aesthetic, magical, mythical",
}

PROMPT_SEPARATOR = ", "
# Two or more commas in a row, with any whitespace between them.
_SEPARATOR_RUN = re.compile(r",\s*(?:,\s*)+")


def style_suffix(art_style: str | None) -> str:
    if not art_style:
        return ""
    return STYLE_SUFFIXES.get(art_style, "")


def filter_phrases(artistic_filters: Iterable[str] | None) -> list[str]:
    """Resolve filter tags to phrases in input order, dropping unknown tags."""
    if not artistic_filters:
        return []
    return [FILTER_PHRASES[tag] for tag in artistic_filters if tag in FILTER_PHRASES]


def compose_prompt(
    base_prompt: str,
    art_style: str | None = None,
    artistic_filters: Iterable[str] | None = None,
) -> str:
    """Build the provider-ready prompt.

    Deterministic for identical inputs. The result never contains an empty
    segment between separators and carries no surrounding whitespace.
    """
    segments = [base_prompt.strip(), style_suffix(art_style), *filter_phrases(artistic_filters)]
    joined = PROMPT_SEPARATOR.join(segment for segment in segments if segment)
    return _SEPARATOR_RUN.sub(PROMPT_SEPARATOR, joined).strip()


__all__ = [
    "FILTER_PHRASES",
    "STYLE_SUFFIXES",
    "compose_prompt",
    "filter_phrases",
    "style_suffix",
]
