from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from .styles import StyleRequest, StyleTag, resolve_style_tag

logger = logging.getLogger("picoart.prompt_builder")

DEFAULT_CONTROL_STRENGTH = 0.5
MIN_CONTROL_STRENGTH = 0.2
MAX_CONTROL_STRENGTH = 0.8

LOOSE_KEYWORDS = ("impressionism", "impressionist", "expressionism", "expressionist", "fauvism", "fauvist", "ink wash", "abstract")
PRECISE_KEYWORDS = ("portrait", "architecture", "building", "face", "detailed", "realism", "realist")

SDXL_MAX_WORDS = 60
SDXL_QUALITY_SUFFIX = "masterpiece, fine art painting, highly detailed"
BASE_NEGATIVE_PROMPT = "photo, photograph, photorealistic, 3d render, blurry, low quality, watermark, text, deformed"

STYLE_CUES = {
    StyleTag.ANCIENT: "classical antiquity",
    StyleTag.MEDIEVAL: "medieval painting",
    StyleTag.RENAISSANCE: "Renaissance oil painting",
    StyleTag.BAROQUE: "Baroque oil painting",
    StyleTag.ROCOCO: "Rococo painting",
    StyleTag.NEOCLASSICAL: "Neoclassical painting",
    StyleTag.ROMANTIC: "Romantic painting",
    StyleTag.REALIST: "Realist painting",
    StyleTag.IMPRESSIONISM: "Impressionist painting",
    StyleTag.POST_IMPRESSIONISM: "Post-Impressionist painting",
    StyleTag.FAUVISM: "Fauvist painting",
    StyleTag.EXPRESSIONISM: "Expressionist painting",
    StyleTag.KOREAN: "Korean traditional painting",
    StyleTag.CHINESE: "Chinese ink wash painting",
    StyleTag.JAPANESE: "Japanese ukiyo-e woodblock print",
}

STYLE_NEGATIVES = {
    StyleTag.KOREAN: "oil paint texture, heavy impasto",
    StyleTag.CHINESE: "oil paint texture, saturated colors",
    StyleTag.JAPANESE: "photographic shading, soft gradients",
    StyleTag.IMPRESSIONISM: "sharp outlines, flat colors",
    StyleTag.RENAISSANCE: "modern clothing, cartoon",
    StyleTag.BAROQUE: "flat lighting, cartoon",
}


@dataclass(frozen=True)
class SdxlPrompt:
    prompt: str
    negative_prompt: str


def _style_cue(style: Optional[StyleRequest]) -> str:
    tag = resolve_style_tag(style)
    if tag is not None:
        return STYLE_CUES[tag]
    if style is not None and style.name:
        return style.name
    return ""


def build_artist_prompt(base_prompt: str, artist: Optional[str], style: Optional[StyleRequest]) -> str:
    parts: List[str] = [base_prompt.strip()]
    if artist:
        parts.append(f"in the style of {artist}")
    cue = _style_cue(style)
    if cue:
        parts.append(cue)
    return ", ".join(part for part in parts if part)


def cleanup_prompt(prompt: str) -> str:
    """Collapse whitespace and drop empty or repeated comma-separated fragments."""
    collapsed = re.sub(r"\s+", " ", prompt)
    seen = set()
    fragments: List[str] = []
    for fragment in collapsed.split(","):
        fragment = fragment.strip(" .;")
        key = fragment.lower()
        if not fragment or key in seen:
            continue
        seen.add(key)
        fragments.append(fragment)
    return ", ".join(fragments)


def get_control_strength(prompt: str) -> float:
    lowered = prompt.lower()
    strength = DEFAULT_CONTROL_STRENGTH
    if any(keyword in lowered for keyword in LOOSE_KEYWORDS):
        strength = 0.35
    elif any(keyword in lowered for keyword in PRECISE_KEYWORDS):
        strength = 0.65
    return max(MIN_CONTROL_STRENGTH, min(MAX_CONTROL_STRENGTH, strength))


def convert_to_sdxl(prompt: str, style: Optional[StyleRequest], artist: Optional[str]) -> SdxlPrompt:
    words = prompt.split()
    if len(words) > SDXL_MAX_WORDS:
        prompt = " ".join(words[:SDXL_MAX_WORDS]).rstrip(",")
    if artist and artist.lower() not in prompt.lower():
        prompt = f"{prompt}, by {artist}"
    sdxl_prompt = cleanup_prompt(f"{prompt}, {SDXL_QUALITY_SUFFIX}")

    negative = BASE_NEGATIVE_PROMPT
    tag = resolve_style_tag(style)
    if tag in STYLE_NEGATIVES:
        negative = f"{negative}, {STYLE_NEGATIVES[tag]}"
    return SdxlPrompt(prompt=sdxl_prompt, negative_prompt=negative)


def log_prompt_details(base_prompt: str, final_prompt: str, artist: Optional[str]) -> None:
    logger.debug("Base prompt: %s", base_prompt[:200])
    logger.debug("Final prompt (%d chars) for %s: %s", len(final_prompt), artist or "no artist", final_prompt[:400])
