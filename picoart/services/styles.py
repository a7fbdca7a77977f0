"""Art-historical style tags, their prompt guidelines and candidate artists."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel


class StyleTag(str, Enum):
    ANCIENT = "ancient"
    MEDIEVAL = "medieval"
    RENAISSANCE = "renaissance"
    BAROQUE = "baroque"
    ROCOCO = "rococo"
    NEOCLASSICAL = "neoclassical"
    ROMANTIC = "romantic"
    REALIST = "realist"
    IMPRESSIONISM = "impressionism"
    POST_IMPRESSIONISM = "post-impressionism"
    FAUVISM = "fauvism"
    EXPRESSIONISM = "expressionism"
    KOREAN = "korean"
    CHINESE = "chinese"
    JAPANESE = "japanese"


class StyleRequest(BaseModel):
    name: Optional[str] = None
    era: Optional[str] = None
    movement: Optional[str] = None


def ancient_greek_roman_guidelines() -> str:
    return (
        "Classical Greek and Roman art: idealized proportions, marble sculpture or fresco surfaces, "
        "contrapposto poses, restrained earthy palette with terracotta and ochre."
    )


def medieval_guidelines() -> str:
    return (
        "Medieval art: flat gilded backgrounds, hieratic scale, bold outlines, "
        "tempera and illuminated-manuscript colour, little linear perspective."
    )


def renaissance_guidelines() -> str:
    return (
        "Renaissance painting: balanced composition, linear perspective, sfumato modelling, "
        "natural anatomy, soft warm light and harmonious colour."
    )


def baroque_guidelines() -> str:
    return (
        "Baroque painting: dramatic chiaroscuro, strong diagonal movement, deep shadows, "
        "rich saturated colour and theatrical lighting."
    )


def rococo_guidelines() -> str:
    return (
        "Rococo painting: light pastel palette, playful ornament, soft feathery brushwork, "
        "graceful figures in garden or salon settings."
    )


def neoclassical_romantic_realist_guidelines() -> str:
    return (
        "Neoclassicism, Romanticism and Realism: crisp drawing and clear form, emotional skies and "
        "sublime landscapes, or honest everyday subjects painted with sober naturalism."
    )


def impressionism_guidelines() -> str:
    return (
        "Impressionism: visible broken brushstrokes, plein-air light, vibrant complementary colour, "
        "soft edges and shimmering atmosphere."
    )


def post_impressionism_guidelines() -> str:
    return (
        "Post-Impressionism: expressive thick impasto, swirling or structured brushwork, "
        "bold contour lines and symbolic non-naturalistic colour."
    )


def fauvism_guidelines() -> str:
    return (
        "Fauvism: wild pure colour straight from the tube, flattened space, loose energetic strokes, "
        "colour used for emotion rather than description."
    )


def expressionism_guidelines() -> str:
    return (
        "Expressionism: distorted forms, jagged angular lines, intense clashing colour, "
        "raw emotional and psychological tension."
    )


def korean_art_guidelines() -> str:
    return (
        "Korean traditional painting: ink and light colour on hanji paper, generous empty space, "
        "genre scenes or true-view landscapes, gentle restrained brushwork."
    )


def chinese_art_guidelines() -> str:
    return (
        "Chinese ink painting: expressive monochrome ink wash, calligraphic brush strokes, "
        "misty mountains and water, poetic negative space."
    )


def japanese_art_guidelines() -> str:
    return (
        "Japanese ukiyo-e: woodblock print look, flat areas of colour, strong outlines, "
        "decorative patterns and stylized waves or clouds."
    )


GUIDELINES: Dict[StyleTag, Callable[[], str]] = {
    StyleTag.ANCIENT: ancient_greek_roman_guidelines,
    StyleTag.MEDIEVAL: medieval_guidelines,
    StyleTag.RENAISSANCE: renaissance_guidelines,
    StyleTag.BAROQUE: baroque_guidelines,
    StyleTag.ROCOCO: rococo_guidelines,
    StyleTag.NEOCLASSICAL: neoclassical_romantic_realist_guidelines,
    StyleTag.ROMANTIC: neoclassical_romantic_realist_guidelines,
    StyleTag.REALIST: neoclassical_romantic_realist_guidelines,
    StyleTag.IMPRESSIONISM: impressionism_guidelines,
    StyleTag.POST_IMPRESSIONISM: post_impressionism_guidelines,
    StyleTag.FAUVISM: fauvism_guidelines,
    StyleTag.EXPRESSIONISM: expressionism_guidelines,
    StyleTag.KOREAN: korean_art_guidelines,
    StyleTag.CHINESE: chinese_art_guidelines,
    StyleTag.JAPANESE: japanese_art_guidelines,
}

# First entry is the fallback when nothing else scores higher.
ARTISTS_BY_STYLE: Dict[StyleTag, List[str]] = {
    StyleTag.ANCIENT: ["Greek red-figure pottery", "Pompeian fresco painters", "Fayum portrait painters"],
    StyleTag.MEDIEVAL: ["Giotto", "Duccio", "the Limbourg brothers"],
    StyleTag.RENAISSANCE: ["Leonardo da Vinci", "Raphael", "Titian", "Botticelli"],
    StyleTag.BAROQUE: ["Caravaggio", "Rembrandt", "Rubens", "Vermeer"],
    StyleTag.ROCOCO: ["Fragonard", "Boucher", "Watteau"],
    StyleTag.NEOCLASSICAL: ["Jacques-Louis David", "Ingres"],
    StyleTag.ROMANTIC: ["Caspar David Friedrich", "J.M.W. Turner", "Delacroix"],
    StyleTag.REALIST: ["Gustave Courbet", "Jean-François Millet"],
    StyleTag.IMPRESSIONISM: ["Claude Monet", "Pierre-Auguste Renoir", "Edgar Degas"],
    StyleTag.POST_IMPRESSIONISM: ["Vincent van Gogh", "Paul Cézanne", "Paul Gauguin"],
    StyleTag.FAUVISM: ["Henri Matisse", "André Derain"],
    StyleTag.EXPRESSIONISM: ["Edvard Munch", "Ernst Ludwig Kirchner", "Egon Schiele"],
    StyleTag.KOREAN: ["Kim Hong-do", "Shin Yun-bok", "Jeong Seon"],
    StyleTag.CHINESE: ["Qi Baishi", "Xu Beihong", "Fan Kuan"],
    StyleTag.JAPANESE: ["Katsushika Hokusai", "Utagawa Hiroshige", "Kitagawa Utamaro"],
}


def resolve_style_tag(style: Optional[StyleRequest]) -> Optional[StyleTag]:
    if style is None:
        return None
    key = (style.era or style.movement or "").strip().lower()
    try:
        return StyleTag(key)
    except ValueError:
        return None


def get_style_guidelines(style: Optional[StyleRequest]) -> str:
    tag = resolve_style_tag(style)
    if tag is None:
        return ""
    return GUIDELINES[tag]()


def candidate_artists(tag: Optional[StyleTag]) -> List[str]:
    if tag is None:
        return []
    return list(ARTISTS_BY_STYLE[tag])
