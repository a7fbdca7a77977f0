from __future__ import annotations

import asyncio
import base64
import binascii
import io
import ipaddress
import logging
import re
import socket
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import google.generativeai as genai
import httpx
from PIL import Image, ImageStat, UnidentifiedImageError

from ..config import Settings
from .styles import StyleRequest, candidate_artists, resolve_style_tag

logger = logging.getLogger("picoart.artist_selector")

MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10MB
MAX_REDIRECTS = 3
ANALYSIS_THUMBNAIL = (256, 256)
DEFAULT_ARTIST = "a classical master painter"

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<data>.+)$", re.DOTALL)

# Candidates known for portraits / landscapes, used by the heuristic
PORTRAIT_ARTISTS = {
    "Leonardo da Vinci", "Raphael", "Titian", "Rembrandt", "Vermeer", "Ingres", "Jacques-Louis David",
    "Pierre-Auguste Renoir", "Egon Schiele", "Edvard Munch", "Shin Yun-bok", "Kitagawa Utamaro",
    "Fayum portrait painters", "Xu Beihong", "Henri Matisse", "Paul Gauguin",
}
LANDSCAPE_ARTISTS = {
    "Claude Monet", "J.M.W. Turner", "Caspar David Friedrich", "Paul Cézanne", "Jeong Seon", "Fan Kuan",
    "Katsushika Hokusai", "Utagawa Hiroshige", "André Derain", "Jean-François Millet", "Vincent van Gogh",
}
DARK_ARTISTS = {"Caravaggio", "Rembrandt", "Edvard Munch", "Gustave Courbet"}
BRIGHT_ARTISTS = {"Claude Monet", "Fragonard", "Boucher", "Henri Matisse", "Pierre-Auguste Renoir", "Watteau"}


@dataclass(frozen=True)
class ImageAnalysis:
    width: Optional[int] = None
    height: Optional[int] = None
    orientation: str = "unknown"
    brightness: Optional[float] = None
    saturation: Optional[float] = None
    tone: str = "unknown"
    source: str = "unavailable"

    @property
    def available(self) -> bool:
        return self.source != "unavailable"

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    def describe(self) -> str:
        if not self.available:
            return "no image analysis available"
        return (
            f"{self.orientation} image {self.width}x{self.height}, "
            f"{self.tone} tone (brightness {self.brightness:.0f}/255, saturation {self.saturation:.0f}/255)"
        )


@dataclass(frozen=True)
class ArtistSelection:
    artist: str
    method: str
    details: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _orientation(width: int, height: int) -> str:
    ratio = width / height if height else 1.0
    if ratio > 1.1:
        return "landscape"
    if ratio < 0.9:
        return "portrait"
    return "square"


def _tone(brightness: float) -> str:
    if brightness < 85:
        return "dark"
    if brightness > 170:
        return "bright"
    return "balanced"


def measure_image(data: bytes, source: str) -> ImageAnalysis:
    with Image.open(io.BytesIO(data)) as img:
        width, height = img.size
        thumb = img.convert("RGB")
        thumb.thumbnail(ANALYSIS_THUMBNAIL)
        brightness = ImageStat.Stat(thumb.convert("L")).mean[0]
        saturation = ImageStat.Stat(thumb.convert("HSV")).mean[1]
    return ImageAnalysis(
        width=width,
        height=height,
        orientation=_orientation(width, height),
        brightness=brightness,
        saturation=saturation,
        tone=_tone(brightness),
        source=source,
    )


def decode_data_uri(image: str) -> Optional[bytes]:
    match = DATA_URI_PATTERN.match(image.strip())
    if not match:
        return None
    try:
        return base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError):
        return None


async def _ensure_public_host(url: httpx.URL) -> None:
    """Refuse anything but http(s) URLs whose host resolves only to global addresses."""
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError(f"Unsupported image URL: {url}")
    try:
        addresses = [ipaddress.ip_address(url.host)]
    except ValueError:
        port = url.port or (443 if url.scheme == "https" else 80)
        try:
            infos = await asyncio.get_running_loop().getaddrinfo(url.host, port, type=socket.SOCK_STREAM)
        except OSError as exc:
            raise ValueError(f"Could not resolve image host {url.host}: {exc}") from exc
        addresses = [ipaddress.ip_address(info[4][0]) for info in infos]
    if not addresses or any(not address.is_global for address in addresses):
        raise ValueError(f"Image host {url.host} is not a public address")


async def _download_image(url: str, timeout: float, transport: Optional[httpx.AsyncBaseTransport] = None) -> bytes:
    # Redirects are followed by hand so every hop passes the host check
    target = httpx.URL(url)
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=False, transport=transport) as client:
        for _ in range(MAX_REDIRECTS + 1):
            await _ensure_public_host(target)
            response = await client.get(target)
            if not response.is_redirect:
                break
            target = target.join(response.headers["Location"])
        else:
            raise ValueError(f"Too many redirects fetching {url}")

        response.raise_for_status()
        content_length = response.headers.get("Content-Length")
        if content_length and int(content_length) > MAX_IMAGE_BYTES:
            raise ValueError("Image exceeds 10MB limit")
        data = response.content
        if len(data) > MAX_IMAGE_BYTES:
            raise ValueError("Image exceeds 10MB limit")
        return data


async def analyze_image_for_artist(
    image: str, *, timeout: float = 15.0, transport: Optional[httpx.AsyncBaseTransport] = None
) -> ImageAnalysis:
    """Measure size, orientation and tone of a data URI or http(s) image.

    Analysis only steers artist choice, so an image we cannot read yields an
    ``unavailable`` analysis instead of an error.
    """
    source = "data_uri"
    data = decode_data_uri(image)
    if data is None and image.startswith(("http://", "https://")):
        source = "url"
        try:
            data = await _download_image(image, timeout, transport)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not download image for analysis: %s", exc)
            return ImageAnalysis()
    if not data or len(data) > MAX_IMAGE_BYTES:
        logger.warning("Image payload could not be decoded for analysis")
        return ImageAnalysis()

    try:
        return measure_image(data, source)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        logger.warning("Could not analyse image: %s", exc)
        return ImageAnalysis()


def select_artist_heuristically(analysis: ImageAnalysis, candidates: List[str]) -> ArtistSelection:
    if not candidates:
        return ArtistSelection(artist=DEFAULT_ARTIST, method="default", details="No style given; using generic painterly style")

    scores: Dict[str, int] = {name: 0 for name in candidates}
    reasons: List[str] = []
    if analysis.orientation == "portrait":
        reasons.append("portrait framing")
        for name in candidates:
            scores[name] += 2 if name in PORTRAIT_ARTISTS else 0
    elif analysis.orientation == "landscape":
        reasons.append("landscape framing")
        for name in candidates:
            scores[name] += 2 if name in LANDSCAPE_ARTISTS else 0
    if analysis.tone == "dark":
        reasons.append("dark tone")
        for name in candidates:
            scores[name] += 1 if name in DARK_ARTISTS else 0
    elif analysis.tone == "bright":
        reasons.append("bright tone")
        for name in candidates:
            scores[name] += 1 if name in BRIGHT_ARTISTS else 0

    # max() keeps the first candidate on ties
    artist = max(candidates, key=lambda name: scores[name])
    detail = ", ".join(reasons) if reasons else "no distinguishing image features"
    return ArtistSelection(artist=artist, method="heuristic", details=f"Matched {artist} on {detail}")


def _build_selection_prompt(analysis: ImageAnalysis, style: Optional[StyleRequest], guidelines: str, candidates: List[str]) -> str:
    style_name = (style.name or style.era or style.movement) if style else None
    lines = [
        "You pick the single best artist to restyle a user's photo.",
        f"Style: {style_name or 'unspecified'}",
        f"Image: {analysis.describe()}",
    ]
    if guidelines:
        lines.append(f"Guidelines: {guidelines}")
    lines.append("Candidates: " + "; ".join(candidates))
    lines.append("Answer with the exact candidate name on the first line and a one-sentence reason on the second.")
    return "\n".join(lines)


def _match_candidate(text: str, candidates: List[str]) -> Optional[str]:
    first_line = text.strip().splitlines()[0].strip(" *\"'.") if text.strip() else ""
    for name in candidates:
        if first_line.lower() == name.lower():
            return name
    lowered = text.lower()
    for name in candidates:
        if name.lower() in lowered:
            return name
    return None


async def _ask_gemini(prompt: str, settings: Settings) -> str:
    genai.configure(api_key=settings.gemini_api_key)
    model = genai.GenerativeModel(settings.gemini_model)
    response = await model.generate_content_async(prompt)
    return response.text or ""


async def select_artist_with_ai(
    analysis: ImageAnalysis,
    style: Optional[StyleRequest],
    guidelines: str,
    *,
    settings: Settings,
) -> ArtistSelection:
    candidates = candidate_artists(resolve_style_tag(style))
    if not candidates or not settings.gemini_api_key:
        return select_artist_heuristically(analysis, candidates)

    try:
        answer = await _ask_gemini(_build_selection_prompt(analysis, style, guidelines, candidates), settings)
    except Exception as exc:  # provider SDK raises assorted google.api_core errors
        logger.warning("Gemini artist selection failed, using heuristic: %s", exc)
        return select_artist_heuristically(analysis, candidates)

    artist = _match_candidate(answer, candidates)
    if artist is None:
        logger.warning("Gemini answer did not name a candidate: %r", answer[:200])
        return select_artist_heuristically(analysis, candidates)

    lines = [line.strip() for line in answer.strip().splitlines() if line.strip()]
    reason = lines[1] if len(lines) > 1 else "Selected by AI"
    return ArtistSelection(artist=artist, method="ai", details=reason)
