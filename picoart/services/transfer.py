from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import Settings
from . import artist_selector, prompt_builder
from .replicate import BackendVariant, ReplicateClient
from .styles import StyleRequest, get_style_guidelines

logger = logging.getLogger("picoart.transfer")


class TransferRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image: Optional[str] = None
    prompt: Optional[str] = None
    style: Optional[StyleRequest] = None
    use_sdxl: Optional[bool] = Field(default=True, alias="useSDXL")

    def missing_fields(self) -> bool:
        return not self.image or not self.prompt


async def run_transfer(request: TransferRequest, client: ReplicateClient, settings: Settings) -> Dict[str, Any]:
    variant = BackendVariant.from_flag(request.use_sdxl)
    style = request.style
    logger.info(
        "Transfer request: model=%s style=%s prompt=%r",
        variant.profile.display_name,
        (style.name if style else None) or "Unknown",
        request.prompt[:100],
    )

    analysis = await artist_selector.analyze_image_for_artist(request.image, timeout=settings.image_fetch_timeout)
    logger.debug("Image analysis: %s", analysis.describe())

    guidelines = get_style_guidelines(style)
    selection = await artist_selector.select_artist_with_ai(analysis, style, guidelines, settings=settings)
    logger.info("Selected artist %s via %s", selection.artist, selection.method)

    final_prompt = prompt_builder.cleanup_prompt(
        prompt_builder.build_artist_prompt(request.prompt, selection.artist, style)
    )
    prompt_builder.log_prompt_details(request.prompt, final_prompt, selection.artist)

    if variant is BackendVariant.SDXL_LIGHTNING:
        sdxl = prompt_builder.convert_to_sdxl(final_prompt, style, selection.artist)
        result = await client.invoke(variant, request.image, sdxl.prompt, negative_prompt=sdxl.negative_prompt)
    else:
        strength = prompt_builder.get_control_strength(final_prompt)
        result = await client.invoke(variant, request.image, final_prompt, control_strength=strength)

    return result.to_response(
        selected_artist=selection.artist,
        selection_method=selection.method,
        selection_details=selection.details,
    )


async def run_lightning_test(image: str, prompt: str, client: ReplicateClient) -> Dict[str, Any]:
    fast = BackendVariant.SDXL_LIGHTNING.profile
    quality = BackendVariant.FLUX_DEPTH.profile
    result = await client.invoke(BackendVariant.SDXL_LIGHTNING, image, prompt)
    savings = (quality.cost - fast.cost) / quality.cost * 100
    return {
        **result.data,
        "model": fast.model_path.split("/")[-1],
        "cost": fast.cost,
        "comparison": {
            "flux_cost": quality.cost,
            "savings": f"{savings:.1f}%",
            "speed_improvement": f"{quality.approx_seconds / fast.approx_seconds:g}x",
        },
    }
