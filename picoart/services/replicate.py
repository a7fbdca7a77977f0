from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from ..config import Settings
from ..utils.http_client import UpstreamHttpClient
from ..utils.throttle import AdmissionGate

logger = logging.getLogger("picoart.replicate")

DEFAULT_CONTROL_STRENGTH = 0.5
OUTPUT_FORMAT = "jpg"
OUTPUT_QUALITY = 90


@dataclass(frozen=True)
class VariantProfile:
    display_name: str
    model_path: str
    cost: float
    approx_seconds: float

    @property
    def model_id(self) -> str:
        return self.model_path

    @property
    def predictions_path(self) -> str:
        return f"models/{self.model_path}/predictions"


class BackendVariant(str, Enum):
    SDXL_LIGHTNING = "sdxl-lightning"
    FLUX_DEPTH = "flux-depth"

    @classmethod
    def from_flag(cls, use_sdxl: Optional[bool]) -> "BackendVariant":
        # null selects FLUX Depth; an omitted flag is already True on the request model
        return cls.SDXL_LIGHTNING if use_sdxl else cls.FLUX_DEPTH

    @property
    def profile(self) -> VariantProfile:
        return VARIANT_PROFILES[self]


VARIANT_PROFILES: Dict[BackendVariant, VariantProfile] = {
    BackendVariant.SDXL_LIGHTNING: VariantProfile(
        display_name="SDXL Lightning",
        model_path="bytedance/sdxl-lightning-4step",
        cost=0.011,
        approx_seconds=2.0,
    ),
    BackendVariant.FLUX_DEPTH: VariantProfile(
        display_name="FLUX Depth",
        model_path="black-forest-labs/flux-depth-dev",
        cost=0.04,
        approx_seconds=5.0,
    ),
}


def build_payload(
    variant: BackendVariant,
    image: str,
    prompt: str,
    *,
    negative_prompt: Optional[str] = None,
    control_strength: Optional[float] = None,
) -> Dict[str, Any]:
    if variant is BackendVariant.SDXL_LIGHTNING:
        body: Dict[str, Any] = {
            "prompt": prompt,
            "image": image,
            "num_inference_steps": 4,
            "guidance_scale": 0,
            "scheduler": "K_EULER",
            "num_outputs": 1,
            "disable_safety_checker": False,
            "output_format": OUTPUT_FORMAT,
            "output_quality": OUTPUT_QUALITY,
        }
        if negative_prompt:
            body["negative_prompt"] = negative_prompt
    else:
        body = {
            "control_image": image,
            "prompt": prompt,
            "num_inference_steps": 24,
            "guidance": 12,
            "control_strength": DEFAULT_CONTROL_STRENGTH if control_strength is None else control_strength,
            "output_format": OUTPUT_FORMAT,
            "output_quality": OUTPUT_QUALITY,
        }
    return {"input": body}


@dataclass
class GenerationResult:
    variant: BackendVariant
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def model_used(self) -> str:
        return self.variant.profile.display_name

    @property
    def model_id(self) -> str:
        return self.variant.profile.model_id

    @property
    def cost(self) -> float:
        return self.variant.profile.cost

    def to_response(self, **extra: Any) -> Dict[str, Any]:
        return {**self.data, **extra, "model_used": self.model_used, "cost": self.cost}


class ReplicateClient:
    def __init__(
        self,
        settings: Settings,
        gate: AdmissionGate,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._gate = gate
        self._http = UpstreamHttpClient(
            str(settings.replicate_base_url),
            api_key=settings.replicate_api_key,
            timeout=settings.upstream_timeout,
            transport=transport,
        )
        if not settings.replicate_api_key:
            logger.warning("REPLICATE_API_KEY is not set; upstream calls will be rejected")

    @property
    def gate(self) -> AdmissionGate:
        return self._gate

    async def invoke(
        self,
        variant: BackendVariant,
        image: str,
        prompt: str,
        *,
        negative_prompt: Optional[str] = None,
        control_strength: Optional[float] = None,
    ) -> GenerationResult:
        profile = variant.profile
        payload = build_payload(
            variant,
            image,
            prompt,
            negative_prompt=negative_prompt,
            control_strength=control_strength,
        )

        async def _call() -> Dict[str, Any]:
            logger.info("Calling %s (%s)", profile.display_name, profile.model_path)
            return await self._http.post_json(
                profile.predictions_path,
                payload,
                label=profile.display_name,
                headers={"Prefer": "wait"},
            )

        data = await self._gate.submit(_call)
        logger.info("%s completed (cost $%.3f, ~%.0fs)", profile.display_name, profile.cost, profile.approx_seconds)
        return GenerationResult(variant=variant, data=data)

    async def get_prediction(self, prediction_id: str) -> Dict[str, Any]:
        return await self._http.get_json(f"predictions/{prediction_id}", label="Replicate")

    async def aclose(self) -> None:
        await self._http.aclose()
