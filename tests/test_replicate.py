"""
Tests for the Replicate adapter: variant payloads and gated invocation.
"""

import asyncio
import json

import httpx
import pytest

from picoart.config import Settings
from picoart.services.replicate import (
    BackendVariant,
    GenerationResult,
    ReplicateClient,
    build_payload,
)
from picoart.utils.errors import UpstreamRateLimited
from picoart.utils.throttle import AdmissionGate


def make_settings(**overrides):
    values = {"replicate_api_key": "r8_test", "replicate_base_url": "https://api.replicate.test/v1/"}
    values.update(overrides)
    return Settings(**values)


class TestBackendVariant:
    def test_flag_selects_by_truthiness(self):
        assert BackendVariant.from_flag(True) is BackendVariant.SDXL_LIGHTNING
        assert BackendVariant.from_flag(None) is BackendVariant.FLUX_DEPTH
        assert BackendVariant.from_flag(False) is BackendVariant.FLUX_DEPTH

    def test_profiles(self):
        fast = BackendVariant.SDXL_LIGHTNING.profile
        quality = BackendVariant.FLUX_DEPTH.profile
        assert fast.display_name == "SDXL Lightning"
        assert fast.cost == 0.011
        assert fast.predictions_path == "models/bytedance/sdxl-lightning-4step/predictions"
        assert quality.display_name == "FLUX Depth"
        assert quality.cost == 0.04
        assert quality.predictions_path == "models/black-forest-labs/flux-depth-dev/predictions"


class TestBuildPayload:
    def test_fast_variant(self):
        """The fast variant sends 4 steps, no guidance and the negative prompt."""
        payload = build_payload(BackendVariant.SDXL_LIGHTNING, "data:image/png;base64,AAA", "a cat", negative_prompt="blurry")
        body = payload["input"]
        assert body["num_inference_steps"] == 4
        assert body["guidance_scale"] == 0
        assert body["negative_prompt"] == "blurry"
        assert body["image"] == "data:image/png;base64,AAA"
        assert body["scheduler"] == "K_EULER"
        assert body["output_format"] == "jpg"
        assert body["output_quality"] == 90
        assert "guidance" not in body

    def test_fast_variant_without_negative_prompt(self):
        body = build_payload(BackendVariant.SDXL_LIGHTNING, "img", "a cat")["input"]
        assert "negative_prompt" not in body
        assert body["prompt"] == "a cat"

    def test_quality_variant(self):
        """The quality variant sends 24 steps, guidance 12 and a control image."""
        payload = build_payload(BackendVariant.FLUX_DEPTH, "https://x/img.png", "a cat", control_strength=0.35)
        body = payload["input"]
        assert body["num_inference_steps"] == 24
        assert body["guidance"] == 12
        assert body["control_image"] == "https://x/img.png"
        assert body["control_strength"] == 0.35
        assert "negative_prompt" not in body
        assert "guidance_scale" not in body

    def test_quality_variant_default_strength(self):
        body = build_payload(BackendVariant.FLUX_DEPTH, "img", "p")["input"]
        assert body["control_strength"] == 0.5


class TestGenerationResult:
    def test_to_response_merges_metadata(self):
        result = GenerationResult(variant=BackendVariant.FLUX_DEPTH, data={"id": "p1", "output": ["https://out.jpg"]})
        response = result.to_response(selected_artist="Caravaggio")
        assert response == {
            "id": "p1",
            "output": ["https://out.jpg"],
            "selected_artist": "Caravaggio",
            "model_used": "FLUX Depth",
            "cost": 0.04,
        }


class TestReplicateClient:
    @pytest.mark.asyncio
    async def test_invoke_posts_through_gate(self):
        """invoke() posts the variant payload with Prefer: wait and returns upstream JSON verbatim."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json={"id": "p1", "status": "succeeded", "output": ["https://out.jpg"]})

        gate = AdmissionGate(limit=1)
        client = ReplicateClient(make_settings(), gate, transport=httpx.MockTransport(handler))
        result = await client.invoke(BackendVariant.SDXL_LIGHTNING, "img", "a cat", negative_prompt="ugly")
        await client.aclose()

        assert result.data["output"] == ["https://out.jpg"]
        assert result.model_used == "SDXL Lightning"
        assert gate.stats().completed == 1

        request = requests[0]
        assert request.url.path == "/v1/models/bytedance/sdxl-lightning-4step/predictions"
        assert request.headers["Prefer"] == "wait"
        assert request.headers["Authorization"] == "Bearer r8_test"
        assert json.loads(request.content)["input"]["negative_prompt"] == "ugly"

    @pytest.mark.asyncio
    async def test_invoke_serializes_concurrent_calls(self):
        """Two concurrent invocations never overlap upstream when the gate limit is 1."""
        active = 0
        peak = 0

        async def handler(request):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return httpx.Response(200, json={"id": "x"})

        client = ReplicateClient(make_settings(), AdmissionGate(limit=1), transport=httpx.MockTransport(handler))
        await asyncio.gather(
            client.invoke(BackendVariant.SDXL_LIGHTNING, "img", "a"),
            client.invoke(BackendVariant.FLUX_DEPTH, "img", "b"),
        )
        await client.aclose()

        assert peak == 1

    @pytest.mark.asyncio
    async def test_rate_limit_passthrough(self):
        """A 429 from Replicate reaches the caller with status and retry_after intact."""
        def handler(request):
            return httpx.Response(429, text='{"detail":"slow down","retry_after":15}')

        gate = AdmissionGate()
        client = ReplicateClient(make_settings(), gate, transport=httpx.MockTransport(handler))
        with pytest.raises(UpstreamRateLimited) as exc_info:
            await client.invoke(BackendVariant.FLUX_DEPTH, "img", "a cat")
        await client.aclose()

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == 15
        assert gate.stats().failed == 1

    @pytest.mark.asyncio
    async def test_get_prediction(self):
        def handler(request):
            assert request.method == "GET"
            assert request.url.path == "/v1/predictions/abc123"
            return httpx.Response(200, json={"id": "abc123", "status": "processing"})

        client = ReplicateClient(make_settings(), AdmissionGate(), transport=httpx.MockTransport(handler))
        data = await client.get_prediction("abc123")
        await client.aclose()

        assert data["status"] == "processing"
