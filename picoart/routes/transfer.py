from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config import Settings
from ..dependencies import get_app_settings, get_replicate_client
from ..services import transfer as transfer_service
from ..services.replicate import ReplicateClient
from ..services.transfer import TransferRequest
from ..utils.errors import failure_response, missing_fields_error

logger = logging.getLogger("picoart.routes.transfer")

router = APIRouter(prefix="/api", tags=["transfer"])

REQUIRED_FIELDS = ("image", "prompt")


@router.post("/flux-transfer")
async def flux_transfer(
    payload: Optional[TransferRequest] = None,
    client: ReplicateClient = Depends(get_replicate_client),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    if payload is None or payload.missing_fields():
        raise missing_fields_error(*REQUIRED_FIELDS)

    try:
        return await transfer_service.run_transfer(payload, client, settings)
    except Exception as exc:
        logger.exception("Transfer handler failed")
        return failure_response(exc, include_stack=settings.is_development)


@router.post("/sdxl-lightning-test")
async def sdxl_lightning_test(
    payload: Optional[TransferRequest] = None,
    client: ReplicateClient = Depends(get_replicate_client),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    if payload is None or payload.missing_fields():
        raise missing_fields_error(*REQUIRED_FIELDS)

    try:
        return await transfer_service.run_lightning_test(payload.image, payload.prompt, client)
    except Exception as exc:
        logger.exception("SDXL Lightning test handler failed")
        return failure_response(exc, include_stack=settings.is_development)
