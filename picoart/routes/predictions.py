from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..config import Settings
from ..dependencies import get_app_settings, get_replicate_client
from ..services.replicate import ReplicateClient
from ..utils.errors import api_error, failure_response, missing_fields_error

logger = logging.getLogger("picoart.routes.predictions")

router = APIRouter(prefix="/api", tags=["predictions"])

REQUIRED_FIELDS = ("id",)

PREDICTION_ID_PATTERN = re.compile(r"^[A-Za-z0-9]+$")


class PredictionCheckRequest(BaseModel):
    id: Optional[str] = None


@router.post("/check-prediction")
async def check_prediction(
    payload: Optional[PredictionCheckRequest] = None,
    client: ReplicateClient = Depends(get_replicate_client),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """Poll a prediction that did not finish within the ``Prefer: wait`` window."""
    if payload is None or not payload.id:
        raise missing_fields_error(*REQUIRED_FIELDS)
    if not PREDICTION_ID_PATTERN.match(payload.id):
        raise api_error("Invalid prediction id")

    try:
        return await client.get_prediction(payload.id)
    except Exception as exc:
        logger.exception("Prediction check failed for %s", payload.id)
        return failure_response(exc, include_stack=settings.is_development)
