from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..dependencies import get_gate
from ..utils.throttle import AdmissionGate

router = APIRouter()

@router.get("/health", tags=["Monitoring"], summary="Health check endpoint")
async def health_check(gate: AdmissionGate = Depends(get_gate)):
    # waiting has no upper bound
    return JSONResponse(content={"status": "ok", "gate": gate.stats().to_dict()}, status_code=status.HTTP_200_OK)
