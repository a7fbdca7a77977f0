from __future__ import annotations

from fastapi import Request

from .config import Settings
from .services.replicate import ReplicateClient
from .utils.throttle import AdmissionGate


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_replicate_client(request: Request) -> ReplicateClient:
    return request.app.state.replicate


def get_gate(request: Request) -> AdmissionGate:
    return request.app.state.gate
