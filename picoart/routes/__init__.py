"""HTTP route modules."""

from . import health, predictions, transfer

__all__ = ["health", "predictions", "transfer"]
