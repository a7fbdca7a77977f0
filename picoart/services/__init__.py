"""Service layer exports."""

from . import artist_selector, prompt_builder, replicate, styles, transfer

__all__ = ["artist_selector", "prompt_builder", "replicate", "styles", "transfer"]
