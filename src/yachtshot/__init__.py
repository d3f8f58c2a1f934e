"""Yachtshot - selfie-to-yacht photo compositing with a multimodal image model."""

__version__ = "0.3.0"

from yachtshot.core.config import YachtshotConfig, config

__all__ = [
    "YachtshotConfig",
    "config",
]
