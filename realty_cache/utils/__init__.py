"""Application settings."""

from .config import Settings, load_config

__all__ = ["Settings", "load_config"]
