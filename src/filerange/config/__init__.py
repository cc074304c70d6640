"""Configuration models."""

from filerange.config.config import ReadAllConfig

__all__ = ["ReadAllConfig"]
