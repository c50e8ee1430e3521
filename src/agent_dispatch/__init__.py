"""Agent dispatch package."""

from .config import DispatchConfig, DispatchMode

__all__ = ["DispatchConfig", "DispatchMode"]
