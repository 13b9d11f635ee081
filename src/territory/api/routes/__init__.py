"""Route group exports."""

from . import address, analysis, cache, health

__all__ = ["address", "analysis", "cache", "health"]
