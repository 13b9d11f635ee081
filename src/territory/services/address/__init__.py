"""Address normalization helpers."""

from .normalizer import normalize_address_key, normalize_for_comparison, parse_address

__all__ = [
    "parse_address",
    "normalize_address_key",
    "normalize_for_comparison",
]
