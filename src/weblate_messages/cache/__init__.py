"""
Cache module - per-locale translation cache.
"""

from .translations import (
    DEFAULT_MAX_AGE_SECONDS,
    DEFAULT_RETRY_INTERVAL_SECONDS,
    EMPTY_MESSAGES,
    CacheEntry,
    TranslationCache,
)

__all__ = [
    "CacheEntry",
    "TranslationCache",
    "DEFAULT_MAX_AGE_SECONDS",
    "DEFAULT_RETRY_INTERVAL_SECONDS",
    "EMPTY_MESSAGES",
]
