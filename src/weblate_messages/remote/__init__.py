"""
Remote module - Weblate REST API access.

Exports the HTTP client, the paginated unit fetcher and the locale
directory.
"""

from .auth import TokenAuthHook
from .client import FetchFailed, WeblateClient
from .directory import LocaleDirectory
from .fetcher import DEFAULT_QUERY, UnitFetcher, build_query, format_since
from .models import LanguageStats, TranslationUnit, UnitsPage

__all__ = [
    # Client
    "WeblateClient",
    "FetchFailed",
    "TokenAuthHook",
    # Fetching
    "UnitFetcher",
    "DEFAULT_QUERY",
    "build_query",
    "format_since",
    "LocaleDirectory",
    # Models
    "LanguageStats",
    "TranslationUnit",
    "UnitsPage",
]
