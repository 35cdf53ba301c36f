"""
Locale module - structured locales and Weblate code translation.
"""

from .codes import (
    LOCALE_CODE_PATTERN,
    InvalidCodeFormat,
    LocaleCodeError,
    LocaleCodeTranslator,
    LocaleCollision,
    parse_locale_code,
)
from .model import Locale, as_locale

__all__ = [
    "Locale",
    "as_locale",
    "LocaleCodeTranslator",
    "LocaleCodeError",
    "InvalidCodeFormat",
    "LocaleCollision",
    "LOCALE_CODE_PATTERN",
    "parse_locale_code",
]
