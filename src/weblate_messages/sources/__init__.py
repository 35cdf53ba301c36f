"""
Sources module - message lookup.

Exports the MessageSource interface, the Weblate-backed source and the
local YAML bundle source.
"""

from .base import MessageSource, NoSuchMessageError
from .bundle import BundleError, BundleMessageSource, flatten_messages
from .executor import BackgroundExecutor, InlineExecutor
from .weblate import WeblateMessageSource

__all__ = [
    "MessageSource",
    "NoSuchMessageError",
    "WeblateMessageSource",
    "BundleMessageSource",
    "BundleError",
    "flatten_messages",
    "InlineExecutor",
    "BackgroundExecutor",
]
