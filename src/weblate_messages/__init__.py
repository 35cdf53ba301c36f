"""
weblate-messages - application messages served from Weblate.

Public API:
    WeblateMessageSource  - messages from the Weblate REST API, cached per locale
    BundleMessageSource   - messages from local YAML bundles
    Locale                - structured locale used to address translations
    WeblateConfig         - connection and caching settings
"""

__version__ = "0.4.0"

from .config import WeblateConfig, load_config
from .locale import Locale
from .sources import (
    BundleMessageSource,
    MessageSource,
    NoSuchMessageError,
    WeblateMessageSource,
)

__all__ = [
    "__version__",
    "Locale",
    "MessageSource",
    "NoSuchMessageError",
    "BundleMessageSource",
    "WeblateMessageSource",
    "WeblateConfig",
    "load_config",
]
