"""
Message source reading local YAML bundles.

For basename ``messages`` and locale ``de-AT`` the files are layered in
this order, later files overriding earlier ones:

    messages.yaml        (default bundle)
    messages_de.yaml
    messages_de_AT.yaml

A locale with script or variant adds one more file named after all its
subtags (``messages_sr_Latn_RS.yaml``). Nested mappings are flattened to
dotted keys, so ``{"menu": {"open": "Open"}}`` provides ``menu.open``.
Missing files are skipped.
"""

import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import structlog
import yaml

from ..locale.model import Locale
from .base import MessageSource

logger = structlog.get_logger()

BUNDLE_SUFFIXES = (".yaml", ".yml")


class BundleError(Exception):
    """A bundle file exists but can't be read as a mapping."""

    pass


def flatten_messages(data: Mapping[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested mappings to dotted keys. None values are skipped."""
    result: dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, Mapping):
            result.update(flatten_messages(value, prefix=f"{full_key}."))
        elif value is not None:
            result[full_key] = str(value)
    return result


class BundleMessageSource(MessageSource):
    """Bundled messages from YAML files in one directory."""

    def __init__(
        self,
        directory: Path,
        basename: str = "messages",
        parent: MessageSource | None = None,
    ):
        super().__init__(parent)
        self.directory = Path(directory)
        self.basename = basename
        self._files: dict[Path, Mapping[str, str]] = {}
        self._locales: dict[Locale, Mapping[str, str]] = {}
        self._lock = threading.Lock()
        self.log = logger.bind(component="bundle_source", directory=str(self.directory))

    def bundle_names(self, locale: Locale) -> list[str]:
        """Bundle file stems for a locale, least specific first."""
        names = [self.basename]
        for layer in locale.fallback_chain():
            names.append(f"{self.basename}_{layer.file_suffix()}")
        return names

    def messages(self, locale: Locale) -> Mapping[str, str]:
        cached = self._locales.get(locale)
        if cached is not None:
            return cached

        with self._lock:
            composed: dict[str, str] = {}
            for name in self.bundle_names(locale):
                composed.update(self._load_bundle(name))
            result = MappingProxyType(composed)
            self._locales[locale] = result

        self.log.debug("bundle.loaded", locale=str(locale), messages=len(result))
        return result

    def clear_cache(self) -> None:
        """Forget loaded files; the next lookup reads them again."""
        with self._lock:
            self._files.clear()
            self._locales.clear()

    def _load_bundle(self, name: str) -> Mapping[str, str]:
        for suffix in BUNDLE_SUFFIXES:
            path = self.directory / f"{name}{suffix}"
            if path.is_file():
                return self._load_file(path)
        return {}

    def _load_file(self, path: Path) -> Mapping[str, str]:
        cached = self._files.get(path)
        if cached is not None:
            return cached

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise BundleError(f"Could not read bundle {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise BundleError(f"Bundle {path} must contain a mapping, got {type(data).__name__}")

        messages = MappingProxyType(flatten_messages(data))
        self._files[path] = messages
        return messages
