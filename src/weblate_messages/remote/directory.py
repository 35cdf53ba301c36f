"""
Directory of the languages available in a Weblate project.

Maps each Locale to the Weblate code that holds its translations. The
directory is one immutable snapshot: it is loaded lazily on first use and
replaced as a whole by load(), so readers see either the old or the new
mapping, never a partial one.
"""

import threading
from types import MappingProxyType
from typing import Mapping

import structlog
from pydantic import ValidationError

from ..locale.codes import LocaleCodeTranslator
from ..locale.model import Locale
from .client import FetchFailed, WeblateClient
from .models import LanguageStats

logger = structlog.get_logger()


class LocaleDirectory:
    """Locale -> Weblate code mapping for one project."""

    def __init__(
        self,
        client: WeblateClient,
        translator: LocaleCodeTranslator,
        project: str,
    ):
        self.client = client
        self.translator = translator
        self.project = project
        self.log = logger.bind(component="locale_directory", project=project)
        self._snapshot: Mapping[Locale, str] | None = None
        self._lock = threading.RLock()

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def languages_url(self) -> str:
        return self.client.url(f"api/projects/{self.project}/languages/")

    def load(self) -> Mapping[Locale, str]:
        """Reload the language listing and replace the snapshot.

        On failure the snapshot becomes empty if nothing was loaded before,
        otherwise the previous snapshot is kept.

        Returns:
            The snapshot in effect after the call.
        """
        with self._lock:
            try:
                entries = self._fetch_languages()
            except FetchFailed as e:
                self.log.warning(
                    "directory.load.failed",
                    error=str(e),
                    status=e.status_code,
                    keeping_previous=self._snapshot is not None,
                )
                if self._snapshot is None:
                    self._snapshot = MappingProxyType({})
                return self._snapshot

            self._snapshot = MappingProxyType(self._build_mapping(entries))
            self.log.info("directory.load.done", locales=len(self._snapshot))
            return self._snapshot

    def get(self, locale: Locale) -> str | None:
        """Return the Weblate code for a Locale, loading the directory once."""
        return self.snapshot().get(locale)

    def snapshot(self) -> Mapping[Locale, str]:
        """Current snapshot; triggers the first load if none happened yet."""
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._snapshot is None:
                self.load()
            return self._snapshot

    def invalidate(self) -> None:
        """Forget the snapshot; the next lookup loads it again."""
        with self._lock:
            self._snapshot = None

    def _fetch_languages(self) -> list[LanguageStats]:
        url = self.languages_url()
        data = self.client.get_json(url)
        if not isinstance(data, list):
            raise FetchFailed(f"Expected a list of languages from {url}", url=url)

        entries = []
        for item in data:
            try:
                entries.append(LanguageStats.model_validate(item))
            except ValidationError as e:
                self.log.warning("directory.invalid_entry", entry=str(item)[:100], error=str(e))
        return entries

    def _build_mapping(self, entries: list[LanguageStats]) -> dict[Locale, str]:
        manual = self.translator.manual_mappings
        mapping: dict[Locale, str] = {}

        codes = [entry.code for entry in entries if entry.has_translations]

        for code in codes:
            if code in manual:
                continue
            locale = self.translator.try_decode(code, mapping)
            if locale is not None:
                mapping[locale] = code

        # Manual registrations always win over derived codes
        for code in codes:
            if code in manual:
                mapping[manual[code]] = code

        return mapping
