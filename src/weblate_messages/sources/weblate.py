"""
Message source backed by a Weblate component.

Wires the Weblate client, the locale directory, the unit fetcher and the
translation cache together and exposes them as a MessageSource:

    config = WeblateConfig(base_url="https://hosted.weblate.org",
                           project="my-app", component="messages")
    with WeblateMessageSource(config, parent=BundleMessageSource(path)) as source:
        source.get_message("greeting", "de-AT", name="Ada")

Lookups never raise because of remote problems: failures are logged and
the last successfully cached texts are served.
"""

import time
from concurrent.futures import Future
from typing import Callable, Mapping

import structlog

from ..cache.translations import EMPTY_MESSAGES, TranslationCache
from ..config.schema import WeblateConfig
from ..locale.codes import LocaleCodeTranslator
from ..locale.model import Locale, as_locale
from ..remote.client import WeblateClient
from ..remote.directory import LocaleDirectory
from ..remote.fetcher import UnitFetcher
from .base import MessageSource
from .executor import BackgroundExecutor, InlineExecutor

logger = structlog.get_logger()


class WeblateMessageSource(MessageSource):
    """Resolves messages from Weblate with caching and locale fallback.

    In synchronous mode remote calls run on the calling thread. With
    ``async_loading`` they run on one background worker and lookups answer
    from whatever is cached at that moment (possibly nothing yet).
    """

    def __init__(
        self,
        config: WeblateConfig,
        client: WeblateClient | None = None,
        parent: MessageSource | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the source.

        Args:
            config: Weblate settings; base_url, project and component are required
            client: Optional preconfigured client (otherwise one is created)
            parent: Fallback source for keys Weblate doesn't have
            clock: Returns the current time in seconds

        Raises:
            ConfigurationError: If required settings are missing.
        """
        super().__init__(parent)
        config.require_remote()
        self.config = config
        self.log = logger.bind(
            component="weblate_source",
            project=config.project,
            weblate_component=config.component,
        )

        token = config.resolve_token()
        self._owns_client = client is None
        if client is None:
            client = WeblateClient(config.base_url, timeout=config.timeout, token=token)
        elif token:
            client.use_authentication(token)
        self.client = client

        self.translator = LocaleCodeTranslator(config.locale_mappings())
        self.directory = LocaleDirectory(self.client, self.translator, config.project)
        self.fetcher = UnitFetcher(self.client, config.project, config.component, config.query)
        self.cache = TranslationCache(
            self.fetcher,
            self.directory,
            max_age_seconds=config.max_age_seconds,
            initial_timestamp_ms=config.initial_timestamp_ms,
            clock=clock,
            retry_interval_seconds=config.retry_interval_seconds,
        )
        self._executor = BackgroundExecutor() if config.async_loading else InlineExecutor()

        self.log.info(
            "weblate_source.initialized",
            url=config.base_url,
            async_loading=config.async_loading,
            max_age_seconds=config.max_age_seconds,
        )

    @property
    def is_async(self) -> bool:
        return self._executor.is_async

    def messages(self, locale: Locale) -> Mapping[str, str]:
        """Cached messages of a locale, loading them when missing or stale.

        A locale whose last fetch failed is not requested again before the
        retry interval has passed.
        """
        if not self._executor.is_async:
            return self.cache.get(locale)

        entry = self.cache.peek(locale)
        if self.cache.needs_refresh(locale):
            self._executor.submit(self.cache.refresh, locale, False, key=("refresh", locale))
        return entry.messages if entry is not None else EMPTY_MESSAGES

    def resolve_all(self, locale: Locale | str) -> dict[str, str]:
        """All messages of a locale merged over the parent's (ours win)."""
        return self.get_all_properties(locale)

    def reload(self, *locales: Locale | str) -> list[Future]:
        """Fetch the changes of the given locales regardless of their age.

        The cache is only updated if the translations could be loaded.
        """
        self.log.info("weblate_source.reload", locales=[str(l) for l in locales])
        return [
            self._executor.submit(self.cache.refresh, as_locale(locale))
            for locale in locales
        ]

    def reload_directory(self) -> Future:
        """Reload the language listing without touching cached translations."""
        self.log.info("weblate_source.reload_directory")
        return self._executor.submit(self.directory.load, key="directory")

    def clear_cache(self) -> None:
        """Clear the cache for all locales and the language directory."""
        self.log.info("weblate_source.clear_cache")
        self.directory.invalidate()
        self.cache.clear()

    def remove_empty_cache_entries(self) -> int:
        """Drop cached locales without messages so they are fetched again."""
        return self.cache.remove_empty_entries()

    def register_locale_mapping(self, code: str, locale: Locale | str) -> None:
        """Map a Weblate code to a locale; used from the next directory load."""
        self.translator.register(code, as_locale(locale))

    def use_authentication(self, token: str) -> None:
        """Authenticate with a Weblate API token. Replaces all request hooks."""
        self.client.use_authentication(token)

    def available_locales(self) -> list[Locale]:
        """Locales the directory knows, loading it on first use."""
        return sorted(self.directory.snapshot(), key=str)

    def wait(self, timeout: float | None = None) -> None:
        """Block until queued background work is done (no-op when synchronous)."""
        self._executor.wait(timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self) -> str:
        return (
            f"<WeblateMessageSource(url='{self.config.base_url}', "
            f"project='{self.config.project}', component='{self.config.component}')>"
        )
