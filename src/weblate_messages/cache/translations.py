"""
Cache por locale de las traducciones, con TTL y refresco incremental.

Cada Locale tiene un CacheEntry. La entrada guarda los mensajes de cada
capa de su cadena de fallback (idioma, idioma+región, locale completo) y
su composición, con la capa más específica al final.

Ciclo de vida de una entrada:
- ausente -> cargada: cada capa se pide con el timestamp inicial
- fresca: se devuelve sin cambios hasta que pasan max_age_seconds
- caducada o reload: cada capa se pide de nuevo con "cambiado desde el
  timestamp de la entrada" y se mezcla sobre el contenido anterior

Tras un fallo remoto el Locale no se vuelve a pedir hasta que pasa
retry_interval_seconds; mientras tanto se sirve lo que hubiera.

Las entradas nunca se mutan. Un refresco construye una entrada nueva y la
publica con una sola asignación: los lectores ven la vieja o la nueva.
"""

import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping

import structlog

from ..locale.model import Locale
from ..remote.client import FetchFailed
from ..remote.directory import LocaleDirectory
from ..remote.fetcher import UnitFetcher

logger = structlog.get_logger()

EMPTY_MESSAGES: Mapping[str, str] = MappingProxyType({})

# 30 minutos
DEFAULT_MAX_AGE_SECONDS = 1800

DEFAULT_RETRY_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class CacheEntry:
    """Snapshot inmutable de las traducciones de un Locale.

    Attributes:
        layers: Mensajes por capa, de la menos a la más específica.
        timestamp_ms: Momento en que empezó el refresco que la produjo.
        messages: Composición de todas las capas; gana la última.
    """

    layers: Mapping[Locale, Mapping[str, str]]
    timestamp_ms: int
    messages: Mapping[str, str] = field(init=False)

    def __post_init__(self) -> None:
        composed: dict[str, str] = {}
        for layer in self.layers.values():
            composed.update(layer)
        object.__setattr__(self, "messages", MappingProxyType(composed))

    @property
    def is_empty(self) -> bool:
        return not self.messages


class TranslationCache:
    """Carga y cachea los mensajes de cada Locale pedido.

    Uso:
        cache = TranslationCache(fetcher, directory, max_age_seconds=600)
        cache.get(Locale("de", region="AT"))["greeting"]
    """

    def __init__(
        self,
        fetcher: UnitFetcher,
        directory: LocaleDirectory,
        max_age_seconds: float | None = DEFAULT_MAX_AGE_SECONDS,
        initial_timestamp_ms: int = 0,
        clock: Callable[[], float] = time.time,
        retry_interval_seconds: float = DEFAULT_RETRY_INTERVAL_SECONDS,
    ):
        """Inicializa el cache.

        Args:
            fetcher: Carga las units de un código de Weblate
            directory: Resuelve Locales a códigos de Weblate
            max_age_seconds: Tiempo de vida de una entrada. None: no caduca.
            initial_timestamp_ms: Filtro 'cambiado desde' de la primera carga
            clock: Devuelve la hora actual en segundos
            retry_interval_seconds: Espera tras un fallo antes de volver a
                pedir el Locale (los reload forzados no esperan)
        """
        self.fetcher = fetcher
        self.directory = directory
        self.max_age_seconds = max_age_seconds
        self.initial_timestamp_ms = initial_timestamp_ms
        self.retry_interval_seconds = retry_interval_seconds
        self._clock = clock
        self._entries: dict[Locale, CacheEntry] = {}
        self._failures: dict[Locale, int] = {}
        self._generation = 0
        self._locks: dict[Locale, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self.log = logger.bind(component="translation_cache")

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def get(self, locale: Locale) -> Mapping[str, str]:
        """Mensajes de un Locale; los carga o refresca si hace falta."""
        entry = self._entries.get(locale)
        if entry is not None and not self._expired(entry):
            return entry.messages
        if self._backing_off(locale):
            return entry.messages if entry is not None else EMPTY_MESSAGES
        return self.refresh(locale, force=False)

    def peek(self, locale: Locale) -> CacheEntry | None:
        """Entrada actual de un Locale, sin ninguna llamada remota."""
        return self._entries.get(locale)

    def is_stale(self, locale: Locale) -> bool:
        """True si el Locale no tiene entrada o si la entrada caducó."""
        entry = self._entries.get(locale)
        return entry is None or self._expired(entry)

    def needs_refresh(self, locale: Locale) -> bool:
        """True si está caducado y no hay un fallo reciente para él."""
        return self.is_stale(locale) and not self._backing_off(locale)

    def locales(self) -> list[Locale]:
        return list(self._entries)

    def refresh(self, locale: Locale, force: bool = True) -> Mapping[str, str]:
        """Pide los cambios de un Locale y publica la entrada mezclada.

        Si una petición falla se mantiene la entrada anterior (no se guarda
        nada para un Locale que nunca se cargó) y se anota el fallo, para
        no reintentar antes de retry_interval_seconds. Si clear() se llama
        durante el refresco, el resultado se descarta.

        Args:
            locale: Locale a refrescar
            force: Si es False, no refresca cuando otro hilo ya lo hizo
                mientras esperábamos el lock, ni durante la espera tras un
                fallo.

        Returns:
            Los mensajes vigentes tras el refresco.
        """
        with self._lock_for(locale):
            entry = self._entries.get(locale)
            if not force:
                if entry is not None and not self._expired(entry):
                    return entry.messages
                if self._backing_off(locale):
                    return entry.messages if entry is not None else EMPTY_MESSAGES

            generation = self._generation
            started_ms = self.now_ms()
            try:
                layers = self._load_layers(locale, entry)
            except FetchFailed as e:
                self.log.warning(
                    "cache.refresh.failed",
                    locale=str(locale),
                    error=str(e),
                    status=e.status_code,
                    keeping_previous=entry is not None,
                    retry_in_seconds=self.retry_interval_seconds,
                )
                with self._locks_guard:
                    if generation == self._generation:
                        self._failures[locale] = started_ms
                return entry.messages if entry is not None else EMPTY_MESSAGES

            timestamp_ms = started_ms
            if entry is not None:
                timestamp_ms = max(timestamp_ms, entry.timestamp_ms)
            new_entry = CacheEntry(layers=MappingProxyType(layers), timestamp_ms=timestamp_ms)

            with self._locks_guard:
                if generation != self._generation:
                    # clear() durante el refresco: empezar de cero
                    self.log.debug("cache.refresh.discarded", locale=str(locale))
                    return new_entry.messages
                self._entries[locale] = new_entry
                self._failures.pop(locale, None)

            self.log.debug(
                "cache.refresh.done",
                locale=str(locale),
                delta=entry is not None,
                messages=len(new_entry.messages),
            )
            return new_entry.messages

    def clear(self) -> None:
        """Elimina todas las entradas; los refrescos en curso se descartan."""
        with self._locks_guard:
            self._generation += 1
            self._entries.clear()
            self._failures.clear()

    def remove_empty_entries(self) -> int:
        """Elimina las entradas sin ningún mensaje.

        Returns:
            Número de entradas eliminadas
        """
        with self._locks_guard:
            empty = [locale for locale, entry in self._entries.items() if entry.is_empty]
            for locale in empty:
                del self._entries[locale]
        if empty:
            self.log.info("cache.empty_entries_removed", count=len(empty))
        return len(empty)

    def _expired(self, entry: CacheEntry) -> bool:
        if self.max_age_seconds is None:
            return False
        return self.now_ms() - entry.timestamp_ms > self.max_age_seconds * 1000

    def _backing_off(self, locale: Locale) -> bool:
        failed_ms = self._failures.get(locale)
        if failed_ms is None:
            return False
        return self.now_ms() - failed_ms < self.retry_interval_seconds * 1000

    def _lock_for(self, locale: Locale) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(locale)
            if lock is None:
                lock = self._locks[locale] = threading.Lock()
            return lock

    def _load_layers(
        self,
        locale: Locale,
        entry: CacheEntry | None,
    ) -> dict[Locale, Mapping[str, str]]:
        """Pide cada capa de la cadena de fallback y la mezcla.

        Las capas que ya están en la entrada se piden como delta desde el
        timestamp de la entrada; las nuevas, desde el timestamp inicial.
        Las capas sin código de Weblate conservan lo que tenían.

        Raises:
            FetchFailed: Si alguna capa no se puede cargar.
        """
        layers: dict[Locale, Mapping[str, str]] = {}

        for layer in locale.fallback_chain():
            previous = entry.layers.get(layer) if entry is not None else None

            code = self.directory.get(layer)
            if code is None:
                self.log.debug("cache.no_code_for_locale", locale=str(layer))
                if previous is not None:
                    layers[layer] = previous
                continue

            since_ms = entry.timestamp_ms if previous is not None else self.initial_timestamp_ms
            changes = self.fetcher.fetch_messages(code, since_ms=since_ms)

            merged = dict(previous) if previous is not None else {}
            merged.update(changes)
            layers[layer] = MappingProxyType(merged)

        return layers
