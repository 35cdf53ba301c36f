"""
Message source interface.

A message source answers "which text belongs to this key in this locale".
Sources can be chained: a source that has no text for a key asks its
parent. get_message() is the lookup applications call; it walks the chain
and substitutes ``{name}`` placeholders.
"""

from abc import ABC, abstractmethod
from typing import Mapping

from ..locale.model import Locale, as_locale


class NoSuchMessageError(KeyError):
    """No source in the chain has a text for the key."""

    def __init__(self, key: str, locale: Locale):
        super().__init__(key)
        self.key = key
        self.locale = locale

    def __str__(self) -> str:
        return f"No message found under key '{self.key}' for locale '{self.locale}'"


class MessageSource(ABC):
    """Base class of all message sources."""

    def __init__(self, parent: "MessageSource | None" = None) -> None:
        self.parent = parent

    @abstractmethod
    def messages(self, locale: Locale) -> Mapping[str, str]:
        """All messages this source holds for a locale (without parents)."""

    def resolve(self, key: str, locale: Locale | str) -> str | None:
        """Text of ``key`` in this source, or None. Parents are not asked."""
        return self.messages(as_locale(locale)).get(key)

    def get_all_properties(self, locale: Locale | str) -> dict[str, str]:
        """Messages of this source merged over those of the parent chain.

        Keys of this source win over duplicate keys of the parents.
        """
        locale = as_locale(locale)
        result: dict[str, str] = {}
        if self.parent is not None:
            result.update(self.parent.get_all_properties(locale))
        result.update(self.messages(locale))
        return result

    def get_message(
        self,
        key: str,
        locale: Locale | str,
        default: str | None = None,
        **kwargs: object,
    ) -> str:
        """Resolve ``key`` along the parent chain and format it.

        Args:
            key: Message key
            locale: Locale or locale tag
            default: Text to use when no source has the key
            **kwargs: Format string arguments

        Raises:
            NoSuchMessageError: If no source has the key and no default
                is given.
        """
        locale = as_locale(locale)

        template = None
        source: MessageSource | None = self
        while source is not None and template is None:
            template = source.resolve(key, locale)
            source = source.parent

        if template is None:
            if default is None:
                raise NoSuchMessageError(key, locale)
            template = default

        if kwargs:
            try:
                return template.format(**kwargs)
            except (KeyError, IndexError, ValueError):
                return template
        return template
