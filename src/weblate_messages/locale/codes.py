"""
Translation between Weblate language codes and Locale objects.

Weblate names languages with codes like ``de``, ``en_GB``, ``sr_Latn_RS``,
``en_devel`` or ``en_GB@test``. Codes are decoded with a fixed grammar;
codes the grammar can't express (aliases such as ``myalias``) are
registered manually per translator instance.
"""

import re
from typing import Mapping

import structlog

from .model import Locale

logger = structlog.get_logger()

LOCALE_CODE_PATTERN = re.compile(
    r"^(?P<lang>[a-z]{2,3})"
    r"(?:_(?P<script>[a-z]{4}))?"
    r"(?:_(?P<region>[a-z]{2}))?"
    r"(?:_(?P<variant>[a-z0-9-]{5,8})|@(?P<xvariant>[a-z0-9-]{1,8}))?$",
    re.IGNORECASE,
)


class LocaleCodeError(ValueError):
    """Base error for codes that can't be turned into a Locale."""

    def __init__(self, message: str, code: str | None):
        super().__init__(message)
        self.code = code


class InvalidCodeFormat(LocaleCodeError):
    """The code does not match the Weblate language code grammar."""

    pass


class LocaleCollision(LocaleCodeError):
    """The code decodes to a Locale already bound to another code."""

    def __init__(self, code: str, locale: Locale, existing_code: str):
        super().__init__(
            f"Locale {locale} derived from code {code!r} is already "
            f"registered for code {existing_code!r}",
            code,
        )
        self.locale = locale
        self.existing_code = existing_code


def parse_locale_code(code: str | None) -> Locale:
    """Decode a Weblate code with the grammar alone.

    Raises:
        InvalidCodeFormat: If the code is None or does not match.
    """
    if code is None:
        raise InvalidCodeFormat("No code given", code)

    match = LOCALE_CODE_PATTERN.match(code)
    if not match:
        raise InvalidCodeFormat(f"Invalid Weblate language code: {code!r}", code)

    return Locale(
        language=match.group("lang"),
        script=match.group("script") or "",
        region=match.group("region") or "",
        variant=match.group("variant") or "",
        # @xvariant may be shorter than a regular variant
        private_use=match.group("xvariant") or "",
    )


class LocaleCodeTranslator:
    """Decodes Weblate codes into Locales, honouring manual registrations.

    Manual registrations are owned by the instance and checked before the
    grammar. A grammar-derived Locale that is already bound to a different
    code is rejected, so the first binding always wins.
    """

    def __init__(self, manual_mappings: Mapping[str, Locale] | None = None) -> None:
        self._manual: dict[str, Locale] = dict(manual_mappings or {})
        self.log = logger.bind(component="locale_codes")

    @property
    def manual_mappings(self) -> dict[str, Locale]:
        return dict(self._manual)

    def register(self, code: str, locale: Locale) -> None:
        """Register a manual code -> Locale mapping."""
        if not code:
            raise ValueError("code must not be empty")
        self._manual[code] = locale

    def code_for(self, locale: Locale) -> str | None:
        """Return the manually registered code of a Locale, if any."""
        for code, registered in self._manual.items():
            if registered == locale:
                return code
        return None

    def decode(self, code: str, bound: Mapping[Locale, str] | None = None) -> Locale:
        """Decode ``code`` into a Locale.

        Args:
            code: Weblate language code.
            bound: Locale -> code bindings already made by the caller
                (e.g. earlier entries of the same language listing).

        Raises:
            InvalidCodeFormat: If the code matches neither a manual mapping
                nor the grammar.
            LocaleCollision: If the derived Locale is bound to another code.
        """
        if code in self._manual:
            return self._manual[code]

        locale = parse_locale_code(code)

        existing = self.code_for(locale)
        if existing is None and bound:
            existing = bound.get(locale)
        if existing is not None and existing != code:
            raise LocaleCollision(code, locale, existing)

        self.log.debug("locale_codes.derived", code=code, locale=str(locale))
        return locale

    def try_decode(self, code: str, bound: Mapping[Locale, str] | None = None) -> Locale | None:
        """Like decode(), but logs a warning and returns None on failure."""
        try:
            return self.decode(code, bound)
        except InvalidCodeFormat:
            self.log.warning(
                "locale_codes.invalid_code",
                code=code,
                hint="register it with register_locale_mapping()",
            )
        except LocaleCollision as e:
            self.log.warning(
                "locale_codes.collision",
                code=code,
                locale=str(e.locale),
                existing_code=e.existing_code,
            )
        return None
