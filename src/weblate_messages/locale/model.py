"""
Structured locale identifier.

A Locale addresses translations: language plus optional script, region,
variant and private-use variant. The private-use variant is the short
``@xvariant`` form used by Weblate codes (``en_GB@test``); it is rendered
with the ``x-lvariant-`` extension so it never compares equal to a regular
5-8 character variant.
"""

import re
from dataclasses import dataclass

_PRIVATE_USE_PREFIX = "lvariant"

_LANGUAGE_RE = re.compile(r"^[A-Za-z]{2,8}$")
_SCRIPT_RE = re.compile(r"^[A-Za-z]{4}$")
_REGION_RE = re.compile(r"^(?:[A-Za-z]{2}|[0-9]{3})$")
_VARIANT_RE = re.compile(r"^(?:[A-Za-z0-9-]{5,8}|[0-9][A-Za-z0-9]{3})$")
_PRIVATE_USE_RE = re.compile(r"^[A-Za-z0-9-]{1,8}$")


def _read_subtags(parts: list[str]) -> tuple[str, str, str] | None:
    """Split subtags into (script, region, variant).

    Script and region are taken whenever the remainder is still a valid
    variant; otherwise the remaining parts form one hyphenated variant.
    """
    for take_script in (True, False):
        for take_region in (True, False):
            rest = list(parts)
            script = region = ""
            if take_script:
                if not rest or not _SCRIPT_RE.match(rest[0]):
                    continue
                script = rest.pop(0)
            if take_region:
                if not rest or not _REGION_RE.match(rest[0]):
                    continue
                region = rest.pop(0)
            variant = "-".join(rest)
            if not variant or _VARIANT_RE.match(variant):
                return script, region, variant
    return None


@dataclass(frozen=True)
class Locale:
    """Structured locale. Equality is structural over all subtags.

    Subtags are normalised on construction: language lower case, script
    title case, region upper case, private-use variant lower case.
    """

    language: str
    script: str = ""
    region: str = ""
    variant: str = ""
    private_use: str = ""

    def __post_init__(self) -> None:
        if not self.language:
            raise ValueError("Locale requires a language")
        object.__setattr__(self, "language", self.language.lower())
        object.__setattr__(self, "script", self.script.title())
        object.__setattr__(self, "region", self.region.upper())
        object.__setattr__(self, "private_use", self.private_use.lower())

    @classmethod
    def from_tag(cls, tag: str) -> "Locale":
        """Parse a BCP-47 like tag such as ``de-DE`` or ``en_GB``.

        Both ``-`` and ``_`` are accepted as separators. The private-use
        variant is written ``x-lvariant-<value>``. Variants may contain
        hyphens (``de-ab-cd`` is variant ``ab-cd``), so ``str()`` output
        always parses back to an equal Locale.

        Raises:
            ValueError: If the tag cannot be parsed.
        """
        if not tag or not tag.strip():
            raise ValueError("Empty locale tag")

        parts = re.split(r"[-_]", tag.strip())
        language = parts[0]
        if not _LANGUAGE_RE.match(language):
            raise ValueError(f"Invalid language in locale tag: {tag!r}")

        rest = parts[1:]
        private_use = ""
        lowered = [p.lower() for p in rest]
        if "x" in lowered:
            index = lowered.index("x")
            private = rest[index + 1:]
            if private and private[0].lower() == _PRIVATE_USE_PREFIX:
                private = private[1:]
            private_use = "-".join(private)
            if not _PRIVATE_USE_RE.match(private_use):
                raise ValueError(f"Invalid private-use variant in locale tag: {tag!r}")
            rest = rest[:index]

        subtags = _read_subtags(rest)
        if subtags is None:
            raise ValueError(f"Unexpected subtags {'-'.join(rest)!r} in locale tag: {tag!r}")
        script, region, variant = subtags

        return cls(
            language=language,
            script=script,
            region=region,
            variant=variant,
            private_use=private_use,
        )

    @property
    def has_extended_subtags(self) -> bool:
        """True if script, variant or private-use variant is set."""
        return bool(self.script or self.variant or self.private_use)

    def language_only(self) -> "Locale":
        return Locale(self.language)

    def language_and_region(self) -> "Locale":
        return Locale(self.language, region=self.region)

    def fallback_chain(self) -> list["Locale"]:
        """Locales to layer for this one, least specific first.

        The bare language always comes first, then language+region when a
        region is present, then the full locale when it carries a script,
        variant or private-use variant.
        """
        chain = [self.language_only()]
        if self.region:
            chain.append(self.language_and_region())
        if self.has_extended_subtags:
            chain.append(self)
        result: list[Locale] = []
        for locale in chain:
            if locale not in result:
                result.append(locale)
        return result

    def file_suffix(self) -> str:
        """Underscore joined subtags, e.g. ``en_GB`` or ``sr_Latn_RS``."""
        parts = [self.language, self.script, self.region, self.variant]
        if self.private_use:
            parts.append(self.private_use)
        return "_".join(p for p in parts if p)

    def __str__(self) -> str:
        parts = [self.language, self.script, self.region, self.variant]
        tag = "-".join(p for p in parts if p)
        if self.private_use:
            tag += f"-x-{_PRIVATE_USE_PREFIX}-{self.private_use}"
        return tag


def as_locale(value: Locale | str) -> Locale:
    """Accept a Locale or a locale tag."""
    if isinstance(value, Locale):
        return value
    return Locale.from_tag(value)
