"""
Pydantic models for the parts of the Weblate API payloads we read.

Unknown fields are ignored so newer Weblate versions keep working.
"""

from pydantic import BaseModel, Field


class LanguageStats(BaseModel):
    """One entry of ``/api/projects/{project}/languages/``."""

    code: str
    name: str | None = None
    translated: int = 0
    total: int | None = None
    translated_percent: float | None = None

    model_config = {"extra": "ignore"}

    @property
    def has_translations(self) -> bool:
        return self.translated > 0


class TranslationUnit(BaseModel):
    """One unit of ``/api/translations/.../units/``.

    ``context`` is the message key, ``target[0]`` the translated text.
    """

    context: str = ""
    target: list[str] = Field(default_factory=list)
    source: list[str] = Field(default_factory=list)
    state: int | None = Field(
        default=None,
        description="0 not translated, 10 needs editing, 20 translated, 30 approved, 100 read only",
    )
    id: int | None = None

    model_config = {"extra": "ignore"}

    @property
    def text(self) -> str | None:
        return self.target[0] if self.target else None


class UnitsPage(BaseModel):
    """A page of units with the link to the next page, if any."""

    count: int | None = None
    next: str | None = None
    previous: str | None = None
    results: list[TranslationUnit] = Field(default_factory=list)

    model_config = {"extra": "ignore"}
