"""Shared fixtures: an in-memory Weblate served through httpx.MockTransport."""

import re
from urllib.parse import unquote

import httpx
import pytest

from weblate_messages.config.schema import WeblateConfig
from weblate_messages.remote.client import WeblateClient

BASE_URL = "http://weblate.test"
PROJECT = "test-project"
COMPONENT = "test-comp"

_UNITS_PATH = re.compile(rf"^/api/translations/{PROJECT}/{COMPONENT}/(?P<code>[^/]+)/units/$")


class FakeWeblate:
    """Minimal Weblate API: language listing and paginated units."""

    def __init__(self) -> None:
        self.languages: list[dict] = []
        self.languages_status = 200
        self.pages: dict[str, list[dict[str, str]]] = {}
        self.units_status: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    # ── Setup helpers ─────────────────────────────────────────────────

    def add_language(self, code: str, translated: int = 10) -> None:
        self.languages.append({"code": code, "name": code, "translated": translated, "total": 10})

    def set_units(self, code: str, *pages: dict[str, str]) -> None:
        """Serve the given pages (key -> text) for a code."""
        self.pages[code] = list(pages) or [{}]

    # ── Inspection helpers ────────────────────────────────────────────

    def language_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/languages/")]

    def unit_requests(self, code: str | None = None) -> list[httpx.Request]:
        result = []
        for r in self.requests:
            match = _UNITS_PATH.match(r.url.path)
            if match and (code is None or unquote(match.group("code")) == code):
                result.append(r)
        return result

    # ── Transport ─────────────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == f"/api/projects/{PROJECT}/languages/":
            if self.languages_status != 200:
                return httpx.Response(self.languages_status, json={"detail": "error"})
            return httpx.Response(200, json=self.languages)

        match = _UNITS_PATH.match(path)
        if match:
            code = unquote(match.group("code"))
            status = self.units_status.get(code, 200)
            if status != 200:
                return httpx.Response(status, json={"detail": "error"})
            pages = self.pages.get(code)
            if pages is None:
                return httpx.Response(404, json={"detail": "Not found."})
            return httpx.Response(200, json=self._page(request, code, pages))

        return httpx.Response(404, json={"detail": "Not found."})

    def _page(self, request: httpx.Request, code: str, pages: list[dict[str, str]]) -> dict:
        number = int(request.url.params.get("page", "1"))
        messages = pages[number - 1]
        next_url = None
        if number < len(pages):
            next_url = (
                f"{BASE_URL}/api/translations/{PROJECT}/{COMPONENT}/{code}/units/"
                f"?page={number + 1}&q=state%3A%3E%3Dtranslated"
            )
        return {
            "count": sum(len(p) for p in pages),
            "next": next_url,
            "previous": None,
            "results": [
                {"id": i, "context": key, "source": [key], "target": [text], "state": 20}
                for i, (key, text) in enumerate(messages.items(), start=1)
            ],
        }


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def weblate() -> FakeWeblate:
    return FakeWeblate()


@pytest.fixture
def client(weblate: FakeWeblate):
    c = WeblateClient(BASE_URL, transport=httpx.MockTransport(weblate.handler))
    yield c
    c.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> WeblateConfig:
    return WeblateConfig(
        base_url=BASE_URL,
        project=PROJECT,
        component=COMPONENT,
        token_env=None,
        max_age_seconds=60,
    )
