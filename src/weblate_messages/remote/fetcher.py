"""
Paginated loading of translation units.

Units of one language are listed by
``GET {base}/api/translations/{project}/{component}/{code}/units/?q={query}``.
Each page carries a ``next`` link which is followed verbatim until it is
null. With a ``since`` timestamp the query is narrowed to units added or
changed after it, so only the delta is transferred.
"""

from datetime import datetime, timezone
from urllib.parse import quote

import structlog
from pydantic import ValidationError

from .client import FetchFailed, WeblateClient
from .models import TranslationUnit, UnitsPage

logger = structlog.get_logger()

DEFAULT_QUERY = "state:>=translated"

# Weblate's search only has minute precision
SINCE_FORMAT = "%Y-%m-%dT%H:%MZ"


def format_since(since_ms: int) -> str:
    """Format epoch milliseconds as ``yyyy-MM-ddTHH:mmZ`` in UTC."""
    return datetime.fromtimestamp(since_ms / 1000, tz=timezone.utc).strftime(SINCE_FORMAT)


def build_query(query: str, since_ms: int = 0) -> str:
    """Append the 'added or changed since' clause when since_ms > 0."""
    if since_ms <= 0:
        return query
    ts = format_since(since_ms)
    return f"{query} AND (added:>={ts} OR changed:>={ts})"


class UnitFetcher:
    """Loads all translation units of a language, following pagination."""

    def __init__(
        self,
        client: WeblateClient,
        project: str,
        component: str,
        query: str = DEFAULT_QUERY,
    ):
        self.client = client
        self.project = project
        self.component = component
        self.query = query
        self.log = logger.bind(component="unit_fetcher")

    def units_url(self, code: str, query: str) -> str:
        path = "/".join(
            quote(segment, safe="")
            for segment in ("api", "translations", self.project, self.component, code, "units")
        )
        return f"{self.client.url(path)}/?q={quote(query, safe='')}"

    def fetch_units(
        self,
        code: str,
        query: str | None = None,
        since_ms: int = 0,
    ) -> list[TranslationUnit]:
        """Fetch the units of every page for one Weblate language code.

        Nothing is returned unless every page was loaded.

        Args:
            code: Weblate language code
            query: Search query, defaults to the fetcher's query
            since_ms: Only units added/changed since this epoch-ms timestamp
                (0 loads everything)

        Raises:
            FetchFailed: If any page can't be loaded or parsed.
        """
        url: str | None = self.units_url(code, build_query(query or self.query, since_ms))
        units: list[TranslationUnit] = []
        pages = 0

        while url:
            data = self.client.get_json(url)
            try:
                page = UnitsPage.model_validate(data)
            except ValidationError as e:
                raise FetchFailed(f"Unexpected units payload from {url}: {e}", url=url) from e

            units.extend(page.results)
            pages += 1
            url = page.next

        self.log.debug(
            "unit_fetcher.done",
            code=code,
            pages=pages,
            units=len(units),
            since_ms=since_ms,
        )
        return units

    def fetch_messages(self, code: str, since_ms: int = 0) -> dict[str, str]:
        """Fetch units and map their context to the first target string.

        Units without a context or without a target are skipped.

        Raises:
            FetchFailed: If any page can't be loaded or parsed.
        """
        messages: dict[str, str] = {}
        for unit in self.fetch_units(code, since_ms=since_ms):
            text = unit.text
            if unit.context and text is not None:
                messages[unit.context] = text
        return messages
