"""
Tests for the message sources.

Covers:
- MessageSource.get_message (formatting, defaults, parent chain)
- BundleMessageSource (YAML layering, flattening, errors)
- WeblateMessageSource (sync and async lookups, reloads, failures)
- InlineExecutor / BackgroundExecutor
"""

import threading
from pathlib import Path
from typing import Mapping

import httpx
import pytest

from conftest import BASE_URL, PROJECT, FakeClock, FakeWeblate
from weblate_messages.config import ConfigurationError, WeblateConfig
from weblate_messages.locale import Locale
from weblate_messages.remote import WeblateClient
from weblate_messages.sources import (
    BackgroundExecutor,
    BundleError,
    BundleMessageSource,
    InlineExecutor,
    MessageSource,
    NoSuchMessageError,
    WeblateMessageSource,
    flatten_messages,
)

EN = Locale("en")
EN_GB = Locale("en", region="GB")


class DictSource(MessageSource):
    """In-memory source for chaining tests."""

    def __init__(self, data: dict[Locale, dict[str, str]], parent: MessageSource | None = None):
        super().__init__(parent)
        self.data = data

    def messages(self, locale: Locale) -> Mapping[str, str]:
        return self.data.get(locale, {})


def write_bundle(directory: Path, name: str, content: str) -> None:
    (directory / name).write_text(content, encoding="utf-8")


@pytest.fixture
def source(config: WeblateConfig, client: WeblateClient, clock: FakeClock):
    s = WeblateMessageSource(config, client=client, clock=clock)
    yield s
    s.close()


# ── MessageSource ───────────────────────────────────────────────────────


class TestGetMessage:
    def test_resolves_own_key(self):
        source = DictSource({EN: {"greeting": "Hello"}})
        assert source.get_message("greeting", EN) == "Hello"
        assert source.get_message("greeting", "en") == "Hello"

    def test_formats_arguments(self):
        source = DictSource({EN: {"greeting": "Hello, {name}!"}})
        assert source.get_message("greeting", EN, name="Ada") == "Hello, Ada!"

    def test_bad_arguments_return_template(self):
        source = DictSource({EN: {"greeting": "Hello, {name}!"}})
        assert source.get_message("greeting", EN, other="x") == "Hello, {name}!"

    def test_default(self):
        source = DictSource({})
        assert source.get_message("missing", EN, default="Fallback") == "Fallback"
        assert source.get_message("missing", EN, default="Hi {name}", name="Ada") == "Hi Ada"

    def test_missing_key_raises(self):
        source = DictSource({})
        with pytest.raises(NoSuchMessageError) as exc_info:
            source.get_message("missing", EN)
        assert exc_info.value.key == "missing"
        assert exc_info.value.locale == EN
        assert "missing" in str(exc_info.value)

    def test_missing_key_is_a_key_error(self):
        with pytest.raises(KeyError):
            DictSource({}).get_message("missing", EN)

    def test_parent_chain(self):
        root = DictSource({EN: {"a": "root a", "b": "root b", "c": "root c"}})
        middle = DictSource({EN: {"b": "middle b"}}, parent=root)
        child = DictSource({EN: {"c": "child c"}}, parent=middle)

        assert child.get_message("a", EN) == "root a"
        assert child.get_message("b", EN) == "middle b"
        assert child.get_message("c", EN) == "child c"

    def test_resolve_does_not_ask_parent(self):
        parent = DictSource({EN: {"a": "parent"}})
        child = DictSource({}, parent=parent)
        assert child.resolve("a", EN) is None

    def test_get_all_properties_own_entries_win(self):
        parent = DictSource({EN: {"a": "parent a", "b": "parent b"}})
        child = DictSource({EN: {"a": "child a"}}, parent=parent)
        assert child.get_all_properties(EN) == {"a": "child a", "b": "parent b"}


# ── BundleMessageSource ─────────────────────────────────────────────────


class TestBundleMessageSource:
    def test_layers_files(self, tmp_path: Path):
        write_bundle(tmp_path, "messages.yaml", "a: default a\nb: default b\nc: default c\n")
        write_bundle(tmp_path, "messages_de.yaml", "b: de b\nc: de c\n")
        write_bundle(tmp_path, "messages_de_AT.yaml", "c: de_AT c\n")

        source = BundleMessageSource(tmp_path)
        assert dict(source.messages(Locale("de", region="AT"))) == {
            "a": "default a",
            "b": "de b",
            "c": "de_AT c",
        }
        assert source.get_message("c", "de") == "de c"
        assert source.get_message("c", "fr") == "default c"

    def test_bundle_names(self, tmp_path: Path):
        source = BundleMessageSource(tmp_path, basename="app")
        assert source.bundle_names(Locale("sr", script="Latn", region="RS")) == [
            "app",
            "app_sr",
            "app_sr_RS",
            "app_sr_Latn_RS",
        ]

    def test_yml_suffix(self, tmp_path: Path):
        write_bundle(tmp_path, "messages_en.yml", "greeting: Hi\n")
        assert BundleMessageSource(tmp_path).get_message("greeting", EN) == "Hi"

    def test_nested_keys_are_flattened(self, tmp_path: Path):
        write_bundle(tmp_path, "messages.yaml", "menu:\n  open: Open\n  close: Close\ncount: 3\n")
        messages = BundleMessageSource(tmp_path).messages(EN)
        assert dict(messages) == {"menu.open": "Open", "menu.close": "Close", "count": "3"}

    def test_missing_directory(self, tmp_path: Path):
        source = BundleMessageSource(tmp_path / "nope")
        assert dict(source.messages(EN)) == {}

    def test_empty_file(self, tmp_path: Path):
        write_bundle(tmp_path, "messages.yaml", "")
        assert dict(BundleMessageSource(tmp_path).messages(EN)) == {}

    def test_malformed_yaml(self, tmp_path: Path):
        write_bundle(tmp_path, "messages.yaml", "a: [unclosed\n")
        with pytest.raises(BundleError):
            BundleMessageSource(tmp_path).messages(EN)

    def test_non_mapping(self, tmp_path: Path):
        write_bundle(tmp_path, "messages.yaml", "- one\n- two\n")
        with pytest.raises(BundleError, match="mapping"):
            BundleMessageSource(tmp_path).messages(EN)

    def test_clear_cache_rereads_files(self, tmp_path: Path):
        write_bundle(tmp_path, "messages.yaml", "a: first\n")
        source = BundleMessageSource(tmp_path)
        assert source.get_message("a", EN) == "first"

        write_bundle(tmp_path, "messages.yaml", "a: second\n")
        assert source.get_message("a", EN) == "first"
        source.clear_cache()
        assert source.get_message("a", EN) == "second"

    def test_flatten_skips_none(self):
        assert flatten_messages({"a": None, "b": {"c": "x"}}) == {"b.c": "x"}


# ── WeblateMessageSource ────────────────────────────────────────────────


class TestWeblateMessageSource:
    def test_requires_remote_settings(self, client: WeblateClient):
        with pytest.raises(ConfigurationError, match="component"):
            WeblateMessageSource(WeblateConfig(base_url=BASE_URL, project=PROJECT), client=client)

    def test_resolves_message(self, source: WeblateMessageSource, weblate: FakeWeblate):
        weblate.add_language("en")
        weblate.set_units("en", {"key1": "Hello, {name}!"})

        assert not source.is_async
        assert source.get_message("key1", EN, name="World") == "Hello, World!"
        assert source.get_message("key1", EN_GB, name="World") == "Hello, World!"
        with pytest.raises(NoSuchMessageError):
            source.get_message("unknown", EN)

    def test_falls_back_to_parent(
        self, config: WeblateConfig, client: WeblateClient, weblate: FakeWeblate, tmp_path: Path
    ):
        write_bundle(tmp_path, "messages.yaml", "k1: bundled k1\nk2: bundled k2\n")
        weblate.add_language("en")
        weblate.set_units("en", {"k1": "remote k1"})

        with WeblateMessageSource(config, client=client, parent=BundleMessageSource(tmp_path)) as source:
            assert source.get_message("k2", EN) == "bundled k2"
            assert source.resolve_all(EN) == {"k1": "remote k1", "k2": "bundled k2"}

    def test_reload(self, source: WeblateMessageSource, weblate: FakeWeblate):
        weblate.add_language("en")
        weblate.set_units("en", {"key1": "old"})
        assert source.get_message("key1", EN) == "old"

        weblate.set_units("en", {"key1": "new"})
        futures = source.reload(EN, "en-GB")
        assert len(futures) == 2
        assert dict(futures[0].result()) == {"key1": "new"}
        assert source.get_message("key1", EN) == "new"

    def test_reload_failure_keeps_cache(self, source: WeblateMessageSource, weblate: FakeWeblate):
        weblate.add_language("en")
        weblate.set_units("en", {"key1": "old"})
        source.get_message("key1", EN)

        weblate.units_status["en"] = 500
        source.reload(EN)
        assert source.get_message("key1", EN) == "old"

    def test_outage_costs_one_request_per_retry_interval(
        self, config: WeblateConfig, client: WeblateClient, weblate: FakeWeblate, clock: FakeClock
    ):
        weblate.add_language("en")
        weblate.set_units("en", {"key1": "old"})
        config = config.model_copy(update={"retry_interval_seconds": 120})

        with WeblateMessageSource(config, client=client, clock=clock) as source:
            source.get_message("key1", EN)
            clock.advance(61)
            weblate.units_status["en"] = 500
            for _ in range(5):
                assert source.get_message("key1", EN) == "old"
                clock.advance(10)
            assert len(weblate.unit_requests("en")) == 2

    def test_clear_cache_reloads_directory(self, source: WeblateMessageSource, weblate: FakeWeblate):
        weblate.add_language("en")
        weblate.set_units("en", {"key1": "a"})
        source.get_message("key1", EN)

        source.clear_cache()
        source.get_message("key1", EN)
        assert len(weblate.language_requests()) == 2
        assert len(weblate.unit_requests("en")) == 2

    def test_directory_failure_is_isolated(self, source: WeblateMessageSource, weblate: FakeWeblate):
        weblate.add_language("en")
        weblate.set_units("en", {"key1": "remote"})
        weblate.languages_status = 500

        assert source.get_message("key1", EN, default="fallback") == "fallback"
        assert source.available_locales() == []

        weblate.languages_status = 200
        source.reload_directory().result()
        assert source.available_locales() == [EN]

        # the locale was cached as empty while the directory was down
        assert source.get_message("key1", EN, default="fallback") == "fallback"
        assert source.remove_empty_cache_entries() == 1
        assert source.get_message("key1", EN) == "remote"

    def test_register_locale_mapping(self, source: WeblateMessageSource, weblate: FakeWeblate):
        weblate.add_language("myalias")
        weblate.set_units("myalias", {"key1": "aliased"})

        source.register_locale_mapping("myalias", "de-DE-x-lvariant-alias")
        locale = Locale("de", region="DE", private_use="alias")
        assert source.get_message("key1", locale) == "aliased"
        assert source.available_locales() == [locale]

    def test_manual_mappings_from_config(
        self, config: WeblateConfig, client: WeblateClient, weblate: FakeWeblate
    ):
        weblate.add_language("german")
        weblate.set_units("german", {"key1": "Hallo"})
        config = config.model_copy(update={"code_to_locale": {"german": "de"}})

        with WeblateMessageSource(config, client=client) as source:
            assert source.get_message("key1", "de-AT") == "Hallo"

    def test_token_authentication(
        self, config: WeblateConfig, client: WeblateClient, weblate: FakeWeblate
    ):
        weblate.add_language("en")
        config = config.model_copy(update={"token": "secret"})

        with WeblateMessageSource(config, client=client) as source:
            source.available_locales()
        assert weblate.requests[0].headers["Authorization"] == "Token secret"

    def test_use_authentication(self, source: WeblateMessageSource, weblate: FakeWeblate):
        weblate.add_language("en")
        source.use_authentication("other")
        source.available_locales()
        assert weblate.requests[0].headers["Authorization"] == "Token other"

    def test_does_not_close_injected_client(self, config: WeblateConfig, client: WeblateClient):
        WeblateMessageSource(config, client=client).close()
        assert not client.http.is_closed

    def test_repr(self, source: WeblateMessageSource):
        assert "test-project" in repr(source)


class TestAsyncLoading:
    @pytest.fixture
    def async_source(self, config: WeblateConfig, client: WeblateClient, clock: FakeClock):
        s = WeblateMessageSource(
            config.model_copy(update={"async_loading": True}), client=client, clock=clock
        )
        yield s
        s.close()

    def test_first_lookup_returns_nothing(
        self, async_source: WeblateMessageSource, weblate: FakeWeblate
    ):
        weblate.add_language("en")
        weblate.set_units("en", {"key1": "Hello"})

        assert async_source.is_async
        assert async_source.get_message("key1", EN, default="") == ""
        async_source.wait(timeout=5)
        assert async_source.get_message("key1", EN) == "Hello"

    def test_stale_entry_served_while_refreshing(
        self, async_source: WeblateMessageSource, weblate: FakeWeblate, clock: FakeClock
    ):
        weblate.add_language("en")
        weblate.set_units("en", {"key1": "old"})
        async_source.messages(EN)
        async_source.wait(timeout=5)

        clock.advance(61)
        weblate.set_units("en", {"key1": "new"})
        assert async_source.get_message("key1", EN) == "old"
        async_source.wait(timeout=5)
        assert async_source.get_message("key1", EN) == "new"

    def test_reload_runs_in_background(
        self, async_source: WeblateMessageSource, weblate: FakeWeblate
    ):
        weblate.add_language("en")
        weblate.set_units("en", {"key1": "a"})
        [future] = async_source.reload(EN)
        assert dict(future.result(timeout=5)) == {"key1": "a"}

    def test_failed_refresh_is_not_rescheduled(
        self, async_source: WeblateMessageSource, weblate: FakeWeblate
    ):
        weblate.add_language("en")
        weblate.units_status["en"] = 500

        async_source.messages(EN)
        async_source.wait(timeout=5)
        for _ in range(5):
            assert async_source.get_message("key1", EN, default="none") == "none"
        async_source.wait(timeout=5)
        assert len(weblate.unit_requests("en")) == 1


# ── Executors ───────────────────────────────────────────────────────────


class TestExecutors:
    def test_inline_runs_immediately(self):
        executor = InlineExecutor()
        future = executor.submit(lambda a, b: a + b, 1, 2)
        assert future.done()
        assert future.result() == 3

    def test_inline_failure_is_kept_in_future(self):
        def fail():
            raise RuntimeError("boom")

        future = InlineExecutor().submit(fail)
        assert future.done()
        assert isinstance(future.exception(), RuntimeError)
        with pytest.raises(RuntimeError, match="boom"):
            future.result()

    def test_background_deduplicates_pending_keys(self):
        executor = BackgroundExecutor()
        release = threading.Event()
        try:
            first = executor.submit(release.wait, 5, key="k")
            second = executor.submit(release.wait, 5, key="k")
            other = executor.submit(release.wait, 5, key="other")
            assert first is second
            assert other is not first

            release.set()
            executor.wait(timeout=5)
            assert first.result() is True
            assert executor.submit(release.wait, 5, key="k") is not first
        finally:
            release.set()
            executor.shutdown()

    def test_background_failure_is_kept_in_future(self):
        def fail():
            raise RuntimeError("boom")

        executor = BackgroundExecutor()
        try:
            future = executor.submit(fail)
            executor.wait(timeout=5)
            assert isinstance(future.exception(), RuntimeError)
        finally:
            executor.shutdown()

    def test_background_runs_in_order(self):
        executor = BackgroundExecutor()
        seen: list[int] = []
        try:
            for i in range(5):
                executor.submit(seen.append, i)
            executor.wait(timeout=5)
            assert seen == [0, 1, 2, 3, 4]
        finally:
            executor.shutdown()


def test_source_with_real_transport_error(config: WeblateConfig):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = WeblateClient(BASE_URL, transport=httpx.MockTransport(refuse))
    with WeblateMessageSource(config, client=client) as source:
        assert source.get_message("key1", EN, default="offline") == "offline"
    client.close()
