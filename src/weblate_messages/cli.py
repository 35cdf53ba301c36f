"""
Command line interface for weblate-messages using Click.

Lets operators inspect what a configured source resolves: the language
directory, single keys, and complete message sets of a locale.
"""

import json
import sys
from pathlib import Path
from typing import Any, Callable

import click
import yaml
from pydantic import ValidationError

from . import __version__
from .config import AppConfig, ConfigurationError, WeblateConfig, load_config
from .locale.model import Locale
from .logging import configure_logging, get_logger
from .remote.client import WeblateClient
from .sources import (
    BundleError,
    BundleMessageSource,
    MessageSource,
    NoSuchMessageError,
    WeblateMessageSource,
)

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 3


def _common_options(fn: Callable) -> Callable:
    """Options shared by every command that talks to Weblate."""
    options = [
        click.option(
            "-c",
            "--config",
            type=click.Path(exists=True, path_type=Path),
            help="Path to the YAML configuration file",
        ),
        click.option("--base-url", help="Weblate base URL"),
        click.option("--project", help="Weblate project slug"),
        click.option("--component", help="Weblate component slug"),
        click.option("--token", help="Weblate API token (or WEBLATE_TOKEN env var)"),
        click.option(
            "--bundle-dir",
            type=click.Path(file_okay=False, path_type=Path),
            help="Directory with local YAML message bundles",
        ),
        click.option(
            "--log-level",
            type=click.Choice(["debug", "info", "warn", "error"]),
            help="Console log level",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _load_app_config(kwargs: dict[str, Any]) -> AppConfig:
    config_path = kwargs.pop("config", None)
    try:
        app_config = load_config(config_path=config_path, cli_args=kwargs)
    except (FileNotFoundError, ValidationError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    configure_logging(app_config.logging)
    get_logger(__name__).debug(
        "cli.config_loaded",
        config_file=str(config_path) if config_path else None,
        url=app_config.weblate.base_url,
        project=app_config.weblate.project,
    )
    return app_config


def _create_client(config: WeblateConfig) -> WeblateClient:
    return WeblateClient(config.base_url or "", timeout=config.timeout, token=config.resolve_token())


def _open_source(app_config: AppConfig) -> WeblateMessageSource:
    parent: MessageSource | None = None
    if app_config.bundle.directory:
        parent = BundleMessageSource(app_config.bundle.directory, app_config.bundle.basename)
    try:
        app_config.weblate.require_remote()
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    # Always wait for remote calls on the command line
    weblate_config = app_config.weblate.model_copy(update={"async_loading": False})
    return WeblateMessageSource(weblate_config, client=_create_client(weblate_config), parent=parent)


def _parse_locale(tag: str) -> Locale:
    try:
        return Locale.from_tag(tag)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--locale")


@click.group()
@click.version_option(version=__version__, prog_name="weblate-messages")
def main() -> None:
    """weblate-messages - Resolve application messages from Weblate.

    Texts are loaded from the Weblate REST API, cached per locale and
    layered language -> region -> variant, with optional local YAML
    bundles as fallback.
    """
    pass


@main.command()
@_common_options
def languages(**kwargs) -> None:
    """List the locales with translations and their Weblate codes."""
    app_config = _load_app_config(kwargs)
    source = _open_source(app_config)
    try:
        snapshot = source.directory.snapshot()
        if not snapshot:
            click.echo("No languages with translations found", err=True)
            sys.exit(EXIT_FAILED)
        for locale in sorted(snapshot, key=str):
            click.echo(f"{str(locale):<24} {snapshot[locale]}")
    finally:
        source.close()
        source.client.close()


@main.command()
@click.argument("key")
@click.option("-l", "--locale", "locale_tag", required=True, help="Locale tag, e.g. de-AT")
@_common_options
def resolve(key: str, locale_tag: str, **kwargs) -> None:
    """Print the message of KEY for a locale."""
    locale = _parse_locale(locale_tag)
    app_config = _load_app_config(kwargs)
    source = _open_source(app_config)
    try:
        text = source.get_message(key, locale)
    except NoSuchMessageError:
        click.echo(f"No message for '{key}' in {locale}", err=True)
        sys.exit(EXIT_FAILED)
    except BundleError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_FAILED)
    finally:
        source.close()
        source.client.close()

    click.echo(text)


@main.command()
@click.option("-l", "--locale", "locale_tag", required=True, help="Locale tag, e.g. de-AT")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    show_default=True,
    help="Output format",
)
@_common_options
def dump(locale_tag: str, output_format: str, **kwargs) -> None:
    """Print all messages of a locale (Weblate merged over local bundles)."""
    locale = _parse_locale(locale_tag)
    app_config = _load_app_config(kwargs)
    source = _open_source(app_config)
    try:
        messages = source.resolve_all(locale)
    except BundleError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_FAILED)
    finally:
        source.close()
        source.client.close()

    if output_format == "json":
        click.echo(json.dumps(messages, indent=2, ensure_ascii=False, sort_keys=True))
    else:
        click.echo(yaml.safe_dump(messages, allow_unicode=True, sort_keys=True), nl=False)


@main.command("validate-config")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to the configuration file to validate",
)
def validate_config(config: Path | None) -> None:
    """Validate a YAML configuration file."""
    try:
        app_config = load_config(config_path=config)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    except Exception as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(EXIT_FAILED)

    weblate = app_config.weblate
    click.echo("Valid configuration")
    click.echo(f"  URL: {weblate.base_url or '-'}")
    click.echo(f"  Project: {weblate.project or '-'}")
    click.echo(f"  Component: {weblate.component or '-'}")
    click.echo(f"  Query: {weblate.query}")
    click.echo(f"  Cache max age: {weblate.max_age_seconds}")
    click.echo(f"  Manual code mappings: {len(weblate.code_to_locale)}")
    click.echo(f"  Bundles: {app_config.bundle.directory or '-'}")
