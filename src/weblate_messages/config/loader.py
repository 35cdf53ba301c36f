"""
Cargador de configuración con deep merge.

Orden de precedencia (menor a mayor):
1. Defaults (definidos en los schemas Pydantic)
2. Archivo YAML
3. Variables de entorno
4. Argumentos CLI

El merge es recursivo para preservar todas las claves en todos los niveles.
"""

import os
from pathlib import Path
from typing import Any

import yaml

from .schema import AppConfig

_TRUE_VALUES = {"1", "true", "yes", "on"}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge recursivo de diccionarios.

    Args:
        base: Diccionario base
        override: Diccionario cuyos valores sobrescriben la base

    Returns:
        Nuevo diccionario mergeado. Override gana en conflictos de hojas.

    Example:
        >>> deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"b": 99}, "e": 4})
        {'a': {'b': 99, 'c': 2}, 'e': 4}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(config_path: Path | None) -> dict[str, Any]:
    """Carga configuración desde archivo YAML.

    Args:
        config_path: Path al archivo YAML, o None para omitirlo

    Returns:
        Diccionario con la configuración, o dict vacío si no hay archivo
    """
    if not config_path:
        return {}

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data else {}


def load_env_overrides() -> dict[str, Any]:
    """Carga overrides desde variables de entorno.

    Variables soportadas:
        WEBLATE_URL: sobrescribe weblate.base_url
        WEBLATE_PROJECT: sobrescribe weblate.project
        WEBLATE_COMPONENT: sobrescribe weblate.component
        WEBLATE_QUERY: sobrescribe weblate.query
        WEBLATE_ASYNC: sobrescribe weblate.async_loading
        WEBLATE_MESSAGES_LOG_LEVEL: sobrescribe logging.level

    Returns:
        Diccionario con overrides de env vars
    """
    overrides: dict[str, Any] = {}

    if url := os.environ.get("WEBLATE_URL"):
        overrides.setdefault("weblate", {})["base_url"] = url

    if project := os.environ.get("WEBLATE_PROJECT"):
        overrides.setdefault("weblate", {})["project"] = project

    if component := os.environ.get("WEBLATE_COMPONENT"):
        overrides.setdefault("weblate", {})["component"] = component

    if query := os.environ.get("WEBLATE_QUERY"):
        overrides.setdefault("weblate", {})["query"] = query

    if async_loading := os.environ.get("WEBLATE_ASYNC"):
        overrides.setdefault("weblate", {})["async_loading"] = (
            async_loading.strip().lower() in _TRUE_VALUES
        )

    if log_level := os.environ.get("WEBLATE_MESSAGES_LOG_LEVEL"):
        overrides.setdefault("logging", {})["level"] = log_level.lower()

    return overrides


def apply_cli_overrides(config_dict: dict[str, Any], cli_args: dict[str, Any]) -> dict[str, Any]:
    """Aplica overrides desde argumentos CLI.

    Args:
        config_dict: Configuración base (ya mergeada con YAML y env)
        cli_args: Diccionario con argumentos de CLI

    Returns:
        Configuración con overrides de CLI aplicados
    """
    overrides: dict[str, Any] = {}

    for key in ("base_url", "project", "component", "query", "token"):
        if cli_args.get(key):
            overrides.setdefault("weblate", {})[key] = cli_args[key]

    if cli_args.get("bundle_dir"):
        overrides.setdefault("bundle", {})["directory"] = cli_args["bundle_dir"]

    if cli_args.get("log_level"):
        overrides.setdefault("logging", {})["level"] = cli_args["log_level"]

    if cli_args.get("log_file"):
        overrides.setdefault("logging", {})["file"] = cli_args["log_file"]

    return deep_merge(config_dict, overrides)


def load_config(
    config_path: Path | None = None,
    cli_args: dict[str, Any] | None = None,
) -> AppConfig:
    """Carga y valida la configuración completa.

    Args:
        config_path: Path al archivo YAML de configuración
        cli_args: Diccionario con argumentos de CLI

    Returns:
        AppConfig validado

    Raises:
        FileNotFoundError: Si config_path no existe
        ValidationError: Si la configuración final no es válida
    """
    cli_args = cli_args or {}

    yaml_config = load_yaml_config(config_path)
    merged = deep_merge(yaml_config, load_env_overrides())
    merged = apply_cli_overrides(merged, cli_args)

    # Pydantic aplica los defaults
    return AppConfig(**merged)
