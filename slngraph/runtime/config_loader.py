"""Helpers for loading build configuration from TOML/JSON sources.

``load_build_config`` accepts:

* None -> default BuildConfig
* dict -> BuildConfig.from_dict
* Path / path-like string -> load .toml/.json from filesystem
* Inline JSON/TOML strings

A TOML file may hold the settings at top level or under ``[slngraph]``.
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from slngraph.config.schema import BuildConfig
from slngraph.parsers.base import ConfigurationError

logger = logging.getLogger("slngraph.runtime.config_loader")

ConfigSource = Union[str, Path, Dict[str, Any], None]

SECTION = "slngraph"


def _from_mapping(data: Dict[str, Any]) -> BuildConfig:
    if isinstance(data.get(SECTION), dict):
        data = data[SECTION]
    try:
        return BuildConfig.from_dict(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_build_config(source: ConfigSource) -> BuildConfig:
    """Load BuildConfig from various configuration sources.

    Args:
        source: One of:
            * None: returns BuildConfig()
            * dict: treated as already-parsed configuration mapping
            * str/Path: either a filesystem path to a .toml/.json file,
              or an inline TOML/JSON string (auto-detected)

    Returns:
        BuildConfig instance.

    Raises:
        ConfigurationError: The source cannot be parsed or fails validation.
    """
    if source is None:
        logger.debug("No config source provided; using default BuildConfig")
        return BuildConfig()

    if isinstance(source, dict):
        logger.debug("Loading BuildConfig from provided dict")
        return _from_mapping(source)

    if not isinstance(source, (str, Path)):
        raise TypeError(f"Unsupported config source type: {type(source)!r}")

    path = Path(source)
    fmt: Optional[str] = None
    if path.exists():
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Cannot read configuration {path}: {exc}") from exc
        suffix = path.suffix.lower()
        if suffix in {".toml", ".tml"}:
            fmt = "toml"
        elif suffix == ".json":
            fmt = "json"
        logger.info("Loading configuration from file: %s", path)
    else:
        text = str(source)
        logger.info("Loading configuration from inline string")

    if fmt is None:
        fmt = "json" if text.lstrip().startswith(("{", "[")) else "toml"

    try:
        data = json.loads(text) if fmt == "json" else tomllib.loads(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Cannot parse {fmt} configuration: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError("Top-level configuration must be a mapping")
    return _from_mapping(data)


__all__ = ["load_build_config"]
