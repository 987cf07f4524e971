"""Build configuration file loading.

A build config is a YAML document with three optional sections:

    dist:       # overrides for the distribution metadata
      name: Foo-Bar
      version: 1.2.3
    finders:    # named file finders, as glob patterns on file names
      JavaScriptTTFiles: "public/js/*.js.tt"
    template:   # TemplateProcessor options, engine options in ALL CAPS
      finder: JavaScriptTTFiles
      replace: true
      prune: true
      var:
        - foo = 1
      TRIM: true
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..errors import ConfigurationError
from .options import PluginConfig


@dataclass(frozen=True)
class BuildConfig:
    """Everything read from a build config file."""

    dist: Dict[str, Any] = field(default_factory=dict)
    finders: Dict[str, List[str]] = field(default_factory=dict)
    template: PluginConfig = field(default_factory=PluginConfig)


def _section(data: Dict[str, Any], name: str, path: Path) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{path}: section '{name}' must be a mapping")
    return value


def _parse_finders(raw: Dict[str, Any], path: Path) -> Dict[str, List[str]]:
    finders: Dict[str, List[str]] = {}
    for name, patterns in raw.items():
        if isinstance(patterns, str):
            patterns = [patterns]
        if not isinstance(patterns, list) or not all(
            isinstance(p, str) for p in patterns
        ):
            raise ConfigurationError(
                f"{path}: finder '{name}' must be a glob or a list of globs"
            )
        finders[str(name)] = patterns
    return finders


def parse_build_config(data: Dict[str, Any], path: Path) -> BuildConfig:
    return BuildConfig(
        dist=_section(data, "dist", path),
        finders=_parse_finders(_section(data, "finders", path), path),
        template=PluginConfig.from_section(_section(data, "template", path)),
    )


def load_config(path: Path) -> BuildConfig:
    """Load a build config from a YAML file path."""
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return parse_build_config(data, path)
