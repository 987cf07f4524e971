"""Configuration management for disttmpl."""

from .loader import BuildConfig, load_config, parse_build_config
from .options import (
    DEFAULT_OUTPUT_REGEX,
    EngineOptions,
    PluginConfig,
    RenameRule,
    parse_output_regex,
)

__all__ = [
    "BuildConfig",
    "DEFAULT_OUTPUT_REGEX",
    "EngineOptions",
    "PluginConfig",
    "RenameRule",
    "load_config",
    "parse_build_config",
    "parse_output_regex",
]
