"""disttmpl - process template files in a distribution build with Jinja."""

from .config import EngineOptions, PluginConfig, RenameRule, parse_output_regex
from .dist import Distribution, load_distribution
from .engine import TemplateEngine
from .errors import ConfigurationError, DistTemplateError, RenderError
from .files import InMemoryFile, InMemoryFileCollection
from .plugin import TemplateProcessor

__all__ = [
    "ConfigurationError",
    "DistTemplateError",
    "Distribution",
    "EngineOptions",
    "InMemoryFile",
    "InMemoryFileCollection",
    "PluginConfig",
    "RenameRule",
    "RenderError",
    "TemplateEngine",
    "TemplateProcessor",
    "load_distribution",
    "parse_output_regex",
]
