"""Jinja rendering for template files."""

from __future__ import annotations

from typing import Any, Mapping, Optional

import jinja2

from .config import EngineOptions
from .errors import ConfigurationError, RenderError


class TemplateEngine:
    """Renders template text with a Jinja environment built from EngineOptions.

    Variables use ``[% ... %]`` by default so that templates stay readable
    next to the Jinja-style ``{% ... %}`` block tags.
    """

    def __init__(self, options: Optional[EngineOptions] = None) -> None:
        self.options = options or EngineOptions()
        self._env = self._build_environment(self.options)

    @staticmethod
    def _build_environment(options: EngineOptions) -> jinja2.Environment:
        starts = [options.START_TAG, options.BLOCK_START_TAG, options.COMMENT_START_TAG]
        if len(set(starts)) != len(starts):
            raise ConfigurationError(
                f"START_TAG, BLOCK_START_TAG and COMMENT_START_TAG must differ: {starts}"
            )
        if (options.PRE_PROCESS or options.POST_PROCESS) and not options.INCLUDE_PATH:
            raise ConfigurationError("PRE_PROCESS and POST_PROCESS require INCLUDE_PATH")

        loader = (
            jinja2.FileSystemLoader(options.INCLUDE_PATH)
            if options.INCLUDE_PATH
            else None
        )
        return jinja2.Environment(
            loader=loader,
            variable_start_string=options.START_TAG,
            variable_end_string=options.END_TAG,
            block_start_string=options.BLOCK_START_TAG,
            block_end_string=options.BLOCK_END_TAG,
            comment_start_string=options.COMMENT_START_TAG,
            comment_end_string=options.COMMENT_END_TAG,
            trim_blocks=options.POST_CHOMP,
            lstrip_blocks=options.PRE_CHOMP,
            undefined=jinja2.StrictUndefined if options.STRICT else jinja2.Undefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render(
        self, text: str, variables: Mapping[str, Any], name: Optional[str] = None
    ) -> str:
        """Render ``text`` against ``variables``.

        Raises:
            RenderError: on a syntax error, a missing include, an undefined
                variable in STRICT mode, or any exception raised while
                evaluating the template.
        """
        try:
            parts = [
                self._env.get_template(header).render(variables)
                for header in self.options.PRE_PROCESS
            ]
            parts.append(self._env.from_string(text).render(variables))
            parts.extend(
                self._env.get_template(footer).render(variables)
                for footer in self.options.POST_PROCESS
            )
        except jinja2.TemplateSyntaxError as e:
            raise RenderError(f"line {e.lineno}: {e.message}", template=name) from e
        except jinja2.TemplateNotFound as e:
            raise RenderError(f"template not found: {e.name}", template=name) from e
        except jinja2.TemplateError as e:
            raise RenderError(str(e), template=name) from e
        except Exception as e:
            raise RenderError(f"{type(e).__name__}: {e}", template=name) from e

        output = "".join(parts)
        if self.options.TRIM:
            output = output.strip()
        return output
