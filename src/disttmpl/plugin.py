"""Template processing plugin for the build.

TemplateProcessor runs in three phases, called by the build in this order:

- ``gather``: render each template and inject the result as a new file, or
  queue it for ``munge`` when replace is on and the output file already exists.
- ``munge``: render the queued templates over their existing files, in place.
- ``prune``: drop the original templates from the build when prune is on.

Templates see one built-in variable, ``dzil``, the Distribution being built,
plus any ``name=value`` pairs from the ``var`` option.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from .config import PluginConfig
from .dist import Distribution
from .engine import TemplateEngine
from .errors import RenderError
from .files import File, FileCollection, InMemoryFile

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = re.compile(r"\.tt$")
DIST_VARIABLE = "dzil"


class TemplateProcessor:
    def __init__(
        self,
        distribution: Distribution,
        config: Optional[PluginConfig] = None,
        engine: Optional[TemplateEngine] = None,
    ) -> None:
        self.distribution = distribution
        self.config = config or PluginConfig()
        self._engine = engine
        self._variables: Optional[Dict[str, Any]] = None
        self._munge_list: List[Tuple[File, File]] = []
        self._prune_list: List[File] = []

    @property
    def engine(self) -> TemplateEngine:
        if self._engine is None:
            self._engine = TemplateEngine(self.config.effective_engine_options())
        return self._engine

    @property
    def variables(self) -> Dict[str, Any]:
        """Variables passed to every template, computed once."""
        if self._variables is None:
            variables: Dict[str, Any] = {DIST_VARIABLE: self.distribution}
            for assignment in self.config.var:
                name, sep, value = assignment.partition("=")
                if not sep:
                    logger.warning(f"Ignoring var without '=': {assignment!r}")
                    continue
                variables[name.strip()] = value.strip()
            self._variables = variables
        return self._variables

    def output_name(self, template: File) -> str:
        return self.config.output_regex.apply(template.name)

    def _templates(self, collection: FileCollection) -> List[File]:
        if self.config.finder is not None:
            return list(collection.find_files(self.config.finder))
        return [f for f in collection.files if TEMPLATE_SUFFIX.search(f.name)]

    def _render(self, template: File) -> str:
        return self.engine.render(template.content, self.variables, name=template.name)

    @property
    def pending_munge(self) -> Tuple[Tuple[File, File], ...]:
        return tuple(self._munge_list)

    @property
    def pending_prune(self) -> Tuple[File, ...]:
        return tuple(self._prune_list)

    def _clear_queues(self) -> None:
        self._munge_list = []
        self._prune_list = []

    def gather(self, collection: FileCollection) -> None:
        """Render templates into new files, or queue them for munging.

        A failure aborts the build and empties both queues.
        """
        try:
            for template in self._templates(collection):
                filename = self.output_name(template)
                logger.info(f"processing {template.name} => {filename}")

                existing = collection.find_by_name(filename)
                if self.config.replace and existing is not None:
                    logger.debug(f"queueing {filename} for in-place replacement")
                    self._munge_list.append((template, existing))
                else:
                    collection.add_file(
                        InMemoryFile(name=filename, content=self._render(template))
                    )

                if self.config.prune:
                    self._prune_list.append(template)
        except Exception:
            self._clear_queues()
            raise

    def munge(self, collection: FileCollection) -> None:
        """Render queued templates over their existing files, then prune."""
        munge_list, self._munge_list = self._munge_list, []
        try:
            for template, file in munge_list:
                try:
                    output = self._render(template)
                except RenderError as e:
                    logger.error(f"failed to render {template.name}: {e.detail}")
                    raise
                file.content = output
        except Exception:
            self._clear_queues()
            raise
        self.prune(collection)

    def prune(self, collection: FileCollection) -> None:
        """Remove queued templates from the collection."""
        prune_list, self._prune_list = self._prune_list, []
        for template in prune_list:
            logger.info(f"pruning {template.name}")
            collection.remove(template)
