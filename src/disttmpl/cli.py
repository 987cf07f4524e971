"""CLI interface for disttmpl - render template files into a distribution."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
from rich.logging import RichHandler

from .config import BuildConfig, load_config
from .dist import load_distribution
from .errors import ConfigurationError, DistTemplateError
from .files import load_directory, write_directory
from .plugin import TemplateProcessor
from .utils import console, err_console


def _setup_logging(verbose: int) -> None:
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _parse_finders(values: Tuple[str, ...]) -> Dict[str, List[str]]:
    finders: Dict[str, List[str]] = {}
    for value in values:
        name, sep, pattern = value.partition("=")
        if not sep or not name.strip() or not pattern.strip():
            raise ConfigurationError(f"Malformed --finder {value!r}, expected NAME=GLOB")
        finders.setdefault(name.strip(), []).append(pattern.strip())
    return finders


def _dist_overrides(
    build_config: BuildConfig, name: Optional[str], version: Optional[str]
) -> Dict[str, object]:
    overrides: Dict[str, object] = dict(build_config.dist)
    if name:
        overrides["name"] = name
    if version:
        overrides["version"] = version
    return overrides


def _load_build_config(config_path: Optional[Path]) -> BuildConfig:
    if config_path is None:
        return BuildConfig()
    return load_config(config_path)


@click.group()
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug)")
def cli(verbose: int) -> None:
    """Render template files into a distribution."""
    _setup_logging(verbose)


@cli.command("build")
@click.argument(
    "source", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.argument("dest", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML build config with dist, finders and template sections",
)
@click.option("--name", default=None, help="Distribution name")
@click.option("--version", "version", default=None, help="Distribution version")
@click.option("--replace", is_flag=True, help="Replace existing files in place")
@click.option("--prune", is_flag=True, help="Drop template files from the output")
@click.option("--var", "var", multiple=True, help="Template variable NAME=VALUE")
@click.option("--finder", "finder", multiple=True, help="Named finder NAME=GLOB")
def build_cmd(
    source: Path,
    dest: Path,
    config_path: Optional[Path],
    name: Optional[str],
    version: Optional[str],
    replace: bool,
    prune: bool,
    var: Tuple[str, ...],
    finder: Tuple[str, ...],
) -> None:
    """
    Render the templates in SOURCE and write the built tree to DEST.

    Runs the gather, munge and prune phases over every file in SOURCE. By default
    each `*.tt` file is rendered to a file without the suffix.
    """
    try:
        build_config = _load_build_config(config_path)
        distribution = load_distribution(
            source, _dist_overrides(build_config, name, version)
        )

        updates: Dict[str, object] = {}
        if replace:
            updates["replace"] = True
        if prune:
            updates["prune"] = True
        if var:
            updates["var"] = [*build_config.template.var, *var]
        plugin_config = build_config.template.model_copy(update=updates)

        finders = {**build_config.finders, **_parse_finders(finder)}
        collection = load_directory(source, finders)

        plugin = TemplateProcessor(distribution, plugin_config)
        plugin.gather(collection)
        plugin.munge(collection)
        plugin.prune(collection)

        written = write_directory(collection, dest)
    except DistTemplateError as e:
        err_console.print(f"❌ {e}", style="bold red", markup=False)
        raise SystemExit(1)

    console.print(
        f"✓ Built {distribution.name} {distribution.version}: "
        f"{len(written)} files in {dest}",
        style="green",
    )


@cli.command("render")
@click.argument(
    "template", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML build config with dist and template sections",
)
@click.option("--name", default=None, help="Distribution name")
@click.option("--version", "version", default=None, help="Distribution version")
@click.option("--var", "var", multiple=True, help="Template variable NAME=VALUE")
def render_cmd(
    template: Path,
    config_path: Optional[Path],
    name: Optional[str],
    version: Optional[str],
    var: Tuple[str, ...],
) -> None:
    """
    Render a single TEMPLATE file to stdout.

    Distribution metadata is read from a pyproject.toml next to the template.
    """
    try:
        build_config = _load_build_config(config_path)
        distribution = load_distribution(
            template.parent, _dist_overrides(build_config, name, version)
        )
        plugin_config = build_config.template
        if var:
            plugin_config = plugin_config.model_copy(
                update={"var": [*plugin_config.var, *var]}
            )
        plugin = TemplateProcessor(distribution, plugin_config)
        output = plugin.engine.render(
            template.read_text(encoding="utf-8"), plugin.variables, name=template.name
        )
    except DistTemplateError as e:
        err_console.print(f"❌ {e}", style="bold red", markup=False)
        raise SystemExit(1)

    click.echo(output, nl=False)


if __name__ == "__main__":
    cli()
