"""Distribution metadata exposed to templates as ``dzil``."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from packaging.version import InvalidVersion, Version
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError


class Distribution(BaseModel):
    """Metadata about the distribution being built."""

    name: str = Field(description="Distribution name, e.g. 'Foo-Bar'")
    version: str = Field(default="0.0.0", description="PEP 440 version string")
    abstract: Optional[str] = Field(
        default=None, description="One-line summary of the distribution"
    )
    authors: List[str] = Field(default_factory=list)
    license: Optional[str] = None
    # free-form values for templates, e.g. a copyright year
    stash: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def _check_version(cls, value: Any) -> str:
        value = str(value)
        try:
            Version(value)
        except InvalidVersion as e:
            raise ValueError(f"invalid version {value!r}") from e
        return value


def _read_pyproject(path: Path) -> Dict[str, Any]:
    with path.open("rb") as fp:
        return tomllib.load(fp)


def _project_metadata(doc: Dict[str, Any]) -> Dict[str, Any]:
    project = doc.get("project", {})
    if not isinstance(project, dict):
        return {}
    meta: Dict[str, Any] = {}
    for key in ("name", "version"):
        if isinstance(project.get(key), str):
            meta[key] = project[key]
    if isinstance(project.get("description"), str):
        meta["abstract"] = project["description"]
    authors = project.get("authors", [])
    if isinstance(authors, list):
        meta["authors"] = [
            a["name"] for a in authors if isinstance(a, dict) and "name" in a
        ]
    license_ = project.get("license")
    if isinstance(license_, str):
        meta["license"] = license_
    elif isinstance(license_, dict) and isinstance(license_.get("text"), str):
        meta["license"] = license_["text"]
    return meta


def load_distribution(
    source_dir: Path, overrides: Optional[Mapping[str, Any]] = None
) -> Distribution:
    """Build the Distribution for a source tree.

    Reads ``[project]`` from ``pyproject.toml`` when the source tree has one,
    then applies ``overrides`` on top.
    """
    meta: Dict[str, Any] = {}
    pyproject_path = source_dir / "pyproject.toml"
    if pyproject_path.is_file():
        try:
            meta.update(_project_metadata(_read_pyproject(pyproject_path)))
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Failed to parse {pyproject_path}: {e}") from e
    meta.update({k: v for k, v in (overrides or {}).items() if v is not None})

    if not meta.get("name"):
        raise ConfigurationError(
            f"No distribution name: add [project] name to {pyproject_path} or pass --name"
        )
    try:
        return Distribution(**meta)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid distribution metadata: {e}") from e
