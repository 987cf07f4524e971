from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from disttmpl.dist import Distribution, load_distribution
from disttmpl.errors import ConfigurationError
from disttmpl.files import (
    BinaryFile,
    InMemoryFile,
    InMemoryFileCollection,
    load_directory,
    write_directory,
)


def write_pyproject(root: Path, content: str) -> None:
    root.mkdir(parents=True, exist_ok=True)
    (root / "pyproject.toml").write_text(content)


def test_collection_lookup_add_remove() -> None:
    a = InMemoryFile(name="a", content="1")
    twin = InMemoryFile(name="b", content="1")
    collection = InMemoryFileCollection([a, twin])

    assert collection.find_by_name("a") is a
    assert collection.find_by_name("missing") is None

    with pytest.raises(ConfigurationError):
        collection.add_file(InMemoryFile(name="a"))

    # removal is by identity, not equal content
    collection.remove(InMemoryFile(name="b", content="1"))
    assert collection.names() == ["a", "b"]
    collection.remove(twin)
    assert collection.names() == ["a"]
    collection.remove(twin)
    assert collection.names() == ["a"]


def test_files_returns_a_copy() -> None:
    collection = InMemoryFileCollection([InMemoryFile(name="a")])
    collection.files.clear()
    assert collection.names() == ["a"]


def test_finder_globs() -> None:
    collection = InMemoryFileCollection(
        [InMemoryFile(name="lib/A.pm.tt"), InMemoryFile(name="js/v.js.tt")],
        finders={"All": ["*.tt"], "Lib": ["lib/*", "bin/*"]},
    )
    assert [f.name for f in collection.find_files("All")] == ["lib/A.pm.tt", "js/v.js.tt"]
    assert [f.name for f in collection.find_files("Lib")] == ["lib/A.pm.tt"]
    with pytest.raises(ConfigurationError, match="Unknown finder"):
        collection.find_files("Nope")


def test_directory_round_trip(tmp_path: Path) -> None:
    src = tmp_path / "src"
    (src / "lib").mkdir(parents=True)
    (src / "lib" / "Foo.pm.tt").write_text("package Foo;\n")
    (src / "README").write_text("readme\n")

    collection = load_directory(src, {"TT": ["*.tt"]})
    assert collection.names() == ["README", "lib/Foo.pm.tt"]
    assert collection.finders == {"TT": ["*.tt"]}

    collection.add_file(InMemoryFile(name="lib/Foo.pm", content="rendered\n"))
    out = tmp_path / "out"
    written = write_directory(collection, out)

    assert len(written) == 3
    assert (out / "lib" / "Foo.pm").read_text() == "rendered\n"
    assert (out / "README").read_text() == "readme\n"


def test_load_directory_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_directory(tmp_path / "missing")


def test_load_distribution_from_pyproject(tmp_path: Path) -> None:
    write_pyproject(
        tmp_path,
        """
[project]
name = "Foo-Bar"
version = "1.2.3"
description = "Does foo"
authors = [{ name = "Jane Doe", email = "jane@example.com" }]
license = { text = "MIT" }
""".lstrip(),
    )

    dist = load_distribution(tmp_path)

    assert dist.name == "Foo-Bar"
    assert dist.version == "1.2.3"
    assert dist.abstract == "Does foo"
    assert dist.authors == ["Jane Doe"]
    assert dist.license == "MIT"


def test_load_distribution_overrides(tmp_path: Path) -> None:
    write_pyproject(tmp_path, '[project]\nname = "Foo"\nversion = "1.0"\n')
    dist = load_distribution(tmp_path, {"version": "2.0", "name": None})
    assert (dist.name, dist.version) == ("Foo", "2.0")


def test_load_distribution_requires_name(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="name"):
        load_distribution(tmp_path)
    assert load_distribution(tmp_path, {"name": "X"}).version == "0.0.0"


def test_load_distribution_rejects_bad_metadata(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_distribution(tmp_path, {"name": "X", "version": "not a version"})
    write_pyproject(tmp_path, "[project\n")
    with pytest.raises(ConfigurationError, match="Failed to parse"):
        load_distribution(tmp_path, {"name": "X"})


def test_distribution_version_is_normalized_to_string() -> None:
    assert Distribution(name="X", version=1.5).version == "1.5"  # type: ignore[arg-type]


def test_directory_keeps_binary_files_and_line_endings(tmp_path: Path) -> None:
    src = tmp_path / "src"
    src.mkdir()
    png = b"\x89PNG\r\n\x1a\n\xff\xfe\x00"
    (src / "logo.png").write_bytes(png)
    (src / "Changes").write_bytes(b"line1\r\nline2\r\n")

    collection = load_directory(src)
    logo = collection.find_by_name("logo.png")
    assert isinstance(logo, BinaryFile)
    changes = collection.find_by_name("Changes")
    assert changes is not None and changes.content == "line1\r\nline2\r\n"

    out = tmp_path / "out"
    write_directory(collection, out)

    assert (out / "logo.png").read_bytes() == png
    assert (out / "Changes").read_bytes() == b"line1\r\nline2\r\n"


def test_binary_file_cannot_be_rendered_or_replaced() -> None:
    logo = BinaryFile(name="logo.png.tt", data=b"\xff")
    with pytest.raises(ConfigurationError, match="not UTF-8"):
        logo.content
    with pytest.raises(ConfigurationError, match="not UTF-8"):
        logo.content = "text"


def test_directory_skips_vcs_dirs(tmp_path: Path) -> None:
    src = tmp_path / "src"
    (src / ".git" / "objects").mkdir(parents=True)
    (src / ".git" / "objects" / "ab").write_bytes(b"\x78\x9c\xff")
    (src / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (src / ".gitignore").write_text("out/\n")

    collection = load_directory(src)

    assert collection.names() == [".gitignore"]


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_directory_keeps_file_modes(tmp_path: Path) -> None:
    src = tmp_path / "src"
    (src / "bin").mkdir(parents=True)
    script = src / "bin" / "run"
    script.write_text("#!/bin/sh\necho hi\n")
    script.chmod(0o755)

    out = tmp_path / "out"
    write_directory(load_directory(src), out)

    assert stat.S_IMODE((out / "bin" / "run").stat().st_mode) == 0o755
