import os
from pathlib import Path

import pytest

from codecollector.modules.core.ignore import IgnoreRule
from codecollector.modules.core.workspace import (
    TEXT_SNIFF_BYTES,
    is_text_file,
    iter_directory_files,
    read_source,
    relative_path,
)


def _rels(paths, base: Path) -> list[str]:
    return [relative_path(p, base) for p in paths]


def test_relative_path_uses_forward_slashes(tmp_path: Path) -> None:
    target = tmp_path / "src" / "main" / "A.java"

    assert relative_path(target, tmp_path) == "src/main/A.java"


def test_relative_path_outside_base_is_absolute(tmp_path: Path) -> None:
    base = tmp_path / "project"
    base.mkdir()
    outside = tmp_path / "elsewhere" / "B.java"

    assert relative_path(outside, base) == Path(os.path.abspath(outside)).as_posix()


def test_is_text_file(tmp_path: Path) -> None:
    text = tmp_path / "a.txt"
    text.write_text("héllo\n", encoding="utf-8")
    nul = tmp_path / "b.bin"
    nul.write_bytes(b"abc\x00def")
    latin = tmp_path / "c.txt"
    latin.write_bytes("caf\xe9 au lait".encode("latin-1"))
    empty = tmp_path / "d.txt"
    empty.write_bytes(b"")

    assert is_text_file(text) is True
    assert is_text_file(nul) is False
    assert is_text_file(latin) is False
    assert is_text_file(empty) is True
    assert is_text_file(tmp_path / "missing.txt") is False


def test_multibyte_char_cut_by_sample_is_text(tmp_path: Path) -> None:
    path = tmp_path / "edge.txt"
    path.write_bytes(b"a" * (TEXT_SNIFF_BYTES - 1) + "é".encode("utf-8"))

    assert is_text_file(path) is True


def test_read_source_preserves_line_endings(tmp_path: Path) -> None:
    path = tmp_path / "crlf.java"
    path.write_bytes(b"class A {}\r\n\r\n")

    assert read_source(path) == "class A {}\r\n\r\n"
    assert read_source(tmp_path / "missing.java") is None


def test_iter_directory_files_order(tmp_path: Path) -> None:
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "z.txt").write_text("z")
    (tmp_path / "b" / "y.txt").write_text("y")
    (tmp_path / "m.txt").write_text("m")
    (tmp_path / "c.txt").write_text("c")

    files = list(iter_directory_files(tmp_path, tmp_path))

    assert _rels(files, tmp_path) == ["c.txt", "m.txt", "a/z.txt", "b/y.txt"]


def test_iter_directory_files_applies_rules(tmp_path: Path) -> None:
    (tmp_path / "build").mkdir()
    (tmp_path / "build" / "out.txt").write_text("x")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "A.java").write_text("class A {}")
    (tmp_path / "src" / "debug.log").write_text("x")
    rules = [IgnoreRule("build/", order=0), IgnoreRule("*.log", order=1)]

    files = list(iter_directory_files(tmp_path, tmp_path, rules))

    assert _rels(files, tmp_path) == ["src/A.java"]


def test_negation_reaches_into_excluded_directory(tmp_path: Path) -> None:
    (tmp_path / "build").mkdir()
    (tmp_path / "build" / "drop.txt").write_text("x")
    (tmp_path / "build" / "keep.txt").write_text("x")
    rules = [IgnoreRule("build/**", order=0), IgnoreRule("!build/keep.txt", order=1)]

    files = list(iter_directory_files(tmp_path, tmp_path, rules))

    assert _rels(files, tmp_path) == ["build/keep.txt"]


def test_rules_are_relative_to_base_not_root(tmp_path: Path) -> None:
    (tmp_path / "mod" / "build").mkdir(parents=True)
    (tmp_path / "mod" / "build" / "x.txt").write_text("x")
    (tmp_path / "mod" / "keep.txt").write_text("x")
    rules = [IgnoreRule("build/**")]

    files = list(iter_directory_files(tmp_path / "mod", tmp_path, rules))

    assert _rels(files, tmp_path) == ["mod/keep.txt", "mod/build/x.txt"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlink_cycle_terminates(tmp_path: Path) -> None:
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "A.java").write_text("class A {}")
    try:
        os.symlink(tmp_path, tmp_path / "pkg" / "loop", target_is_directory=True)
    except OSError:
        pytest.skip("cannot create symlinks here")

    files = list(iter_directory_files(tmp_path, tmp_path))

    assert _rels(files, tmp_path) == ["pkg/A.java"]
