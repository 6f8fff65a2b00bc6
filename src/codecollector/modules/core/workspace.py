"""
File-system helpers shared by every collection mode.

Provides:
- canonical_path() / relative_path() for visited-set keys and headers
- is_text_file() binary sniffing on the leading bytes of a file
- read_source() tolerant file reading
- iter_directory_files() deterministic, cycle-safe directory expansion
  with optional ignore-rule filtering
"""

from __future__ import annotations

import codecs
import logging
import os
from pathlib import Path
from typing import Iterator, Sequence, Union

from .ignore import CompiledRules, IgnoreRule, can_prune_directories, compile_rules, is_ignored

logger = logging.getLogger(__name__)

TEXT_SNIFF_BYTES = 1024


def canonical_path(path: Union[str, Path]) -> str:
    return os.path.realpath(os.fspath(path))


def relative_path(path: Union[str, Path], base: Union[str, Path, None]) -> str:
    """Project-relative path with forward slashes.

    Files outside the base directory keep their absolute path.
    """
    abs_path = os.path.abspath(os.fspath(path))
    if base is None:
        return Path(abs_path).as_posix()

    # Lexical paths first so symlinked files keep their in-project name.
    candidates = (
        (abs_path, os.path.abspath(os.fspath(base))),
        (canonical_path(path), canonical_path(base)),
    )
    for file_path, base_path in candidates:
        if file_path == base_path:
            return Path(file_path).name
        try:
            rel = os.path.relpath(file_path, base_path)
        except ValueError:
            # Different drives on Windows.
            continue
        if rel != ".." and not rel.startswith(".." + os.sep):
            return rel.replace(os.sep, "/")
    return Path(abs_path).as_posix()


def is_text_file(path: Union[str, Path], sample_size: int = TEXT_SNIFF_BYTES) -> bool:
    """
    Heuristic text check on the first bytes of a file.

    Rejects when a NUL byte is present or the sample is not valid UTF-8.
    A multi-byte character cut off by the sample boundary is accepted.
    """
    try:
        with open(path, "rb") as f:
            sample = f.read(sample_size)
    except OSError as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return False

    if b"\x00" in sample:
        return False

    decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
    try:
        decoder.decode(sample, final=False)
    except UnicodeDecodeError:
        return False
    return True


def read_source(path: Union[str, Path]) -> str | None:
    """Read a file as UTF-8 with line endings preserved, or None if unreadable."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
            return f.read()
    except OSError as exc:
        logger.debug("Skipping unreadable file %s: %s", path, exc)
        return None


def _log_walk_error(exc: OSError) -> None:
    logger.debug("Skipping inaccessible directory %s: %s", exc.filename, exc)


def iter_directory_files(
    root: Union[str, Path],
    base: Union[str, Path],
    rules: Sequence[IgnoreRule] | CompiledRules | None = None,
) -> Iterator[Path]:
    """Iterate files under root in a stable order.

    Files of a directory come before its subdirectories, and both are
    sorted by name. Symlinked directories are followed once per canonical
    path, so link cycles terminate.

    Args:
        root: Directory to expand
        base: Project base directory, used for ignore-relative paths
        rules: Optional ignore rules; matching files and directories are skipped

    Yields:
        Paths of files under root (not canonicalized)
    """
    compiled = None
    if rules is not None:
        compiled = rules if isinstance(rules, CompiledRules) else compile_rules(rules)
    prune = compiled is not None and can_prune_directories(compiled)

    root_path = Path(root)
    seen_dirs = {canonical_path(root_path)}

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_log_walk_error, followlinks=True):
        kept = []
        for name in sorted(dirnames):
            full = os.path.join(dirpath, name)
            real = canonical_path(full)
            if real in seen_dirs:
                logger.debug("Skipping repeated directory %s", full)
                continue
            if prune and is_ignored(relative_path(full, base), True, compiled):
                continue
            seen_dirs.add(real)
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            file_path = Path(dirpath) / name
            if compiled is not None and is_ignored(relative_path(file_path, base), False, compiled):
                continue
            yield file_path
