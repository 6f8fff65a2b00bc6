"""Closure traversal: decide which files enter a context bundle.

Three collection modes share one primitive, an explicit worklist plus a
visited set of canonical paths:

- SMART follows references: every accepted Java/Kotlin file is parsed,
  its references resolved to project files, and unvisited results are
  expanded depth-first (pre-order) before the next reference.
- DIRECT takes the selected files and directories as they are.
- ALL takes the whole project tree, filtered by the ignore rules.

All state (visited set, resolver cache, project index) belongs to a single
collect() call.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, Sequence, Union

from .ignore import CompiledRules, compile_rules, is_ignored
from .output_formats import FileContext
from .parsing import SourceParser, TreeSitterParser, detect_dialect
from .project_index import ProjectIndex
from .references import extract_references
from .resolver import SymbolResolver
from .settings import CollectorSettings, load_settings
from .workspace import (
    canonical_path,
    is_text_file,
    iter_directory_files,
    read_source,
    relative_path,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CollectionMode(str, Enum):
    SMART = "smart"
    DIRECT = "direct"
    ALL = "all"


class _CollectionRun:
    """Visited set and output owned by one collect() call."""

    def __init__(self, base: Path) -> None:
        self.base = base
        self.visited: set[str] = set()
        self.unreadable: set[str] = set()
        self.contexts: list[FileContext] = []

    def accept(self, path: PathLike, content: str, via: tuple[str, ...] = ()) -> None:
        key = canonical_path(path)
        self.visited.add(key)
        rel = relative_path(path, self.base)
        self.contexts.append(FileContext(os.path.abspath(path), content, rel))
        if via:
            logger.debug("Collected %s via %s", rel, " -> ".join(relative_path(v, self.base) for v in via))
        else:
            logger.debug("Collected %s", rel)


class ContextCollector:
    """Collects the files of a context bundle for one project.

    Args:
        project: Project base directory; relative seed paths are taken from here
        settings: Ignore rules and resolver options (loaded from the project if None)
        parser: Parsing capability (tree-sitter by default)
        index_factory: Builds the resolution capability for a call; receives
            the canonical base directory and the parser
    """

    def __init__(
        self,
        project: PathLike,
        settings: CollectorSettings | None = None,
        parser: SourceParser | None = None,
        index_factory: Callable[[Path, SourceParser], ProjectIndex] | None = None,
    ) -> None:
        self.project = Path(project)
        self.settings = settings if settings is not None else load_settings(self.project)
        self.parser = parser or TreeSitterParser()
        self._index_factory = index_factory or ProjectIndex.for_project

    def collect(
        self,
        paths: Sequence[PathLike] = (),
        mode: CollectionMode | str = CollectionMode.SMART,
    ) -> list[FileContext]:
        """
        Collect files for the given selection.

        Args:
            paths: Selected files and directories, in order (ignored for ALL)
            mode: SMART, DIRECT or ALL

        Returns:
            FileContext list in discovery order; empty if the project root is missing
        """
        mode = CollectionMode(mode)
        if not self.project.is_dir():
            logger.debug("Project root %s does not exist", self.project)
            return []

        base = Path(canonical_path(self.project))
        run = _CollectionRun(base)
        rules = compile_rules(self.settings.ignore_rules)

        if mode is CollectionMode.ALL:
            for file_path in iter_directory_files(base, base, rules):
                self._accept_text(file_path, run)
        elif mode is CollectionMode.DIRECT:
            for seed in paths:
                for file_path in self._expand_seed(seed, base, None):
                    self._accept_text(file_path, run)
        else:
            index = self._index_factory(base, self.parser)
            resolver = SymbolResolver(index, self.settings.resolver)
            resolver.clear_cache()
            for seed in paths:
                for file_path in self._expand_seed(seed, base, rules):
                    self._traverse(file_path, run, index, resolver)

        return run.contexts

    def collect_all(self) -> list[FileContext]:
        return self.collect((), CollectionMode.ALL)

    def _expand_seed(
        self,
        seed: PathLike,
        base: Path,
        rules: CompiledRules | None,
    ) -> Iterator[Path]:
        path = Path(seed)
        if not path.is_absolute():
            path = base / path
        if path.is_dir():
            yield from iter_directory_files(path, base, rules)
        elif path.is_file():
            if rules is not None and is_ignored(relative_path(path, base), False, rules):
                logger.debug("Selected file %s is ignored", path)
                return
            yield path
        else:
            logger.debug("Selected path %s does not exist", path)

    def _accept_text(self, path: Path, run: _CollectionRun) -> None:
        key = canonical_path(path)
        if key in run.visited or key in run.unreadable:
            return
        if not is_text_file(path):
            logger.debug("Skipping binary file %s", path)
            return
        content = read_source(path)
        if content is None:
            run.unreadable.add(key)
            return
        run.accept(path, content)

    def _traverse(
        self,
        seed: Path,
        run: _CollectionRun,
        index: ProjectIndex,
        resolver: SymbolResolver,
    ) -> None:
        if detect_dialect(seed) is None:
            # Selected directly but not a dialect file: opaque text, not scanned.
            self._accept_text(seed, run)
            return

        stack: list[tuple[Path, tuple[str, ...]]] = [(seed, ())]
        while stack:
            path, via = stack.pop()
            key = canonical_path(path)
            if key in run.visited or key in run.unreadable:
                continue

            content = read_source(path)
            if content is None:
                run.unreadable.add(key)
                continue
            run.accept(path, content, via)

            parsed = index.parse(path, content)
            if parsed is None:
                continue

            found: list[Path] = []
            for reference in extract_references(parsed, index):
                resolved = resolver.resolve(reference.qualified_name, path)
                if resolved is None or detect_dialect(resolved) is None:
                    continue
                if canonical_path(resolved) in run.visited:
                    continue
                found.append(resolved)

            # Reversed so the first reference is expanded first.
            for resolved in reversed(found):
                stack.append((resolved, via + (key,)))
