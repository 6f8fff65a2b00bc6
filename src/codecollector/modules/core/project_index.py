"""Project model and declaration index used to resolve qualified names.

ProjectLayout discovers build modules (directories holding a Gradle or
Maven build file), their source roots and the module dependencies the
build files declare. ProjectIndex parses every Java/Kotlin file once and
maps fully-qualified type names to the files that declare them, scoped by
module visibility.
"""

from __future__ import annotations

import logging
import os
import re
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Union

from .ignore import IgnoreRule
from .parsing import ParsedFile, SourceParser, detect_dialect
from .workspace import canonical_path, iter_directory_files, read_source

logger = logging.getLogger(__name__)


BUILD_FILES = ("build.gradle", "build.gradle.kts", "pom.xml")

CONVENTIONAL_ROOTS = (
    ("src/main/java", "main"),
    ("src/main/kotlin", "main"),
    ("src/test/java", "test"),
    ("src/test/kotlin", "test"),
)

GENERATED_ROOTS = (
    "build/generated",
    "target/generated-sources",
    "target/generated-test-sources",
)

GENERATED_DIR_NAMES = {"generated", "generated-sources", "generated-test-sources"}
BUILD_OUTPUT_DIR_NAMES = {"build", "target"}

# Never part of any module's sources.
_SCAN_SKIP_RULES = (
    IgnoreRule(".git/", order=0),
    IgnoreRule(".gradle/", order=1),
    IgnoreRule(".idea/", order=2),
    IgnoreRule(".svn/", order=3),
    IgnoreRule("node_modules/", order=4),
)

_GRADLE_PROJECT_RE = re.compile(r"""project\(\s*(?:path\s*[:=]\s*)?["']:?([\w\-.:]+)["']""")
_GRADLE_ACCESSOR_RE = re.compile(r"\bprojects\.([\w.]+)")
_MAVEN_DEPENDENCY_RE = re.compile(
    r"<dependency>.*?<artifactId>\s*([^<\s]+)\s*</artifactId>.*?</dependency>", re.S
)
_MAVEN_ARTIFACT_RE = re.compile(r"<artifactId>\s*([^<\s]+)\s*</artifactId>")
_MAVEN_STRIP_RE = re.compile(r"<(parent|dependencies|dependencyManagement|build|plugins)>.*?</\1>", re.S)


@dataclass(frozen=True)
class SourceRoot:
    path: Path
    kind: str  # main, test or generated
    build_output: bool = False


@dataclass
class Module:
    name: str
    root: Path
    source_roots: list[SourceRoot] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    artifact_id: str | None = None


@dataclass(frozen=True)
class FileLocation:
    """Where a file sits in the project model."""

    module: str
    root: SourceRoot
    generated: bool
    build_output: bool
    module_root_count: int
    # A build/ or target/ directory below the source root, as in flat layouts.
    under_build_dir: bool = False

    @property
    def build_copy(self) -> bool:
        return self.build_output or self.under_build_dir


def _is_under(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Cannot read build file %s: %s", path, exc)
        return ""


class ProjectLayout:
    """Modules and source roots of a project rooted at ``base``."""

    def __init__(self, base: Path, modules: list[Module]) -> None:
        self.base = base
        self.modules = {m.name: m for m in modules}
        # Innermost module wins, so match longer roots first.
        self._by_root = sorted(
            ((canonical_path(m.root), m) for m in modules),
            key=lambda item: len(item[0]),
            reverse=True,
        )

    @classmethod
    def discover(cls, base: Union[str, Path]) -> "ProjectLayout":
        base_path = Path(canonical_path(base))
        module_dirs = [base_path]
        for dirpath, dirnames, filenames in os.walk(base_path):
            dirnames[:] = sorted(
                d for d in dirnames
                if not d.startswith(".") and d not in BUILD_OUTPUT_DIR_NAMES and d != "node_modules"
            )
            if Path(dirpath) != base_path and any(f in filenames for f in BUILD_FILES):
                module_dirs.append(Path(dirpath))

        modules = [cls._make_module(base_path, d) for d in module_dirs]
        cls._link_dependencies(modules)
        return cls(base_path, modules)

    @staticmethod
    def _module_name(base: Path, root: Path) -> str:
        rel = os.path.relpath(root, base)
        return "." if rel == "." else rel.replace(os.sep, "/")

    @classmethod
    def _make_module(cls, base: Path, root: Path) -> Module:
        module = Module(name=cls._module_name(base, root), root=root)

        for rel, kind in CONVENTIONAL_ROOTS:
            candidate = root / rel
            if candidate.is_dir():
                module.source_roots.append(SourceRoot(candidate, kind))
        if not module.source_roots:
            # Flat layout: the module directory is its own source root.
            module.source_roots.append(SourceRoot(root, "main"))

        for rel in GENERATED_ROOTS:
            candidate = root / rel
            if candidate.is_dir():
                module.source_roots.append(SourceRoot(candidate, "generated", build_output=True))

        pom = root / "pom.xml"
        if pom.is_file():
            stripped = _MAVEN_STRIP_RE.sub("", _read_text(pom))
            match = _MAVEN_ARTIFACT_RE.search(stripped)
            if match:
                module.artifact_id = match.group(1)
        return module

    @staticmethod
    def _declared_dependencies(module: Module) -> tuple[list[str], list[str]]:
        """Gradle project paths and Maven artifact ids referenced by the module."""
        gradle_paths: list[str] = []
        artifacts: list[str] = []
        for name in ("build.gradle", "build.gradle.kts"):
            build_file = module.root / name
            if build_file.is_file():
                text = _read_text(build_file)
                gradle_paths.extend(m.replace(":", "/") for m in _GRADLE_PROJECT_RE.findall(text))
                gradle_paths.extend(m.replace(".", "/") for m in _GRADLE_ACCESSOR_RE.findall(text))
        pom = module.root / "pom.xml"
        if pom.is_file():
            artifacts.extend(_MAVEN_DEPENDENCY_RE.findall(_read_text(pom)))
        return gradle_paths, artifacts

    @classmethod
    def _link_dependencies(cls, modules: list[Module]) -> None:
        by_name = {m.name: m for m in modules}
        by_artifact: dict[str, str] = {}
        for m in modules:
            by_artifact.setdefault(m.root.name, m.name)
            if m.artifact_id:
                by_artifact[m.artifact_id] = m.name

        for module in modules:
            gradle_paths, artifacts = cls._declared_dependencies(module)
            deps: list[str] = []
            for path in gradle_paths:
                if path in by_name and path != module.name:
                    deps.append(path)
            for artifact in artifacts:
                name = by_artifact.get(artifact)
                if name and name != module.name:
                    deps.append(name)
            module.dependencies = list(dict.fromkeys(deps))

    def module_for(self, path: Union[str, Path]) -> Module | None:
        real = canonical_path(path)
        for root, module in self._by_root:
            if _is_under(real, root):
                return module
        return None

    def scope_modules(self, module: Module) -> set[str]:
        """The module plus everything it depends on, transitively."""
        seen = {module.name}
        pending = list(module.dependencies)
        while pending:
            name = pending.pop()
            if name in seen or name not in self.modules:
                continue
            seen.add(name)
            pending.extend(self.modules[name].dependencies)
        return seen

    def location(self, path: Union[str, Path]) -> FileLocation | None:
        module = self.module_for(path)
        if module is None:
            return None
        real = canonical_path(path)
        best: SourceRoot | None = None
        best_len = -1
        for root in module.source_roots:
            root_str = canonical_path(root.path)
            if _is_under(real, root_str) and len(root_str) > best_len:
                best, best_len = root, len(root_str)
        if best is None:
            return None

        module_root = canonical_path(module.root)
        file_parts = Path(os.path.relpath(real, module_root)).parts[:-1]
        root_parts = Path(os.path.relpath(canonical_path(best.path), module_root)).parts
        inner_parts = Path(os.path.relpath(real, canonical_path(best.path))).parts[:-1]
        return FileLocation(
            module=module.name,
            root=best,
            generated=best.kind == "generated" or any(p in GENERATED_DIR_NAMES for p in file_parts),
            build_output=best.build_output or any(p in BUILD_OUTPUT_DIR_NAMES for p in root_parts),
            module_root_count=len(module.source_roots),
            under_build_dir=any(p in BUILD_OUTPUT_DIR_NAMES for p in inner_parts),
        )


class ProjectIndex:
    """Declaration index over a project's Java and Kotlin files.

    Doubles as a caching SourceParser so files are parsed once per
    collection call. The index is built lazily on first lookup.
    """

    def __init__(self, layout: ProjectLayout, parser: SourceParser) -> None:
        self.layout = layout
        self._parser = parser
        self._parsed: dict[str, ParsedFile | None] = {}
        self._declarations: dict[str, list[Path]] = defaultdict(list)
        self._built = False

    @classmethod
    def for_project(cls, base: Union[str, Path], parser: SourceParser) -> "ProjectIndex":
        return cls(ProjectLayout.discover(base), parser)

    def parse(self, path: Union[str, Path], content: str | None = None) -> ParsedFile | None:
        key = canonical_path(path)
        if key in self._parsed:
            return self._parsed[key]
        if content is None:
            content = read_source(path)
        parsed = None
        if content is not None:
            try:
                parsed = self._parser.parse(path, content)
            except Exception as exc:
                logger.debug("Parser failed on %s: %s", path, exc)
        self._parsed[key] = parsed
        return parsed

    def _iter_source_files(self) -> Iterable[Path]:
        for file_path in iter_directory_files(self.layout.base, self.layout.base, _SCAN_SKIP_RULES):
            if detect_dialect(file_path) is not None:
                yield file_path

    def build(self) -> None:
        if self._built:
            return
        self._built = True
        count = 0
        for file_path in self._iter_source_files():
            parsed = self.parse(file_path)
            if parsed is None:
                continue
            count += 1
            for qualified in parsed.qualified_declarations():
                self._declarations[qualified].append(file_path)
        logger.debug("Indexed %d files, %d declarations", count, len(self._declarations))

    def has_type(self, qualified_name: str) -> bool:
        self.build()
        return qualified_name in self._declarations

    def find_declarations(
        self,
        qualified_name: str,
        requesting_file: Union[str, Path],
        *,
        project_wide: bool = False,
    ) -> list[Path]:
        """Files declaring ``qualified_name``, optionally limited to module scope."""
        self.build()
        candidates = sorted(self._declarations.get(qualified_name, ()), key=str)
        if project_wide or not candidates:
            return candidates

        module = self.layout.module_for(requesting_file)
        if module is None:
            return []
        visible = self.layout.scope_modules(module)
        scoped = []
        for candidate in candidates:
            owner = self.layout.module_for(candidate)
            if owner is not None and owner.name in visible:
                scoped.append(candidate)
        return scoped

    def location(self, path: Union[str, Path]) -> FileLocation | None:
        return self.layout.location(path)

    def module_name(self, path: Union[str, Path]) -> str | None:
        module = self.layout.module_for(path)
        return module.name if module else None
