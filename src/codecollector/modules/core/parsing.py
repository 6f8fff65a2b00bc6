"""Tree-sitter parsing of Java and Kotlin sources into reference material.

Each dialect walks its syntax tree once and records:
- the declared package
- import directives (with line, alias, wildcard and static flags)
- usage sites: type uses, call callees and member-access receivers
- declared type names, nested types as ``Outer.Inner``

Only syntax is inspected here. Turning a simple name into a qualified
name is the job of ``references.extract_references``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, Union

from tree_sitter import Language, Parser

logger = logging.getLogger(__name__)


DIALECT_BY_EXTENSION = {
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
}

_QUALIFIED_RE = re.compile(r"[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*")
_WS_RE = re.compile(r"\s+")


def detect_dialect(path: Union[str, Path]) -> str | None:
    """Dialect tag for a file name, or None for files no dialect handles."""
    return DIALECT_BY_EXTENSION.get(Path(path).suffix.lower())


@dataclass(frozen=True)
class ImportDecl:
    name: str
    line: int
    alias: str | None = None
    wildcard: bool = False
    static: bool = False

    @property
    def simple_name(self) -> str | None:
        """Name this import binds in the file, if it binds a type name."""
        if self.wildcard or self.static:
            return None
        return self.alias or self.name.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class Usage:
    """A name as written at a usage site; dotted when written qualified."""

    name: str
    line: int


@dataclass
class ParsedFile:
    path: str
    dialect: str
    package: str = ""
    imports: list[ImportDecl] = field(default_factory=list)
    usages: list[Usage] = field(default_factory=list)
    declarations: list[str] = field(default_factory=list)

    def qualified_declarations(self) -> list[str]:
        if not self.package:
            return list(self.declarations)
        return [f"{self.package}.{name}" for name in self.declarations]


class SourceParser(Protocol):
    """Parsing capability: None means the file's dialect is unsupported."""

    def parse(self, path: Union[str, Path], content: str) -> ParsedFile | None: ...


def _node_text(node: Any, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def _line(node: Any) -> int:
    return node.start_point[0] + 1


def _compact(text: str) -> str:
    return _WS_RE.sub("", text).replace("`", "")


class TreeSitterDialect:
    """Shared walk for one tree-sitter grammar; subclasses handle node types."""

    name = ""

    def __init__(self) -> None:
        self._parser: Any | None = None
        self._load_failed = False

    def _load_language(self) -> Any:
        raise NotImplementedError

    def _get_parser(self) -> Any | None:
        if self._parser is not None or self._load_failed:
            return self._parser
        try:
            lang = Language(self._load_language())
        except Exception as exc:
            logger.debug("tree-sitter grammar for %s unavailable: %s", self.name, exc)
            self._load_failed = True
            return None
        try:
            parser = Parser()
            parser.language = lang
        except Exception:
            try:
                parser = Parser(lang)
            except Exception as exc:
                logger.debug("Cannot build %s parser: %s", self.name, exc)
                self._load_failed = True
                return None
        self._parser = parser
        return parser

    @property
    def available(self) -> bool:
        return self._get_parser() is not None

    def parse(self, path: Union[str, Path], content: str) -> ParsedFile | None:
        parser = self._get_parser()
        if parser is None:
            return None
        source = content.encode("utf-8")
        try:
            tree = parser.parse(source)
        except Exception as exc:
            logger.debug("Failed to parse %s: %s", path, exc)
            return None

        result = ParsedFile(path=str(path), dialect=self.name)
        # Pre-order, source-ordered walk; each entry carries the enclosing type names.
        stack: list[tuple[Any, tuple[str, ...]]] = [(tree.root_node, ())]
        while stack:
            node, enclosing = stack.pop()
            children = self._visit(node, source, enclosing, result)
            if children is None:
                continue
            nodes, scope = children
            for child in reversed(nodes):
                stack.append((child, scope))
        return result

    def _visit(
        self,
        node: Any,
        source: bytes,
        enclosing: tuple[str, ...],
        result: ParsedFile,
    ) -> tuple[list[Any], tuple[str, ...]] | None:
        """Record what the node contributes; return the children to walk next."""
        raise NotImplementedError

    @staticmethod
    def _declared_name(node: Any, source: bytes, name_types: set[str]) -> str | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            for child in node.named_children:
                if child.type in name_types:
                    name_node = child
                    break
        if name_node is None:
            return None
        name = _compact(_node_text(name_node, source))
        return name or None


class JavaDialect(TreeSitterDialect):
    name = "java"

    DECLARATIONS = {
        "class_declaration",
        "interface_declaration",
        "enum_declaration",
        "record_declaration",
        "annotation_type_declaration",
    }

    def _load_language(self) -> Any:
        import tree_sitter_java

        return tree_sitter_java.language()

    def _visit(self, node, source, enclosing, result):
        node_type = node.type

        if node_type == "package_declaration":
            match = re.search(r"package\s+([\w$.\s]+?)\s*;", _node_text(node, source))
            if match:
                result.package = _compact(match.group(1))
            return None

        if node_type == "import_declaration":
            decl = self._parse_import(_node_text(node, source), _line(node))
            if decl is not None:
                result.imports.append(decl)
            return None

        if node_type in self.DECLARATIONS:
            name = self._declared_name(node, source, {"identifier"})
            if name:
                scope = enclosing + (name,)
                result.declarations.append(".".join(scope))
                return list(node.children), scope
            return list(node.children), enclosing

        if node_type == "type_identifier":
            result.usages.append(Usage(_node_text(node, source), _line(node)))
            return None

        if node_type == "type_parameter":
            # The declared type variable itself is not a reference; its bounds are.
            return [c for c in node.children if c.type != "type_identifier"], enclosing

        if node_type == "scoped_type_identifier":
            text = _compact(_node_text(node, source))
            if text[:1].islower():
                result.usages.append(Usage(text, _line(node)))
            else:
                # Outer.Inner: the outer type carries the dependency.
                result.usages.append(Usage(text.split(".", 1)[0], _line(node)))
            return None

        if node_type in ("method_invocation", "field_access"):
            receiver = node.child_by_field_name("object")
            if receiver is not None and receiver.type == "identifier":
                result.usages.append(Usage(_node_text(receiver, source), _line(receiver)))
            return list(node.children), enclosing

        if node_type in ("marker_annotation", "annotation"):
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                text = _compact(_node_text(name_node, source))
                result.usages.append(Usage(text, _line(name_node)))
            return [c for c in node.children if c != name_node], enclosing

        return list(node.children), enclosing

    @staticmethod
    def _parse_import(text: str, line: int) -> ImportDecl | None:
        body = text.strip().rstrip(";").strip()
        if not body.startswith("import"):
            return None
        body = body[len("import"):].strip()
        static = False
        if re.match(r"static\s", body):
            static = True
            body = body[len("static"):].strip()
        name = _compact(body)
        wildcard = name.endswith(".*")
        if wildcard:
            name = name[:-2]
        if not _QUALIFIED_RE.fullmatch(name):
            return None
        if static and not wildcard:
            # import static a.b.C.member depends on the owning type a.b.C
            name = name.rpartition(".")[0] or name
        return ImportDecl(name=name, line=line, wildcard=wildcard and not static, static=static)


class KotlinDialect(TreeSitterDialect):
    name = "kotlin"

    DECLARATIONS = {"class_declaration", "object_declaration", "type_alias"}
    IDENTIFIERS = {"simple_identifier", "identifier"}
    NAME_TYPES = {"type_identifier", "simple_identifier", "identifier"}

    def _load_language(self) -> Any:
        import tree_sitter_kotlin

        return tree_sitter_kotlin.language()

    def _visit(self, node, source, enclosing, result):
        node_type = node.type

        if node_type == "package_header":
            text = _node_text(node, source).strip()
            body = text[len("package"):] if text.startswith("package") else text
            body = re.split(r"[;\n]", body.strip(), maxsplit=1)[0]
            result.package = _compact(body)
            return None

        if node.is_named and node_type in ("import_header", "import"):
            decl = self._parse_import(_node_text(node, source), _line(node))
            if decl is not None:
                result.imports.append(decl)
            return None

        if node_type in self.DECLARATIONS:
            name = self._declared_name(node, source, self.NAME_TYPES)
            if name:
                scope = enclosing + (name,)
                result.declarations.append(".".join(scope))
                return list(node.children), scope
            return list(node.children), enclosing

        if node_type == "user_type":
            segments: list[str] = []
            rest: list[Any] = []
            # Older grammars wrap each segment in simple_user_type.
            for child in node.named_children:
                parts = child.named_children if child.type == "simple_user_type" else [child]
                for part in parts:
                    if part.type in self.NAME_TYPES:
                        segments.append(_compact(_node_text(part, source)))
                    else:
                        rest.append(part)
            if segments:
                if segments[0][:1].islower() and len(segments) > 1:
                    result.usages.append(Usage(".".join(segments), _line(node)))
                else:
                    result.usages.append(Usage(segments[0], _line(node)))
            return rest, enclosing

        if node_type in ("call_expression", "navigation_expression"):
            named = node.named_children
            if named and named[0].type in self.IDENTIFIERS:
                head = named[0]
                result.usages.append(Usage(_node_text(head, source), _line(head)))
            return list(node.children), enclosing

        return list(node.children), enclosing

    @staticmethod
    def _parse_import(text: str, line: int) -> ImportDecl | None:
        body = text.strip().rstrip(";").strip()
        if not body.startswith("import"):
            return None
        body = body[len("import"):].strip()
        alias = None
        match = re.match(r"(.*?)\s+as\s+(\S+)$", body, re.S)
        if match:
            body = match.group(1)
            alias = match.group(2).strip("`")
        name = _compact(body)
        wildcard = name.endswith(".*")
        if wildcard:
            name = name[:-2]
        if not _QUALIFIED_RE.fullmatch(name):
            return None
        return ImportDecl(name=name, line=line, alias=alias, wildcard=wildcard)


class TreeSitterParser:
    """Default parsing capability, dispatching on the dialect tag."""

    def __init__(self) -> None:
        self._dialects: dict[str, TreeSitterDialect] = {
            "java": JavaDialect(),
            "kotlin": KotlinDialect(),
        }

    def parse(self, path: Union[str, Path], content: str) -> ParsedFile | None:
        dialect = detect_dialect(path)
        if dialect is None:
            return None
        return self._dialects[dialect].parse(path, content)
