import re
from pathlib import Path

import pytest

from codecollector.modules.core.parsing import ImportDecl, ParsedFile, Usage, detect_dialect

_PACKAGE_RE = re.compile(r"^\s*package\s+([\w.]+)")
_IMPORT_RE = re.compile(r"^\s*import\s+(static\s+)?([\w.]+?)(\.\*)?\s*;?\s*$")
_DECL_RE = re.compile(r"\b(?:class|interface|enum|object)\s+([A-Z]\w*)")
_NAME_RE = re.compile(r"\b[A-Za-z_][\w.]*")


class FakeParser:
    """Line-oriented parser for small Java/Kotlin snippets used in tests.

    Understands package and import lines, top-level type declarations and
    capitalized (or dotted) names anywhere else.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []

    def parse(self, path, content):
        dialect = detect_dialect(path)
        if dialect is None:
            return None
        self.calls.append(str(path))
        parsed = ParsedFile(path=str(path), dialect=dialect)
        for number, line in enumerate(content.splitlines(), start=1):
            match = _PACKAGE_RE.match(line)
            if match:
                parsed.package = match.group(1)
                rest = line[match.end():]
            else:
                match = _IMPORT_RE.match(line)
                if match:
                    static, name, wildcard = match.groups()
                    if static:
                        name = name.rpartition(".")[0]
                    parsed.imports.append(
                        ImportDecl(name=name, line=number, wildcard=bool(wildcard), static=bool(static))
                    )
                    continue
                rest = line

            declared = _DECL_RE.findall(rest)
            parsed.declarations.extend(declared)
            for token in _NAME_RE.findall(rest):
                if token in declared:
                    continue
                if token[0].isupper() or ("." in token and token.rsplit(".", 1)[-1][:1].isupper()):
                    parsed.usages.append(Usage(token, number))
        return parsed


@pytest.fixture
def fake_parser() -> FakeParser:
    return FakeParser()


def write(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="")
    return path
