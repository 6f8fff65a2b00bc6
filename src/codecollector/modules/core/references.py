"""Reference extraction: turn a parsed file into qualified-name guesses.

Explicit imports are taken verbatim. Capitalized names at usage sites are
classified against the file's imports, its own declarations and the
project's type index. A name that cannot be classified is assumed to live
in the file's own package; that fallback is a guess, not a resolution,
and the resolver is free to find nothing for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .parsing import ParsedFile


@dataclass(frozen=True)
class Reference:
    qualified_name: str
    line: int


class TypeIndex(Protocol):
    def has_type(self, qualified_name: str) -> bool: ...


# Common library and collection types that never point into the project.
EXCLUDED_NAMES = frozenset({
    "String",
    "Object",
    "List",
    "Map",
    "Set",
    "Collection",
    "Integer",
    "Long",
    "Double",
    "Float",
    "Boolean",
    "Character",
    "Byte",
    "Short",
    "ArrayList",
    "HashMap",
    "HashSet",
    "Optional",
})

PLATFORM_PREFIXES = ("java.", "javax.", "kotlin.", "kotlinx.", "android.", "androidx.")

# Names visible without an import, by dialect.
_IMPLICIT_TYPES = {
    "java": (
        "java.lang",
        frozenset({
            "AutoCloseable", "ArithmeticException", "Class", "ClassCastException",
            "CharSequence", "Cloneable", "Comparable", "Deprecated", "Enum", "Error",
            "Exception", "FunctionalInterface", "IllegalArgumentException",
            "IllegalStateException", "IndexOutOfBoundsException", "InterruptedException",
            "Iterable", "Math", "NullPointerException", "Number", "Override", "Process",
            "Record", "Runnable", "Runtime", "RuntimeException", "SafeVarargs",
            "StringBuilder", "StringBuffer", "SuppressWarnings", "System", "Thread",
            "ThreadLocal", "Throwable", "UnsupportedOperationException", "Void",
        }),
    ),
    "kotlin": (
        "kotlin",
        frozenset({
            "Annotation", "Any", "Array", "Boolean", "BooleanArray", "Byte", "ByteArray",
            "Char", "CharArray", "CharSequence", "Comparable", "Comparator", "Deprecated",
            "DoubleArray", "Enum", "Error", "Exception", "FloatArray", "Function",
            "IllegalArgumentException", "IllegalStateException", "IndexOutOfBoundsException",
            "Int", "IntArray", "Iterable", "JvmField", "JvmName", "JvmOverloads", "JvmStatic",
            "Lazy", "LongArray", "MutableCollection", "MutableList", "MutableMap",
            "MutableSet", "NoSuchElementException", "Nothing", "NullPointerException",
            "Number", "Pair", "Regex", "Result", "RuntimeException", "Sequence", "ShortArray",
            "StringBuilder", "Suppress", "Synchronized", "Throwable", "Throws", "Transient",
            "Triple", "Unit", "UnsupportedOperationException", "Volatile",
        }),
    ),
}


def is_platform_name(qualified_name: str) -> bool:
    return qualified_name.startswith(PLATFORM_PREFIXES)


def should_include(qualified_name: str, current_package: str) -> bool:
    """Keep same-package siblings, and anything outside the platform namespaces."""
    prefix = f"{current_package}."
    if qualified_name.startswith(prefix) and "." not in qualified_name[len(prefix):]:
        return True
    return not is_platform_name(qualified_name)


def _is_candidate_name(name: str) -> bool:
    return bool(name) and name[0].isupper() and name not in EXCLUDED_NAMES


class _Classifier:
    """Maps simple names used in one file to qualified names."""

    def __init__(self, parsed: ParsedFile, index: TypeIndex | None) -> None:
        self.package = parsed.package
        self.index = index
        self.imported: dict[str, str] = {}
        self.wildcards: list[str] = []
        for decl in parsed.imports:
            if decl.wildcard:
                self.wildcards.append(decl.name)
            elif decl.simple_name:
                self.imported.setdefault(decl.simple_name, decl.name)

        self.local: dict[str, str] = {}
        for declared in parsed.declarations:
            simple = declared.rsplit(".", 1)[-1]
            qualified = f"{self.package}.{declared}" if self.package else declared
            self.local.setdefault(simple, qualified)

        self.implicit = _IMPLICIT_TYPES.get(parsed.dialect)

    def _indexed(self, qualified_name: str) -> bool:
        return self.index is not None and self.index.has_type(qualified_name)

    def classify(self, name: str) -> str | None:
        if name in self.imported:
            return self.imported[name]
        if name in self.local:
            return self.local[name]
        if self.package and self._indexed(f"{self.package}.{name}"):
            return f"{self.package}.{name}"
        for package in self.wildcards:
            if self._indexed(f"{package}.{name}"):
                return f"{package}.{name}"
        if self.implicit is not None and name in self.implicit[1]:
            return f"{self.implicit[0]}.{name}"
        if not self.package and self._indexed(name):
            return name
        return None


def extract_references(parsed: ParsedFile, index: TypeIndex | None = None) -> list[Reference]:
    """
    Ordered, de-duplicated references of one parsed file.

    Args:
        parsed: Output of a SourceParser
        index: Type index used to classify simple names (optional)

    Returns:
        Imports first (verbatim), then usage-site references in source order
    """
    references: list[Reference] = []
    seen: set[tuple[str, int]] = set()

    def add(name: str, line: int) -> None:
        key = (name, line)
        if key not in seen:
            seen.add(key)
            references.append(Reference(name, line))

    for decl in parsed.imports:
        add(decl.name, decl.line)

    classifier = _Classifier(parsed, index)
    for usage in parsed.usages:
        if "." in usage.name:
            # Written fully qualified in source.
            qualified = usage.name
        else:
            if not _is_candidate_name(usage.name):
                continue
            qualified = classifier.classify(usage.name)
            if qualified is None:
                if not parsed.package:
                    continue
                qualified = f"{parsed.package}.{usage.name}"
        if should_include(qualified, parsed.package):
            add(qualified, usage.line)

    return references
