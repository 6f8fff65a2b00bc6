"""
Gitignore-style path filtering for collections.

Provides:
- IgnoreRule, one ordered pattern with an enabled flag
- compile_rules() to build (and memoize) a matcher for a rule set
- is_ignored() to decide whether a project-relative path is excluded

Rules follow .gitignore semantics via pathspec: later rules override
earlier ones, "!" re-includes, a trailing "/" matches directories only
and "**" crosses directory boundaries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Sequence

import pathspec
from pathspec.patterns import GitWildMatchPattern

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreRule:
    """One ignore pattern. Disabled rules stay in the list but never match."""

    pattern: str
    enabled: bool = True
    order: int = 0


@dataclass(frozen=True)
class CompiledRules:
    spec: pathspec.GitIgnoreSpec | None
    has_negation: bool

    @property
    def empty(self) -> bool:
        return self.spec is None


def _normalize_path(path: str) -> str:
    """
    Normalize a path for consistent matching.

    - Converts backslashes to forward slashes
    - Removes leading ./
    - Removes trailing /
    """
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.rstrip("/")


def _compile_pattern(pattern: str) -> GitWildMatchPattern | None:
    try:
        compiled = GitWildMatchPattern(pattern)
    except Exception as exc:
        logger.debug("Dropping malformed ignore pattern %r: %s", pattern, exc)
        return None
    if compiled.include is None:
        # Blank lines and comments.
        return None
    return compiled


@lru_cache(maxsize=64)
def _compile_rule_tuple(rules: tuple[IgnoreRule, ...]) -> CompiledRules:
    active = sorted((r for r in rules if r.enabled), key=lambda r: r.order)
    patterns = []
    for rule in active:
        compiled = _compile_pattern(rule.pattern)
        if compiled is not None:
            patterns.append(compiled)

    if not patterns:
        return CompiledRules(spec=None, has_negation=False)
    return CompiledRules(
        spec=pathspec.GitIgnoreSpec(patterns),
        has_negation=any(p.include is False for p in patterns),
    )


def compile_rules(rules: Iterable[IgnoreRule]) -> CompiledRules:
    """Compile the enabled rules, memoized on the rule set's content."""
    return _compile_rule_tuple(tuple(rules))


def is_ignored(
    relative_path: str,
    is_directory: bool,
    rules: Sequence[IgnoreRule] | CompiledRules,
) -> bool:
    """
    Decide whether a project-relative path is excluded.

    Args:
        relative_path: Path relative to the project base (either separator)
        is_directory: True when the path names a directory
        rules: Ordered rules, or a CompiledRules from compile_rules()

    Returns:
        True if the last matching rule excludes the path
    """
    compiled = rules if isinstance(rules, CompiledRules) else compile_rules(rules)
    if compiled.empty:
        return False

    normalized = _normalize_path(relative_path)
    if not normalized or normalized == ".":
        return False
    if is_directory:
        normalized += "/"

    try:
        return bool(compiled.spec.match_file(normalized))
    except Exception as exc:
        logger.debug("Ignore evaluation failed for %s: %s", normalized, exc)
        return False


def can_prune_directories(rules: Sequence[IgnoreRule] | CompiledRules) -> bool:
    """Whether an ignored directory can be skipped without visiting its files.

    A negation rule may re-include a file below an excluded directory, so
    walks must descend when any enabled rule negates.
    """
    compiled = rules if isinstance(rules, CompiledRules) else compile_rules(rules)
    return not compiled.has_negation
