"""Qualified name → defining project file, memoized per collection call."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Hashable, Protocol, Union

from .errors import log_and_return_empty
from .project_index import FileLocation

logger = logging.getLogger(__name__)


class SymbolLookup(Protocol):
    """Resolution capability supplied by the host project model."""

    def find_declarations(
        self,
        qualified_name: str,
        requesting_file: Union[str, Path],
        *,
        project_wide: bool = False,
    ) -> list[Path]: ...

    def location(self, path: Union[str, Path]) -> FileLocation | None: ...

    def module_name(self, path: Union[str, Path]) -> str | None: ...


CACHE_KEYS = ("name", "module")


@dataclass(frozen=True)
class ResolverConfig:
    """Which resolved files are eligible, and how results are memoized.

    cache_key "name" shares one answer per qualified name across the whole
    call, so shadowed same-named types in different modules all resolve to
    the first answer. "module" keys on (name, requesting module) instead.
    """

    include_generated: bool = False
    include_test_sources: bool = True
    generated_from_tests: bool = False
    cache_key: str = "name"

    def __post_init__(self) -> None:
        if self.cache_key not in CACHE_KEYS:
            raise ValueError(f"cache_key must be one of {CACHE_KEYS}, got {self.cache_key!r}")


class SymbolResolver:
    def __init__(self, lookup: SymbolLookup, config: ResolverConfig | None = None) -> None:
        self._lookup = lookup
        self.config = config or ResolverConfig()
        self._cache: dict[Hashable, Path | None] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    def _cache_key(self, qualified_name: str, requesting_file: Union[str, Path]) -> Hashable:
        if self.config.cache_key == "module":
            return (qualified_name, self._lookup.module_name(requesting_file))
        return qualified_name

    def resolve(self, qualified_name: str, requesting_file: Union[str, Path]) -> Path | None:
        """Return the single project file defining ``qualified_name``, or None.

        Failures inside the lookup degrade to None and are cached like any
        other answer.
        """
        try:
            key = self._cache_key(qualified_name, requesting_file)
        except Exception as exc:
            return log_and_return_empty(logger, logging.DEBUG, f"Cannot scope {requesting_file}", exc)
        if key in self._cache:
            return self._cache[key]

        try:
            result = self._resolve_uncached(qualified_name, requesting_file)
        except Exception as exc:
            result = log_and_return_empty(logger, logging.DEBUG, f"Resolution of {qualified_name} failed", exc)
        self._cache[key] = result
        return result

    def _resolve_uncached(self, qualified_name: str, requesting_file: Union[str, Path]) -> Path | None:
        requester = self._lookup.location(requesting_file)
        for project_wide in (False, True):
            candidates = self._lookup.find_declarations(
                qualified_name, requesting_file, project_wide=project_wide
            )
            locations = [(path, self._lookup.location(path)) for path in candidates]
            # Prefer sources over build-output roots when a name is declared twice.
            locations.sort(key=lambda item: bool(item[1] and item[1].build_copy))
            for path, location in locations:
                if self._is_eligible(location, requester):
                    return path
        logger.debug("No project file declares %s", qualified_name)
        return None

    def _is_eligible(self, location: FileLocation | None, requester: FileLocation | None) -> bool:
        if location is None:
            # Outside the project or outside every source root.
            return False
        if location.generated and not self._generated_allowed(requester):
            return False
        if location.root.kind == "test" and not self.config.include_test_sources:
            return False
        if location.build_output and location.module_root_count > 1 and not location.generated:
            return False
        return True

    def _generated_allowed(self, requester: FileLocation | None) -> bool:
        if self.config.include_generated:
            return True
        return (
            self.config.generated_from_tests
            and requester is not None
            and requester.root.kind == "test"
        )
