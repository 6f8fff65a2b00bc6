"""
Collector settings stored per project.

Provides:
- DEFAULT_IGNORE_PATTERNS, the documented default rule list
- CollectorSettings dataclass for ignore rules and resolver options
- load_settings() to parse .codecollector.json (defaults when absent or invalid)
- ensure_settings_file() to write the defaults on first use
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Union

from .ignore import IgnoreRule
from .resolver import CACHE_KEYS, ResolverConfig

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = ".codecollector.json"

DEFAULT_IGNORE_PATTERNS = [
    # Java/Kotlin build outputs
    "target/**",
    "build/**",
    "out/**",
    "classes/**",
    "bin/**",
    # Gradle
    ".gradle/**",
    "gradlew",
    "gradlew.bat",
    "gradle/wrapper/**",
    # Maven
    ".mvn/**",
    "mvnw",
    "mvnw.cmd",
    # IDE files
    ".idea/**",
    "*.iml",
    "*.iws",
    "*.ipr",
    ".vscode/**",
    ".eclipse/**",
    ".metadata/**",
    ".classpath",
    ".project",
    ".settings/**",
    # Logs and temp files
    "*.log",
    "*.tmp",
    "*.swp",
    "*.bak",
    # Version control
    ".git/**",
    ".svn/**",
    # OS files
    ".DS_Store",
    "Thumbs.db",
    # Archives
    "*.jar",
    "*.war",
    "*.ear",
    # Generated sources
    "**/generated/**",
    "**/generated-sources/**",
    "**/generated-test-sources/**",
    # codecollector settings
    ".codecollector.json",
]


def ignore_rules_from_patterns(entries: Iterable[Union[str, dict]]) -> List[IgnoreRule]:
    """Build ordered rules from strings or {"pattern", "enabled"} mappings.

    Order follows position. Entries without a usable pattern are skipped.
    """
    rules: List[IgnoreRule] = []
    for entry in entries:
        if isinstance(entry, str):
            pattern, enabled = entry, True
        elif isinstance(entry, dict) and isinstance(entry.get("pattern"), str):
            pattern, enabled = entry["pattern"], bool(entry.get("enabled", True))
        else:
            logger.debug("Skipping ignore entry %r", entry)
            continue
        pattern = pattern.strip()
        if pattern:
            rules.append(IgnoreRule(pattern=pattern, enabled=enabled, order=len(rules)))
    return rules


def reset_to_defaults() -> List[IgnoreRule]:
    return ignore_rules_from_patterns(DEFAULT_IGNORE_PATTERNS)


@dataclass
class CollectorSettings:
    """Ignore rules plus resolver options for one project."""

    ignore_rules: List[IgnoreRule] = field(default_factory=reset_to_defaults)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)

    def to_dict(self) -> dict:
        return {
            "ignorePatterns": [
                {"pattern": r.pattern, "enabled": r.enabled}
                for r in sorted(self.ignore_rules, key=lambda r: r.order)
            ],
            "resolver": {
                "includeGenerated": self.resolver.include_generated,
                "includeTestSources": self.resolver.include_test_sources,
                "generatedFromTests": self.resolver.generated_from_tests,
                "cacheKey": self.resolver.cache_key,
            },
        }


def _resolver_from_dict(data: Any) -> ResolverConfig:
    if not isinstance(data, dict):
        return ResolverConfig()
    defaults = ResolverConfig()
    cache_key = data.get("cacheKey", defaults.cache_key)
    if cache_key not in CACHE_KEYS:
        logger.warning("Unknown resolver cacheKey %r, using %r", cache_key, defaults.cache_key)
        cache_key = defaults.cache_key
    return ResolverConfig(
        include_generated=bool(data.get("includeGenerated", defaults.include_generated)),
        include_test_sources=bool(data.get("includeTestSources", defaults.include_test_sources)),
        generated_from_tests=bool(data.get("generatedFromTests", defaults.generated_from_tests)),
        cache_key=cache_key,
    )


def load_settings(project_path: Union[str, Path]) -> CollectorSettings:
    """
    Load collector settings from .codecollector.json.

    Args:
        project_path: Root directory of the project

    Returns:
        CollectorSettings. Defaults are used if the file is missing or
        invalid; an explicit empty "ignorePatterns" list means no rules.
    """
    config_file = Path(project_path) / SETTINGS_FILENAME

    if not config_file.exists():
        return CollectorSettings()

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable settings %s: %s", config_file, exc)
        return CollectorSettings()

    if not isinstance(data, dict):
        logger.warning("Ignoring settings %s: expected a JSON object", config_file)
        return CollectorSettings()

    patterns = data.get("ignorePatterns")
    if isinstance(patterns, list):
        rules = ignore_rules_from_patterns(patterns)
    else:
        rules = reset_to_defaults()

    return CollectorSettings(ignore_rules=rules, resolver=_resolver_from_dict(data.get("resolver")))


def ensure_settings_file(project_path: Union[str, Path]) -> tuple[bool, str]:
    """Write default settings if the project has none.

    Returns:
        (created, message)
    """
    config_file = Path(project_path) / SETTINGS_FILENAME
    if config_file.exists():
        return False, f"{SETTINGS_FILENAME} already exists"

    config_file.write_text(json.dumps(CollectorSettings().to_dict(), indent=2) + "\n", encoding="utf-8")
    return True, f"Created {SETTINGS_FILENAME} with {len(DEFAULT_IGNORE_PATTERNS)} default ignore patterns"
