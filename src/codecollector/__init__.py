"""
codecollector: dependency-closure context bundles for Java and Kotlin.

Starting from selected files, codecollector follows the types a file refers
to, resolves them to the project files that declare them, and concatenates
the closure into one annotated text stream for a code assistant.

Modules:
- core: Reference extraction, symbol resolution, ignore rules, traversal
"""

try:
    from importlib.metadata import version
    __version__ = version("codecollector")
except Exception:
    __version__ = "0.1.0"

from .modules.core import (
    CollectionMode,
    CollectorSettings,
    ContextCollector,
    FileContext,
    IgnoreRule,
    ResolverConfig,
    format_contexts,
    is_ignored,
    load_settings,
)

# Module access
from . import modules

__all__ = [
    "modules",
    "CollectionMode",
    "CollectorSettings",
    "ContextCollector",
    "FileContext",
    "IgnoreRule",
    "ResolverConfig",
    "format_contexts",
    "is_ignored",
    "load_settings",
]
