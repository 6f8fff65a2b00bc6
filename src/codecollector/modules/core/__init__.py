"""Core collection engine.

Layers, bottom-up:
- ignore / workspace: gitignore rules and file-system walking
- parsing / project_index: tree-sitter parsing and the declaration index
- references / resolver: qualified-name guesses and their defining files
- collector / output_formats: closure traversal and the annotated stream
"""

from .collector import CollectionMode, ContextCollector
from .errors import (
    ERR_CONFIG,
    ERR_INTERNAL,
    ERR_NOT_FOUND,
    CollectorError,
    make_error,
)
from .ignore import IgnoreRule, compile_rules, is_ignored
from .output_formats import FileContext, count_lines, format_contexts, summarize_contexts
from .parsing import ImportDecl, ParsedFile, TreeSitterParser, Usage, detect_dialect
from .project_index import ProjectIndex, ProjectLayout
from .references import Reference, extract_references, should_include
from .resolver import ResolverConfig, SymbolResolver
from .settings import (
    DEFAULT_IGNORE_PATTERNS,
    CollectorSettings,
    ensure_settings_file,
    load_settings,
    reset_to_defaults,
)
from .token_utils import estimate_tokens

__all__ = [
    # Traversal
    "CollectionMode",
    "ContextCollector",
    # Errors
    "ERR_CONFIG",
    "ERR_INTERNAL",
    "ERR_NOT_FOUND",
    "CollectorError",
    "make_error",
    # Ignore rules
    "IgnoreRule",
    "compile_rules",
    "is_ignored",
    # Output
    "FileContext",
    "count_lines",
    "format_contexts",
    "summarize_contexts",
    # Parsing
    "ImportDecl",
    "ParsedFile",
    "TreeSitterParser",
    "Usage",
    "detect_dialect",
    # Resolution
    "ProjectIndex",
    "ProjectLayout",
    "Reference",
    "extract_references",
    "should_include",
    "ResolverConfig",
    "SymbolResolver",
    # Settings
    "DEFAULT_IGNORE_PATTERNS",
    "CollectorSettings",
    "ensure_settings_file",
    "load_settings",
    "reset_to_defaults",
    "estimate_tokens",
]
