"""
Structured error codes for agent-parseable failures.

Error codes callers can handle programmatically:
- CC_ERR_NOT_FOUND: Project root or selected path not found
- CC_ERR_CONFIG: Settings file is unreadable or malformed
- CC_ERR_INTERNAL: Anything else
"""

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


# Error codes
ERR_NOT_FOUND = "CC_ERR_NOT_FOUND"
ERR_CONFIG = "CC_ERR_CONFIG"
ERR_INTERNAL = "CC_ERR_INTERNAL"


@dataclass
class CollectorError:
    """Structured error response for machine parsing."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


def make_error(code: str, message: str, **details) -> dict:
    """Create a structured error response dict."""
    return CollectorError(code=code, message=message, details=details).to_dict()


def log_and_return_empty(
    logger_: logging.Logger,
    level: int,
    message: str,
    exc: Exception | None = None,
    return_value: Any = None,
) -> Any:
    """
    Log exception and return a default value.

    The collection core degrades instead of raising; this keeps every
    fallback visible at the chosen log level.
    """
    if exc:
        logger_.log(level, f"{message}: {exc}")
    else:
        logger_.log(level, message)
    return return_value


def make_config_error(config_path: str, reason: str) -> dict:
    """Create a settings error."""
    return make_error(
        ERR_CONFIG,
        f"Invalid settings in {config_path}: {reason}",
        file=config_path,
        hint="codecollector init --project .",
    )
