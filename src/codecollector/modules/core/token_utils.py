from __future__ import annotations

from typing import Iterable

import tiktoken


_TIKTOKEN_ENCODER = None


def _get_tiktoken_encoder():
    """Get cached tiktoken encoder to avoid repeated initialization."""
    global _TIKTOKEN_ENCODER
    if _TIKTOKEN_ENCODER is None:
        try:
            _TIKTOKEN_ENCODER = tiktoken.get_encoding("cl100k_base")
        except Exception:
            # Encoding files are fetched on first use; offline hosts get the estimate.
            pass
    return _TIKTOKEN_ENCODER


def estimate_tokens(text_or_lines: str | Iterable[str]) -> int:
    if isinstance(text_or_lines, str):
        text = text_or_lines
    else:
        text = "\n".join(text_or_lines)

    if not text:
        return 0
    encoder = _get_tiktoken_encoder()
    if encoder is not None:
        return len(encoder.encode(text, disallowed_special=()))
    return max(1, len(text) // 4)
