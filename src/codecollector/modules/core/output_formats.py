"""Rendering collected files into one annotated text stream.

Each file is preceded by a header carrying its project-relative path and
the range of lines it occupies in the concatenated content:

    \\n// src/main/java/app/Main.java (L1-L12)\\n<content>\\n

Line numbers run across files, starting at 1.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from .token_utils import estimate_tokens

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class FileContext:
    path: str
    content: str
    relative_path: str


def count_lines(content: str) -> int:
    """Lines when split on CRLF, CR or LF; '' is one line, a trailing break adds one."""
    return len(_LINE_BREAK_RE.findall(content)) + 1


def line_ranges(contexts: Sequence[FileContext]) -> list[tuple[int, int]]:
    ranges = []
    current = 1
    for ctx in contexts:
        end = current + count_lines(ctx.content) - 1
        ranges.append((current, end))
        current = end + 1
    return ranges


def format_header(relative_path: str, start: int, end: int) -> str:
    return f"// {relative_path} (L{start}-L{end})"


def format_contexts(contexts: Sequence[FileContext]) -> str:
    parts = []
    for ctx, (start, end) in zip(contexts, line_ranges(contexts)):
        parts.append("\n")
        parts.append(format_header(ctx.relative_path, start, end))
        parts.append("\n")
        parts.append(ctx.content)
        parts.append("\n")
    return "".join(parts)


def summarize_contexts(contexts: Sequence[FileContext], text: str | None = None) -> dict:
    """File, line and token counts for status messages."""
    if text is None:
        text = format_contexts(contexts)
    return {
        "files": len(contexts),
        "lines": sum(count_lines(ctx.content) for ctx in contexts),
        "tokens": estimate_tokens(text),
    }
