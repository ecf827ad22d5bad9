"""Escape syntax and manual marker parsing for raw transcript lines.

WHY: Users steer segmentation by typing markers into the transcript: a
pipe forces a token boundary, a backslash suppresses one. The backtick
escapes these (and the characters the export format reserves) so they
can appear as literal text. Everything downstream works on the plain,
escape-resolved text plus the offsets where markers were found.

HOW: parse_markup() makes a single left-to-right pass over the code points
with one piece of state (escape pending). Marker positions are recorded
as offsets into the output text, so they always fall between characters
of the resolved line. escape_text() is the inverse used by the exporter.

RULES:
- Introducer "`"; shorthand codes n, r, t map to newline, CR, tab
- "`" before a structural character emits that character literally
- "`" before any other character emits both characters unchanged
- A trailing "`" is emitted literally
- "|" records a split offset, "\\" records a suppression offset
- split_offsets always contains 0 and len(text)
- Never raises: every input produces a result
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Set

ESCAPE_CHAR = "`"
SPLIT_MARKER = "|"
SUPPRESS_MARKER = "\\"

# Shorthand codes that follow the escape introducer.
_SHORTHAND = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

# Characters with structural meaning in the markup or the export format.
STRUCTURAL_CHARS = frozenset({"|", "\\", "{", "}", "[", "]", "<", ">", "`"})

_REVERSE_SHORTHAND = {v: k for k, v in _SHORTHAND.items()}


@dataclass
class ParsedMarkup:
    """Plain text of a line plus the offsets of its manual markers."""

    text: str
    split_offsets: Set[int] = field(default_factory=set)
    suppress_offsets: Set[int] = field(default_factory=set)


def parse_markup(raw: str) -> ParsedMarkup:
    """Resolve escapes in a raw line and collect marker offsets.

    Args:
        raw: One transcript line as typed by the user.

    Returns:
        ParsedMarkup with the resolved text, split offsets (always
        including 0 and the text length) and suppression offsets.
    """
    parts = []
    length = 0
    split_offsets = {0}
    suppress_offsets = set()
    escaped = False

    for char in raw:
        if escaped:
            if char in _SHORTHAND:
                emitted = _SHORTHAND[char]
            elif char in STRUCTURAL_CHARS:
                emitted = char
            else:
                # Unknown code: keep the introducer and the character
                emitted = ESCAPE_CHAR + char
            parts.append(emitted)
            length += len(emitted)
            escaped = False
        elif char == ESCAPE_CHAR:
            escaped = True
        elif char == SPLIT_MARKER:
            split_offsets.add(length)
        elif char == SUPPRESS_MARKER:
            suppress_offsets.add(length)
        else:
            parts.append(char)
            length += 1

    if escaped:
        parts.append(ESCAPE_CHAR)
        length += 1

    split_offsets.add(length)
    return ParsedMarkup(
        text="".join(parts),
        split_offsets=split_offsets,
        suppress_offsets=suppress_offsets,
    )


def escape_text(text: str) -> str:
    """Re-apply the escape syntax so text survives a round trip through parse_markup."""
    out = []
    for char in text:
        if char in _REVERSE_SHORTHAND:
            out.append(ESCAPE_CHAR + _REVERSE_SHORTHAND[char])
        elif char in STRUCTURAL_CHARS:
            out.append(ESCAPE_CHAR + char)
        else:
            out.append(char)
    return "".join(out)
