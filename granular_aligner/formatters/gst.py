"""Granular synced text (GST) export and import.

WHY: The result of a recording session is a plain text file that keeps
the transcript readable while carrying a start/end time for every timed
token. Reading the same file back lets a user resume an unfinished
session instead of recording from scratch.

HOW: export_gst() writes one output line per Line, tokens concatenated
with no separator. Untimed tokens are written as escaped text. A
significant token with any time set becomes ``{START|END|TEXT}``.
load_gst() scans each line with the same escape rules: ``{...}`` groups
become significant tokens with their times restored, and the text runs
between them are re-segmented with segment_text().

RULES:
- Times are MM:SS.mmm, zero padded; minutes are not wrapped into hours
- An absent time is written as the empty string
- An ignored time is written as IGNORED_TIME_TEXT ("--:--.---")
- Structural characters inside token text are escaped with "`"
- Output suffix: "-synced.txt", media type "text/plain"
- load_gst raises ValueError on an unterminated or malformed {...} group
"""

from __future__ import annotations

from typing import List, Optional

from granular_aligner.config import IGNORED_TIME_TEXT
from granular_aligner.core.ir import IGNORED, Line, RecordingState, SegmentationOptions, Timestamp, Token
from granular_aligner.core.markup import ESCAPE_CHAR, escape_text, parse_markup
from granular_aligner.core.segmenter import segment_text, split_lines
from granular_aligner.formatters.base import BaseFormatter, FormatterOutput


def format_time(stamp: Optional[Timestamp]) -> str:
    """Render a token time for export: "", the ignored marker, or MM:SS.mmm."""
    if stamp is None:
        return ""
    if stamp.is_ignored:
        return IGNORED_TIME_TEXT
    total_ms = int(round(stamp.seconds * 1000))
    minutes, millis = divmod(total_ms, 60000)
    return "{:02d}:{:06.3f}".format(minutes, millis / 1000.0)


def parse_time(value: str) -> Optional[Timestamp]:
    """Inverse of format_time(); also accepts H:MM:SS.mmm.

    Raises:
        ValueError: If value is neither empty, the ignored marker, nor a time.
    """
    value = value.strip()
    if not value:
        return None
    if value == IGNORED_TIME_TEXT:
        return IGNORED

    seconds = 0.0
    for part in value.split(":"):
        try:
            seconds = seconds * 60 + float(part)
        except ValueError:
            raise ValueError("Invalid time '{}'".format(value)) from None
    return Timestamp.at(seconds)


def _export_token(token: Token) -> str:
    text = escape_text(token.text)
    if not token.is_significant or (token.start_time is None and token.end_time is None):
        return text
    return "{{{}|{}|{}}}".format(format_time(token.start_time), format_time(token.end_time), text)


def export_gst(lines: List[Line]) -> str:
    """Serialize lines to GST text (lines joined by "\\n", no trailing newline)."""
    return "\n".join("".join(_export_token(t) for t in line.tokens) for line in lines)


def _split_group(group: str) -> List[str]:
    """Split the inside of a {...} group on unescaped pipes."""
    fields = [""]
    i = 0
    while i < len(group):
        char = group[i]
        if char == ESCAPE_CHAR and i + 1 < len(group):
            fields[-1] += group[i:i + 2]
            i += 2
            continue
        if char == "|":
            fields.append("")
        else:
            fields[-1] += char
        i += 1
    return fields


def _load_line(raw: str, line_number: int, options: SegmentationOptions) -> Line:
    tokens: List[Token] = []
    pending = ""
    i = 0

    while i < len(raw):
        char = raw[i]
        if char == ESCAPE_CHAR and i + 1 < len(raw):
            pending += raw[i:i + 2]
            i += 2
            continue
        if char != "{":
            pending += char
            i += 1
            continue

        # Find the matching unescaped closing brace
        j = i + 1
        while j < len(raw) and raw[j] != "}":
            j += 2 if raw[j] == ESCAPE_CHAR else 1
        if j >= len(raw):
            raise ValueError("Unterminated timed token on line {}".format(line_number))

        fields = _split_group(raw[i + 1:j])
        if len(fields) != 3:
            raise ValueError(
                "Timed token on line {} must have 3 fields, got {}".format(line_number, len(fields))
            )

        if pending:
            tokens.extend(segment_text(pending, options))
            pending = ""

        start, end, text = fields
        start_time = parse_time(start)
        end_time = parse_time(end)
        if end_time is not None and start_time is None:
            raise ValueError(
                "Timed token on line {} has an end time but no start time".format(line_number)
            )
        tokens.append(Token(
            text=parse_markup(text).text,
            is_significant=True,
            start_time=start_time,
            end_time=end_time,
        ))
        i = j + 1

    if pending:
        tokens.extend(segment_text(pending, options))

    return Line(tokens=tokens)


def load_gst(text: str, options: SegmentationOptions) -> List[Line]:
    """Read a GST export back into lines.

    Args:
        text: Exported file content.
        options: Segmentation options for the untimed text runs.

    Returns:
        One Line per input line, timed tokens restored verbatim.
    """
    return [
        _load_line(raw, number, options) if raw else Line(tokens=[])
        for number, raw in enumerate(split_lines(text), start=1)
    ]


class GranularSyncedTextFormatter(BaseFormatter):
    """Formatter that produces the granular synced text export."""

    @property
    def name(self) -> str:
        return "Granular Synced Text"

    def format(self, state: RecordingState) -> List[FormatterOutput]:
        return [
            FormatterOutput(
                suffix="-synced.txt",
                content=export_gst(state.lines),
                media_type="text/plain",
            )
        ]
