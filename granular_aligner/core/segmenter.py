"""Transcript segmentation pipeline: raw text to lines of tokens.

WHY: The recording session needs every transcript line split into the
tokens the user will time. This module wires the four segmentation
stages together and is the only entry point callers should use.

HOW: segment_text() runs one raw line through
  parse_markup() → analyse_text() → compute_boundaries()
  → resolve_punctuation() → collapse_tokens().
segment_transcript() splits a transcript on CRLF / CR / LF and segments
each line. Lines are independent pure computations, so they can run on a
thread pool; results are always returned in input order.

RULES:
- Empty lines become Line(tokens=[]) without running the pipeline
- Token texts of a line concatenate to its escape-resolved text
- Identical input and options always yield identical tokens
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from granular_aligner.core.boundaries import analyse_text, compute_boundaries
from granular_aligner.core.collapse import collapse_tokens
from granular_aligner.core.ir import Line, SegmentationOptions, Token
from granular_aligner.core.markup import parse_markup
from granular_aligner.core.punctuation import resolve_punctuation

logger = logging.getLogger(__name__)

_LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")


def split_lines(raw: str) -> List[str]:
    """Split a transcript on CRLF, lone CR and LF."""
    return _LINE_SPLIT_RE.split(raw)


def segment_text(line: str, options: SegmentationOptions) -> List[Token]:
    """Split one raw transcript line into tokens.

    Args:
        line: Raw line text, possibly containing escapes and markers.
        options: Active boundary sources and punctuation mode.

    Returns:
        Ordered tokens. Empty (after escape resolution) text gives [].
    """
    parsed = parse_markup(line)
    if not parsed.text:
        return []

    analysis = analyse_text(parsed.text)
    boundaries = compute_boundaries(analysis, parsed.split_offsets, options)
    boundaries = resolve_punctuation(boundaries, analysis, options.punctuation)
    return collapse_tokens(analysis, boundaries, parsed.suppress_offsets)


def _segment_line(raw_line: str, options: SegmentationOptions) -> Line:
    if not raw_line:
        return Line(tokens=[])
    return Line(tokens=segment_text(raw_line, options))


def segment_transcript(
    raw: str,
    options: SegmentationOptions,
    max_workers: Optional[int] = None,
) -> List[Line]:
    """Segment every line of a transcript.

    Args:
        raw: Whole transcript text.
        options: Segmentation options applied to every line.
        max_workers: Segment lines on a thread pool of this size when
            greater than 1; otherwise run sequentially.

    Returns:
        One Line per input line, in input order.
    """
    raw_lines = split_lines(raw)

    if max_workers is not None and max_workers > 1 and len(raw_lines) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            lines = list(pool.map(lambda l: _segment_line(l, options), raw_lines))
    else:
        lines = [_segment_line(l, options) for l in raw_lines]

    logger.debug(
        "Segmented %d lines (%d significant, %d tokens)",
        len(lines),
        sum(1 for l in lines if l.is_significant),
        sum(len(l.tokens) for l in lines),
    )
    return lines
