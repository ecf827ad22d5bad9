"""Candidate token boundaries from manual markers and Unicode segmentation.

WHY: Tokens can be split at three independent kinds of positions: where
the user typed a split marker, where a line could legally wrap (UAX #14,
useful for scripts without spaces such as CJK), and where words begin.
Which sources apply is a per-session choice.

HOW: analyse_text() runs both segmenters once per line and keeps the
results in a TextAnalysis: the line-breaking opportunities, the word
segment starts, and a per-code-point "word-like" flag. Word segments come
from ICU's root-locale word break iterator, which keeps runs of
ideographs together as dictionary words. A segment is word-like when its
ICU rule status is a letter, number, kana or ideograph status; whitespace,
punctuation and symbol segments are not. Line-breaking opportunities come
from uniseg. compute_boundaries() unions the sources selected by the
options. The word-like flags are reused by the punctuation resolver and
the token collapser.

RULES:
- Offsets are code point indices into the escape-resolved text
- ICU reports UTF-16 offsets; they are mapped back to code points
- line_breaks is sorted and always contains 0 and len(text)
- Offsets outside the text count as word-like (open edges)
- Output depends only on the text and the options (root locale only)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Set, Tuple

import icu
from uniseg.linebreak import line_break_boundaries

from granular_aligner.core.ir import SegmentationOptions

# ICU word rule statuses below this value mark segments that are not words
# (UBRK_WORD_NONE_LIMIT).
_WORD_NONE_LIMIT = 100


@dataclass(frozen=True)
class TextAnalysis:
    """Unicode segmentation results for one line of text."""

    text: str
    word_like: tuple
    segment_starts: tuple
    line_breaks: tuple

    def is_word_like(self, offset: int) -> bool:
        """Whether the code point at offset belongs to a word-like segment."""
        if 0 <= offset < len(self.word_like):
            return self.word_like[offset]
        return True

    def span_is_significant(self, start: int, end: int) -> bool:
        return any(self.is_word_like(i) for i in range(start, end))


def _utf16_to_code_points(text: str) -> Dict[int, int]:
    """Map every UTF-16 offset that falls on a code point edge to its index."""
    mapping = {0: 0}
    unit = 0
    for index, char in enumerate(text, start=1):
        unit += 2 if ord(char) > 0xFFFF else 1
        mapping[unit] = index
    return mapping


def _word_segments(text: str) -> List[Tuple[int, int, bool]]:
    """Split text into (start, end, word_like) segments with ICU word breaking."""
    iterator = icu.BreakIterator.createWordInstance(icu.Locale.getRoot())
    iterator.setText(text)
    to_code_point = _utf16_to_code_points(text)

    segments: List[Tuple[int, int, bool]] = []
    start = 0
    for boundary in iterator:
        end = to_code_point[boundary]
        if end > start:
            segments.append((start, end, iterator.getRuleStatus() >= _WORD_NONE_LIMIT))
        start = end
    if start < len(text):
        segments.append((start, len(text), False))
    return segments


def _sorted_offsets(offsets: Iterable[int], length: int) -> List[int]:
    result = set(offsets)
    result.add(0)
    result.add(length)
    return sorted(o for o in result if 0 <= o <= length)


def analyse_text(text: str) -> TextAnalysis:
    """Run word and line-break segmentation over text.

    Args:
        text: Escape-resolved line text.

    Returns:
        TextAnalysis with per-code-point word-like flags, word segment
        start offsets and line-breaking opportunities.
    """
    length = len(text)
    if not text:
        return TextAnalysis(text=text, word_like=(), segment_starts=(0,), line_breaks=(0,))

    word_like: List[bool] = []
    segment_starts: List[int] = []
    for start, end, flag in _word_segments(text):
        segment_starts.append(start)
        word_like.extend([flag] * (end - start))

    return TextAnalysis(
        text=text,
        word_like=tuple(word_like),
        segment_starts=tuple(segment_starts),
        line_breaks=tuple(_sorted_offsets(line_break_boundaries(text), length)),
    )


def compute_boundaries(
    analysis: TextAnalysis,
    split_offsets: Iterable[int],
    options: SegmentationOptions,
) -> Set[int]:
    """Union the boundary sources enabled by options.

    Args:
        analysis: Segmentation results for the line.
        split_offsets: Offsets of manual split markers.
        options: Which automatic sources are active.

    Returns:
        Unordered set of candidate boundary offsets, always containing
        0 and len(text).
    """
    boundaries = {0, len(analysis.text)}
    boundaries.update(split_offsets)

    if options.split_on_character:
        boundaries.update(analysis.line_breaks)

    if options.split_on_word:
        boundaries.update(analysis.segment_starts)

    return boundaries
