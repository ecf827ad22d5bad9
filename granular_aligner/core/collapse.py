"""Turn a resolved boundary set into the final token list.

WHY: After punctuation resolution the boundary set can still describe
several insignificant spans in a row (a space after a comma, a closing
bracket before a space). The user only ever skips over those, so they
collapse into one insignificant token. Suppression markers typed by the
user glue a word to its neighbour across whatever boundary sits there.

HOW: One forward pass over adjacent boundary pairs. Each span is
significant when it holds a word-like code point. The pass emits "token
starts" (offset + significance); tokens are the text slices between
consecutive starts.

RULES:
- Consecutive insignificant spans produce a single token start
- A suppression offset at the start of a significant span merges that
  span into the token before it
- A suppression offset anywhere in an insignificant span (end inclusive)
  activates suppression: the preceding insignificant start is retracted,
  further insignificant spans are swallowed, and the next significant
  span is merged too, which clears suppression
- Each token keeps the significance of the start that opened it
- The first token always starts at offset 0, even when a suppression
  marker retracted or skipped the first start
- Empty text yields no tokens
"""

from __future__ import annotations

from typing import Iterable, List, Set, Tuple

from granular_aligner.core.boundaries import TextAnalysis
from granular_aligner.core.ir import Token


def collapse_tokens(
    analysis: TextAnalysis,
    boundaries: Iterable[int],
    suppress_offsets: Set[int],
) -> List[Token]:
    """Build tokens from sorted boundaries, collapsing insignificant runs.

    Args:
        analysis: Word-like flags for the line text.
        boundaries: Resolved boundary offsets (any order).
        suppress_offsets: Offsets of manual suppression markers.

    Returns:
        Ordered tokens whose texts concatenate to the line text.
    """
    text = analysis.text
    length = len(text)
    if not text:
        return []

    ordered = sorted(set(boundaries))
    starts: List[Tuple[int, bool]] = []
    previous_insignificant = False
    suppressing = False

    for start, end in zip(ordered, ordered[1:]):
        if start < 0 or end <= 0 or start >= length or end > length or start >= end:
            continue

        if analysis.span_is_significant(start, end):
            if suppressing or start in suppress_offsets:
                suppressing = False
            else:
                starts.append((start, True))
            previous_insignificant = False
        elif suppressing:
            continue
        elif any(offset in suppress_offsets for offset in range(start, end + 1)):
            suppressing = True
            if previous_insignificant and starts:
                starts.pop()
            previous_insignificant = False
        elif not previous_insignificant:
            starts.append((start, False))
            previous_insignificant = True

    # Suppression at the very start of the line must not drop leading text
    if not starts or starts[0][0] != 0:
        first_end = starts[0][0] if starts else length
        starts.insert(0, (0, analysis.span_is_significant(0, first_end)))

    starts.append((length, False))

    tokens = []
    for (start, significant), (end, _) in zip(starts, starts[1:]):
        if end > start:
            tokens.append(Token(text=text[start:end], is_significant=significant))
    return tokens
