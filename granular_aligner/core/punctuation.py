"""Punctuation handling around line-breaking opportunities.

WHY: Word segmentation puts a boundary on both sides of every comma,
bracket and quote. The user times words, not punctuation, so each run of
non-word-like characters must either stand alone as one insignificant
token ("ignore") or ride along with the word next to it ("merge"). Line
breaking opportunities decide where a run may attach: punctuation is
never glued across a position where the text could not already wrap,
which keeps mixed CJK/Latin lines correct without special-casing scripts.

HOW: plan_punctuation_edits() walks the sorted line-breaking
opportunities once. At each opportunity it scans left and right over the
contiguous non-word-like run, collects the boundaries inside it, and
decides which boundaries to put back for the active mode. Each decision
is a BoundaryEdit. Opportunities swallowed by a run are skipped.
resolve_punctuation() applies the edits to a copy of the boundary set.

RULES:
- Edits for one opportunity see the set as left by earlier edits
- ignore: re-add left+1 and right-1 (isolate the whole run; internal
  line-breaking points inside the run are not restored)
- merge: re-add the opportunity itself and the rightmost opportunity
  absorbed by the run
- 0 and len(text) are always boundaries afterwards
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Set

from granular_aligner.core.boundaries import TextAnalysis
from granular_aligner.core.ir import PunctuationMode


@dataclass(frozen=True)
class BoundaryEdit:
    """Boundaries removed and re-added around one line-breaking opportunity."""

    opportunity: int
    removed: FrozenSet[int]
    added: FrozenSet[int]

    def apply(self, boundaries: Set[int]) -> None:
        boundaries.difference_update(self.removed)
        boundaries.update(self.added)


def plan_punctuation_edits(
    boundaries: Iterable[int],
    analysis: TextAnalysis,
    mode: PunctuationMode,
) -> List[BoundaryEdit]:
    """Compute the boundary edits for every line-breaking opportunity.

    Args:
        boundaries: Candidate boundaries from compute_boundaries().
        analysis: Word-like flags and line-breaking opportunities.
        mode: Punctuation mode deciding which boundaries to re-add.

    Returns:
        Edits in ascending opportunity order. Opportunities without any
        boundary in their non-word-like neighbourhood produce no edit.
    """
    working = set(boundaries)
    breaks = analysis.line_breaks
    length = len(analysis.text)
    is_word_like = analysis.is_word_like
    edits: List[BoundaryEdit] = []

    i = 0
    while i < len(breaks):
        index = breaks[i]
        removed = set()

        if index in working and (not is_word_like(index) or not is_word_like(index - 1)):
            removed.add(index)

        left = index - 1
        while left >= 0 and not is_word_like(left):
            if left in working:
                removed.add(left)
            left -= 1

        right = index + 1
        while right <= length and not is_word_like(right - 1):
            if right in working:
                removed.add(right)
            right += 1

        # Opportunities inside the run belong to this one
        rightmost_break = index
        j = i + 1
        while j < len(breaks) and breaks[j] < right:
            rightmost_break = breaks[j]
            i = j
            j += 1

        if removed:
            if mode is PunctuationMode.MERGE:
                added = frozenset({index, rightmost_break})
            else:
                added = frozenset({left + 1, right - 1})
            edit = BoundaryEdit(opportunity=index, removed=frozenset(removed), added=added)
            edit.apply(working)
            edits.append(edit)

        i += 1

    return edits


def resolve_punctuation(
    boundaries: Iterable[int],
    analysis: TextAnalysis,
    mode: PunctuationMode,
) -> Set[int]:
    """Return a new boundary set with punctuation isolated or merged."""
    resolved = set(boundaries)
    for edit in plan_punctuation_edits(resolved, analysis, mode):
        edit.apply(resolved)

    # Merge mode can drop the ends of the line
    resolved.add(0)
    resolved.add(len(analysis.text))
    return resolved
