"""Intermediate representation dataclasses for segmented transcripts.

WHY: The segmentation engine and the recording state machine are two
independent subsystems. The IR is the only thing they share: the engine
produces a fresh list of lines once, the state machine copies it and
mutates timestamps from then on. Formatters read the same structures.

HOW: Five small types form the hierarchy:
  Timestamp          : a recorded time in seconds, or the IGNORED marker
  Token              : one span of a line's text plus optional start/end
  Line               : ordered tokens of one transcript line
  SegmentationOptions: which automatic splitting sources are active
  RecordingState     : the whole mutable document (lines + cursor + flag)

RULES:
- A token time field is None when absent (not yet recorded)
- IGNORED is a Timestamp with seconds=None (deliberately skipped);
  it counts as "set" everywhere absent does not
- end_time set implies start_time set
- Line.is_significant is derived from its tokens, never stored
- All real times are non-negative finite float seconds
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Timestamp:
    """A recorded token boundary: either a real time or the ignored marker.

    WHY: "Not recorded yet" and "manually skipped" must never be confused
    with each other or with a real 0.0 second time.

    RULES:
    - Construct real times through Timestamp.at() so they are validated
    - IGNORED (seconds=None) is the only ignored instance callers need
    """

    seconds: Optional[float] = None

    @classmethod
    def at(cls, seconds: float) -> "Timestamp":
        """Build a real timestamp, rejecting NaN, infinite and negative values."""
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
            raise ValueError("Timestamp must be a number of seconds, got {!r}".format(seconds))
        if math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
            raise ValueError("Timestamp must be a finite non-negative number, got {!r}".format(seconds))
        return cls(float(seconds))

    @property
    def is_ignored(self) -> bool:
        return self.seconds is None


IGNORED = Timestamp(None)
"""Marker for a token the user deliberately skipped."""


@dataclass
class Token:
    """A contiguous span of a line's text with a significance flag.

    Attributes:
        text: Non-empty slice of the escape-resolved line text.
        is_significant: True if the span holds at least one word-like character.
        start_time: Recorded start, IGNORED, or None when absent.
        end_time: Recorded end, IGNORED, or None when absent.
    """

    text: str
    is_significant: bool
    start_time: Optional[Timestamp] = None
    end_time: Optional[Timestamp] = None

    @property
    def is_started(self) -> bool:
        return self.start_time is not None

    @property
    def is_recorded(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def is_open(self) -> bool:
        """Started but not ended (partially recorded)."""
        return self.start_time is not None and self.end_time is None

    def clear_times(self) -> None:
        self.start_time = None
        self.end_time = None


@dataclass
class Line:
    """One transcript line split into tokens.

    Membership never changes after segmentation; only token times mutate.
    """

    tokens: List[Token] = field(default_factory=list)

    @property
    def is_significant(self) -> bool:
        return any(t.is_significant for t in self.tokens)

    @property
    def significant_tokens(self) -> List[Token]:
        return [t for t in self.tokens if t.is_significant]

    @property
    def text(self) -> str:
        return "".join(t.text for t in self.tokens)


class PunctuationMode(str, enum.Enum):
    """How runs of punctuation and symbols are attached to words.

    RULES:
    - ignore: the non-word-like run becomes its own (insignificant) token
    - merge: the run fuses with the adjacent word up to the next
      line-breaking opportunity
    """

    IGNORE = "ignore"
    MERGE = "merge"


# Granularity names accepted by the CLI and the HTTP API. "pipe" and
# "wholeLine" both mean "manual | markers only".
GRANULARITIES = ("wholeLine", "character", "word", "pipe")


@dataclass(frozen=True)
class SegmentationOptions:
    """Active sources of automatic token boundaries.

    Attributes:
        split_on_character: Add every Unicode line-breaking opportunity.
        split_on_word: Add every Unicode word-boundary start.
        punctuation: How non-word-like runs are attached (see PunctuationMode).
    """

    split_on_character: bool = False
    split_on_word: bool = True
    punctuation: PunctuationMode = PunctuationMode.IGNORE

    @classmethod
    def from_granularity(
        cls,
        granularity: str,
        punctuation: str = "ignore",
    ) -> "SegmentationOptions":
        """Map a granularity name and punctuation mode name to options.

        Raises:
            ValueError: If either name is unknown.
        """
        if granularity not in GRANULARITIES:
            raise ValueError(
                "Unknown granularity '{}'. Available: {}".format(
                    granularity, ", ".join(GRANULARITIES)
                )
            )
        try:
            mode = PunctuationMode(punctuation)
        except ValueError:
            raise ValueError(
                "Unknown punctuation mode '{}'. Available: {}".format(
                    punctuation, ", ".join(m.value for m in PunctuationMode)
                )
            ) from None
        return cls(
            split_on_character=granularity == "character",
            split_on_word=granularity == "word",
            punctuation=mode,
        )


@dataclass
class RecordingState:
    """The recorded session document.

    Attributes:
        lines: Every transcript line, in order, with their tokens.
        current_line_index: The line the next recording action applies to.
        auto_advanced: True if the most recent transition moved the cursor
            automatically (as opposed to explicit navigation).
    """

    lines: List[Line] = field(default_factory=list)
    current_line_index: int = 0
    auto_advanced: bool = False

    @property
    def current_line(self) -> Optional[Line]:
        if 0 <= self.current_line_index < len(self.lines):
            return self.lines[self.current_line_index]
        return None
