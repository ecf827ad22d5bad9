"""Recording state machine: per-token timestamps and line navigation.

WHY: The user taps along with the audio: one control records the start
of the next token, another its end, a third undoes, a fourth skips. The
same few controls must behave predictably across lines: finishing a line
moves on by itself, re-recording a finished line starts it over, and
"undo" either steps back a line or removes the last mark depending on
how far the current line has progressed.

HOW: RecordingState (lines, cursor, auto-advance flag) is a plain value.
Each transition is a pure function taking a state and returning a new
one. Transitions that touch tokens work on a deep copy of the lines, so a
returned state never aliases an earlier one. dispatch() maps a
RecordingAction to the matching function.

RULES:
- Unmet preconditions are no-ops that return the input state unchanged
- Invalid arguments (bad timestamps, out-of-range line index) raise
  ValueError before any state is touched
- Only significant tokens are ever timed; insignificant lines are skipped
  by auto-advance and by revert
- record_start always closes the open token of the current line first
- ignore is record_start then record_end with the IGNORED marker
"""

from __future__ import annotations

import copy
import enum
import logging
from typing import List, Optional, Union

from granular_aligner.core.ir import IGNORED, Line, RecordingState, Timestamp

logger = logging.getLogger(__name__)

TimeArg = Union[float, int, Timestamp]


class RecordingAction(str, enum.Enum):
    """The six actions the recording interface accepts."""

    RESET = "reset"
    RECORD_START = "record_start"
    RECORD_END = "record_end"
    REVERT = "revert"
    IGNORE = "ignore"
    NAVIGATE_TO_LINE = "navigate_to_line"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clone_lines(lines: List[Line]) -> List[Line]:
    return copy.deepcopy(lines)


def _as_timestamp(value: TimeArg) -> Timestamp:
    if isinstance(value, Timestamp):
        if value.is_ignored:
            return value
        return Timestamp.at(value.seconds)
    return Timestamp.at(value)


def _next_significant(lines: List[Line], index: int) -> Optional[int]:
    for i in range(index + 1, len(lines)):
        if lines[i].is_significant:
            return i
    return None


def _previous_significant(lines: List[Line], index: int) -> Optional[int]:
    for i in range(index - 1, -1, -1):
        if lines[i].is_significant:
            return i
    return None


def _all_started(line: Line) -> bool:
    return all(t.is_started for t in line.significant_tokens)


def _all_recorded(line: Line) -> bool:
    return all(t.is_recorded for t in line.significant_tokens)


def _all_empty(line: Line) -> bool:
    return all(not t.is_started for t in line.significant_tokens)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def reset(initial_lines: List[Line]) -> RecordingState:
    """Start a fresh session from segmented lines.

    All timestamps are cleared and the cursor is placed on the first
    significant line (or line 0 when there is none).
    """
    lines = _clone_lines(initial_lines)
    for line in lines:
        for token in line.tokens:
            token.clear_times()

    first = _next_significant(lines, -1)
    return RecordingState(
        lines=lines,
        current_line_index=first if first is not None else 0,
        auto_advanced=False,
    )


def resume(lines: List[Line]) -> RecordingState:
    """Continue a session from lines that may already carry times.

    Times are kept. The cursor goes to the first significant line that is
    not fully recorded, falling back to the first significant line (or
    line 0) when every line is done.
    """
    lines = _clone_lines(lines)
    significant = [i for i, line in enumerate(lines) if line.is_significant]
    pending = [i for i in significant if not _all_recorded(lines[i])]
    if pending:
        index = pending[0]
    else:
        index = significant[0] if significant else 0
    return RecordingState(lines=lines, current_line_index=index, auto_advanced=False)


def record_end(state: RecordingState, current_time: TimeArg) -> RecordingState:
    """Close the open token of the current line.

    If that leaves every significant token on the line started, the
    cursor moves to the next significant line and auto_advanced is set.
    """
    return _record_end(state, _as_timestamp(current_time))


def _record_end(state: RecordingState, stamp: Timestamp) -> RecordingState:
    line = state.current_line
    if line is None or not line.is_significant:
        return state

    if not any(t.is_open for t in line.significant_tokens):
        return state

    lines = _clone_lines(state.lines)
    line = lines[state.current_line_index]
    for token in line.significant_tokens:
        if token.is_open:
            token.end_time = stamp
            break

    if _all_started(line):
        next_index = _next_significant(lines, state.current_line_index)
        if next_index is not None:
            logger.debug("Auto-advanced from line %d to %d", state.current_line_index, next_index)
            return RecordingState(lines=lines, current_line_index=next_index, auto_advanced=True)

    return RecordingState(lines=lines, current_line_index=state.current_line_index, auto_advanced=False)


def record_start(state: RecordingState, current_time: TimeArg) -> RecordingState:
    """Record the start of the next token on the current line.

    Any open token is closed at the same time first. A line that is
    already fully recorded, or that was just reached by auto-advance, is
    cleared and recorded again from its first token.
    """
    return _record_start(state, _as_timestamp(current_time))


def _record_start(state: RecordingState, stamp: Timestamp) -> RecordingState:
    ended = _record_end(state, stamp)

    line = ended.current_line
    if line is None or not line.is_significant:
        return ended

    lines = ended.lines if ended is not state else _clone_lines(state.lines)
    line = lines[ended.current_line_index]

    if _all_recorded(line) or state.auto_advanced or ended.auto_advanced:
        for token in line.significant_tokens:
            token.clear_times()

    for token in line.significant_tokens:
        if not token.is_started:
            token.start_time = stamp
            break

    return RecordingState(lines=lines, current_line_index=ended.current_line_index, auto_advanced=False)


def revert(state: RecordingState) -> RecordingState:
    """Undo the most recent mark, or step back to the previous line.

    The current line's progress decides what "undo" means:
      - just auto-advanced: go back and reopen the token whose end
        triggered the advance
        (unlike a plain step back, this does change a token: the last
        end time on the previous line is cleared)
      - nothing or everything recorded: go back a line, no token changes
      - every token started: remove the start of the open token
      - otherwise: clear the token before the first unstarted one
    """
    line = state.current_line
    if line is None or not line.is_significant:
        return state

    lines = _clone_lines(state.lines)
    index = state.current_line_index
    line = lines[index]
    previous = _previous_significant(lines, index)

    if state.auto_advanced and previous is not None:
        ended = [t for t in lines[previous].significant_tokens if t.end_time is not None]
        if ended:
            ended[-1].end_time = None
        return RecordingState(lines=lines, current_line_index=previous, auto_advanced=False)

    if (_all_empty(line) or _all_recorded(line)) and previous is not None:
        return RecordingState(lines=lines, current_line_index=previous, auto_advanced=False)

    if _all_started(line):
        for token in line.significant_tokens:
            if token.is_open:
                token.start_time = None
                break
    else:
        preceding = None
        for token in line.significant_tokens:
            if not token.is_started:
                token.end_time = None
                if preceding is not None:
                    preceding.clear_times()
                break
            preceding = token

    return RecordingState(lines=lines, current_line_index=index, auto_advanced=False)


def ignore(state: RecordingState) -> RecordingState:
    """Mark the pending token of the current line as deliberately skipped."""
    return _record_end(_record_start(state, IGNORED), IGNORED)


def navigate_to_line(state: RecordingState, line_index: int) -> RecordingState:
    """Move the cursor to line_index without touching any token.

    Raises:
        ValueError: If line_index is not an integer in [0, len(lines)).
    """
    if isinstance(line_index, bool) or not isinstance(line_index, int):
        raise ValueError("Line index must be an integer, got {!r}".format(line_index))
    if not 0 <= line_index < len(state.lines):
        raise ValueError(
            "Line index {} out of range (0..{})".format(line_index, len(state.lines) - 1)
        )
    return RecordingState(
        lines=_clone_lines(state.lines),
        current_line_index=line_index,
        auto_advanced=False,
    )


def dispatch(
    state: RecordingState,
    action: Union[RecordingAction, str],
    current_time: Optional[TimeArg] = None,
    line_index: Optional[int] = None,
    initial_lines: Optional[List[Line]] = None,
) -> RecordingState:
    """Apply one recording action to state.

    Args:
        state: Current document.
        action: Action to apply (enum member or its string value).
        current_time: Playback time in seconds for RECORD_START / RECORD_END.
        line_index: Target line for NAVIGATE_TO_LINE.
        initial_lines: Segmented lines for RESET (defaults to state.lines).

    Raises:
        ValueError: If the action is unknown or a required argument is missing.
    """
    action = RecordingAction(action)

    if action is RecordingAction.RESET:
        return reset(initial_lines if initial_lines is not None else state.lines)
    if action in (RecordingAction.RECORD_START, RecordingAction.RECORD_END):
        if current_time is None:
            raise ValueError("{} requires a current_time".format(action.value))
        if action is RecordingAction.RECORD_START:
            return record_start(state, current_time)
        return record_end(state, current_time)
    if action is RecordingAction.REVERT:
        return revert(state)
    if action is RecordingAction.IGNORE:
        return ignore(state)

    if line_index is None:
        raise ValueError("navigate_to_line requires a line_index")
    return navigate_to_line(state, line_index)
