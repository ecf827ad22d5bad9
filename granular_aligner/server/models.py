"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation.

HOW: Each endpoint pair (request + response) has its own model. Enums
represent closed sets like punctuation modes and recording actions. The
session view is built from the core dataclasses by lines_to_views().

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Enum values match internal constants exactly
- A token time is a number of seconds, "ignored", or null (absent)
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from granular_aligner.core.ir import PunctuationMode, Timestamp
from granular_aligner.core.recording import RecordingAction

TimeValue = Union[float, str, None]


def time_to_value(stamp: Optional[Timestamp]) -> TimeValue:
    """Map a token time to its JSON form: seconds, "ignored" or None."""
    if stamp is None:
        return None
    if stamp.is_ignored:
        return "ignored"
    return stamp.seconds


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SegmentationConfig(BaseModel):
    """Segmentation settings sent with a transcript.

    RULES:
    - granularity is one of wholeLine, character, word, pipe
    - Omitted fields fall back to the server's configured defaults
    """

    granularity: Optional[str] = Field(
        default=None,
        description="Automatic splitting: 'wholeLine', 'character', 'word' or 'pipe'.",
    )
    punctuation: Optional[PunctuationMode] = Field(
        default=None,
        description="Punctuation handling: 'ignore' isolates it, 'merge' attaches it to words.",
    )


class SegmentRequest(BaseModel):
    """A raw transcript to segment."""

    transcript: str = Field(description="Transcript text; lines split on CR, LF or CRLF.")
    config: SegmentationConfig = Field(
        default_factory=SegmentationConfig,
        description="Segmentation settings.",
    )


class ActionRequest(BaseModel):
    """One recording action.

    RULES:
    - current_time is required for record_start and record_end
    - line_index is required for navigate_to_line
    """

    action: RecordingAction = Field(description="Recording action to apply.")
    current_time: Optional[float] = Field(
        default=None,
        description="Playback position in seconds (record_start / record_end).",
    )
    line_index: Optional[int] = Field(
        default=None,
        description="Target line (navigate_to_line).",
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenView(BaseModel):
    """One token with its recorded times."""

    text: str = Field(description="Token text.")
    significant: bool = Field(description="True if the token is timed by the user.")
    start: TimeValue = Field(default=None, description="Start seconds, 'ignored', or null.")
    end: TimeValue = Field(default=None, description="End seconds, 'ignored', or null.")


class LineView(BaseModel):
    """One transcript line."""

    significant: bool = Field(description="True if any token in the line is significant.")
    tokens: List[TokenView] = Field(description="Tokens in line order.")


class SegmentResponse(BaseModel):
    """Segmentation result for a transcript."""

    lines: List[LineView] = Field(description="One entry per transcript line.")


class SessionResponse(BaseModel):
    """Full view of a recording session."""

    id: str = Field(description="Unique session identifier (UUID hex).")
    current_line_index: int = Field(description="Line the next action applies to.")
    auto_advanced: bool = Field(description="True if the last action moved the cursor automatically.")
    created_at: float = Field(description="Creation timestamp (Unix epoch seconds).")
    updated_at: float = Field(description="Last change timestamp (Unix epoch seconds).")
    lines: List[LineView] = Field(description="All lines with their token times.")


class SessionSummary(BaseModel):
    """Short description of a session for listings."""

    id: str = Field(description="Unique session identifier (UUID hex).")
    line_count: int = Field(description="Number of transcript lines.")
    current_line_index: int = Field(description="Line the next action applies to.")
    updated_at: float = Field(description="Last change timestamp (Unix epoch seconds).")


class FormatInfo(BaseModel):
    """Description of an available export format."""

    key: str = Field(description="Format identifier used in API requests.")
    name: str = Field(description="Human-readable format name.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})


def lines_to_views(lines) -> List[LineView]:
    """Convert core Line objects to response models."""
    return [
        LineView(
            significant=line.is_significant,
            tokens=[
                TokenView(
                    text=t.text,
                    significant=t.is_significant,
                    start=time_to_value(t.start_time),
                    end=time_to_value(t.end_time),
                )
                for t in line.tokens
            ],
        )
        for line in lines
    ]
