"""FastAPI application exposing segmentation and recording sessions.

WHY: A browser or any other front end (keyboard, MIDI pedal, a player
plugin) can drive a recording session over HTTP: segment a transcript,
create a session, send start/end/revert/ignore taps with the playback
position, and download the export. The front end stays a thin renderer.

HOW: A single FastAPI app with a module-level SessionStore. Every action
request goes through SessionStore.apply_action(), which serializes
mutations of one session behind the store lock. A lifespan task removes
idle sessions periodically.

RULES:
- Unknown sessions and formats return 404
- Invalid action arguments (ValueError from the core) return 422
- A full store returns 429
- Error responses use the ErrorResponse schema
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response

from granular_aligner import __version__
from granular_aligner.config import DEFAULT_GRANULARITY, DEFAULT_PUNCTUATION, load_default_options
from granular_aligner.core.ir import SegmentationOptions
from granular_aligner.core.segmenter import segment_transcript
from granular_aligner.formatters import FORMATTERS
from granular_aligner.server.models import (
    ActionRequest,
    ErrorResponse,
    FormatInfo,
    HealthResponse,
    SegmentationConfig,
    SegmentRequest,
    SegmentResponse,
    SessionResponse,
    SessionSummary,
    lines_to_views,
)
from granular_aligner.server.sessions import Session, SessionStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

session_store = SessionStore()


async def _periodic_cleanup() -> None:
    """Run session cleanup every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        session_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check configured defaults and start periodic cleanup; cancel on shutdown."""
    defaults = load_default_options()
    logger.info("Default segmentation options: %s", defaults)
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Granular Aligner API",
    description=(
        "Segment transcripts into timeable tokens and record per-token "
        "start/end times against audio playback."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _options_from_config(config: SegmentationConfig) -> SegmentationOptions:
    granularity = config.granularity if config.granularity is not None else DEFAULT_GRANULARITY
    punctuation = config.punctuation.value if config.punctuation is not None else DEFAULT_PUNCTUATION
    try:
        return SegmentationOptions.from_granularity(granularity, punctuation)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


def _session_to_response(session: Session) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        current_line_index=session.state.current_line_index,
        auto_advanced=session.state.auto_advanced,
        created_at=session.created_at,
        updated_at=session.updated_at,
        lines=lines_to_views(session.state.lines),
    )


def _not_found(session_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail="Session '{}' not found".format(session_id))


# ---------------------------------------------------------------------------
# Endpoints: Segmentation
# ---------------------------------------------------------------------------


@app.post(
    "/segment",
    response_model=SegmentResponse,
    tags=["segmentation"],
    summary="Segment a transcript into tokens",
    responses={422: {"model": ErrorResponse, "description": "Invalid segmentation config"}},
)
def segment(request: SegmentRequest) -> SegmentResponse:
    options = _options_from_config(request.config)
    lines = segment_transcript(request.transcript, options)
    return SegmentResponse(lines=lines_to_views(lines))


# ---------------------------------------------------------------------------
# Endpoints: Sessions
# ---------------------------------------------------------------------------


@app.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=201,
    tags=["sessions"],
    summary="Create a recording session from a transcript",
    responses={
        422: {"model": ErrorResponse, "description": "Invalid segmentation config"},
        429: {"model": ErrorResponse, "description": "Too many concurrent sessions"},
    },
)
def create_session(request: SegmentRequest) -> SessionResponse:
    options = _options_from_config(request.config)
    lines = segment_transcript(request.transcript, options)
    try:
        session = session_store.create_session(lines, options)
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    return _session_to_response(session)


@app.get(
    "/sessions",
    response_model=List[SessionSummary],
    tags=["sessions"],
    summary="List recording sessions",
)
def list_sessions() -> List[SessionSummary]:
    return [
        SessionSummary(
            id=s.id,
            line_count=len(s.state.lines),
            current_line_index=s.state.current_line_index,
            updated_at=s.updated_at,
        )
        for s in session_store.list_sessions()
    ]


@app.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Get a recording session",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
def get_session(session_id: str) -> SessionResponse:
    session = session_store.get_session(session_id)
    if session is None:
        raise _not_found(session_id)
    return _session_to_response(session)


@app.post(
    "/sessions/{session_id}/actions",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Apply a recording action",
    description=(
        "Apply record_start, record_end, revert, ignore, navigate_to_line "
        "or reset. Actions whose preconditions are not met leave the "
        "session unchanged."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        422: {"model": ErrorResponse, "description": "Invalid action arguments"},
    },
)
def apply_action(session_id: str, request: ActionRequest) -> SessionResponse:
    try:
        session = session_store.apply_action(
            session_id,
            request.action,
            current_time=request.current_time,
            line_index=request.line_index,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    if session is None:
        raise _not_found(session_id)
    return _session_to_response(session)


@app.delete(
    "/sessions/{session_id}",
    status_code=204,
    tags=["sessions"],
    summary="Delete a recording session",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
def delete_session(session_id: str) -> Response:
    if not session_store.delete_session(session_id):
        raise _not_found(session_id)
    return Response(status_code=204)


@app.get(
    "/sessions/{session_id}/export/{format_key}",
    tags=["sessions"],
    summary="Download a session export",
    responses={404: {"model": ErrorResponse, "description": "Session or format not found"}},
)
def export_session(session_id: str, format_key: str) -> Response:
    if format_key not in FORMATTERS:
        raise HTTPException(
            status_code=404,
            detail="Unknown format '{}'. Available: {}".format(
                format_key, ", ".join(sorted(FORMATTERS.keys()))
            ),
        )
    session = session_store.get_session(session_id)
    if session is None:
        raise _not_found(session_id)

    output = FORMATTERS[format_key]().format(session.state)[0]
    filename = "session-{}{}".format(session.id, output.suffix)
    return Response(
        content=output.content,
        media_type=output.media_type,
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(filename)},
    )


# ---------------------------------------------------------------------------
# Endpoints: Meta
# ---------------------------------------------------------------------------


@app.get(
    "/formats",
    response_model=List[FormatInfo],
    tags=["meta"],
    summary="List available export formats",
)
def list_formats() -> List[FormatInfo]:
    return [
        FormatInfo(key=key, name=cls().name)
        for key, cls in FORMATTERS.items()
    ]


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["meta"],
    summary="Health check",
)
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)
