"""In-memory recording session store with serialized mutations and TTL cleanup.

WHY: Over HTTP, several requests can reach the same recording session at
once (a tap arriving while an export is being read, two browser tabs).
The recording state machine assumes exactly one writer, so every
mutation of a session must go through one lock. Sessions are short-lived
working documents, so an in-memory store is enough.

HOW: Two components:
  Session     : dataclass holding the session id, the segmented lines it
                was created from, its options, and the current state
  SessionStore: dict-based store; create/get/list/apply/reset/delete
                and TTL cleanup all run under one threading.Lock

RULES:
- All store reads and mutations acquire self._lock
- apply_action() runs the whole transition under the lock, so actions on
  a session are applied one at a time, in arrival order
- Returned Session objects are snapshots; callers never mutate store state
- Idle sessions expire after ttl_seconds (measured from updated_at)
- Session IDs are UUID4 hex strings generated at creation time
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from granular_aligner.config import MAX_SESSIONS, SESSION_TTL_SECONDS
from granular_aligner.core.ir import Line, RecordingState, SegmentationOptions
from granular_aligner.core.recording import RecordingAction, dispatch, reset

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One recording session.

    RULES:
    - id: UUID4 hex string, immutable after creation
    - initial_lines: segmentation output the session was seeded with,
      used again by RESET
    - options: segmentation options used to build initial_lines
    - state: current RecordingState
    - created_at / updated_at: epoch timestamps
    """

    id: str
    initial_lines: List[Line]
    options: SegmentationOptions
    state: RecordingState
    created_at: float
    updated_at: float


class SessionStore:
    """Thread-safe in-memory store for recording sessions."""

    def __init__(
        self,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        max_sessions: int = MAX_SESSIONS,
    ) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions

    @staticmethod
    def _snapshot(session: Session) -> Session:
        return dataclasses.replace(session)

    def create_session(
        self,
        lines: List[Line],
        options: SegmentationOptions,
    ) -> Session:
        """Create a session seeded from segmented lines.

        Raises:
            ValueError: If the store already holds max_sessions sessions.
        """
        state = reset(lines)

        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise ValueError(
                    "Maximum number of concurrent sessions ({}) reached".format(
                        self.max_sessions
                    )
                )

            session_id = uuid.uuid4().hex
            now = time.time()
            session = Session(
                id=session_id,
                initial_lines=state.lines,
                options=options,
                state=state,
                created_at=now,
                updated_at=now,
            )
            self._sessions[session_id] = session

        logger.info("Created session %s with %d lines", session_id, len(lines))
        return self._snapshot(session)

    def get_session(self, session_id: str) -> Optional[Session]:
        """Return a snapshot of the session, or None if not found."""
        with self._lock:
            session = self._sessions.get(session_id)
            return self._snapshot(session) if session is not None else None

    def list_sessions(self) -> List[Session]:
        """Return snapshots of all sessions, oldest first."""
        with self._lock:
            return [
                self._snapshot(s)
                for s in sorted(self._sessions.values(), key=lambda s: s.created_at)
            ]

    def apply_action(
        self,
        session_id: str,
        action: RecordingAction,
        current_time: Optional[float] = None,
        line_index: Optional[int] = None,
    ) -> Optional[Session]:
        """Apply one recording action to a session.

        Returns:
            The updated session snapshot, or None if session_id is unknown.

        Raises:
            ValueError: If the action arguments are invalid; the session
                is left unchanged.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None

            session.state = dispatch(
                session.state,
                action,
                current_time=current_time,
                line_index=line_index,
                initial_lines=session.initial_lines,
            )
            session.updated_at = time.time()
            snapshot = self._snapshot(session)

        logger.debug(
            "Session %s: %s -> line %d (auto_advanced=%s)",
            session_id,
            RecordingAction(action).value,
            snapshot.state.current_line_index,
            snapshot.state.auto_advanced,
        )
        return snapshot

    def delete_session(self, session_id: str) -> bool:
        """Delete a session. Returns True if it existed."""
        with self._lock:
            session = self._sessions.pop(session_id, None)

        if session is None:
            return False

        logger.info("Deleted session %s", session_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove sessions idle for longer than the TTL.

        Returns:
            The number of removed sessions.
        """
        now = time.time()
        expired: List[Session] = []

        with self._lock:
            for session_id, session in list(self._sessions.items()):
                if now - session.updated_at > self._ttl_seconds:
                    expired.append(self._sessions.pop(session_id))

        for session in expired:
            logger.info("Expired session %s (idle %.0fs)", session.id, now - session.updated_at)

        return len(expired)
