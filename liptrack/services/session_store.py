"""
Streaming sessions: one LipTrackProcessor per client stream.

Sessions are closed by the client. A session that sees no request for
``idle_timeout_seconds`` is treated as abandoned and dropped without a flush
the next time the store is used, so dead clients cannot hold session slots.
"""

import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional

from liptrack.config import LipTrackOptions
from liptrack.services.errors import SessionLimitError, SessionNotFoundError
from liptrack.services.lip_track_processor import LipTrackProcessor, WindowResult

logger = logging.getLogger(__name__)


@dataclass
class LipTrackSession:
    """An open streaming session."""
    session_id: str
    processor: LipTrackProcessor
    created_at: float = field(default_factory=time.time)
    # Monotonic time of the last request that used this session
    last_seen: float = field(default_factory=time.monotonic)
    frames_received: int = 0
    # Held while a frame or the final flush runs in the executor
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def idle_seconds(self, now: float) -> float:
        return now - self.last_seen


class SessionStore:
    """In-memory registry of streaming sessions, used from the event loop only."""

    def __init__(self, max_sessions: int, idle_timeout_seconds: float = 300.0):
        self.max_sessions = max_sessions
        self.idle_timeout_seconds = idle_timeout_seconds
        self._sessions: OrderedDict[str, LipTrackSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def create(self, options: LipTrackOptions) -> LipTrackSession:
        """Open a new session with its own processor."""
        self.expire_idle()
        if len(self._sessions) >= self.max_sessions:
            raise SessionLimitError(f"Session limit reached ({self.max_sessions})")

        session = LipTrackSession(
            session_id=str(uuid.uuid4()),
            processor=LipTrackProcessor(options),
        )
        self._sessions[session.session_id] = session
        logger.info(f"[{session.session_id}] Session opened ({len(self._sessions)} open)")
        return session

    def get(self, session_id: str) -> LipTrackSession:
        """Look up a session and mark it as used."""
        self.expire_idle()
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Unknown session: {session_id}")
        session.touch()
        return session

    def pop(self, session_id: str) -> LipTrackSession:
        """Detach a session from the store without flushing it."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(f"Unknown session: {session_id}")
        logger.info(
            f"[{session_id}] Session closed after {session.frames_received} frames "
            f"({len(self._sessions)} open)"
        )
        return session

    def close(self, session_id: str) -> Optional[WindowResult]:
        """Flush the session's pending window and drop it."""
        return self.pop(session_id).processor.close()

    def expire_idle(self, now: Optional[float] = None) -> list[str]:
        """
        Drop sessions idle for longer than the timeout.

        Sessions with a frame in flight are skipped.

        Returns:
            IDs of the expired sessions
        """
        now = time.monotonic() if now is None else now
        expired = [
            session.session_id
            for session in self._sessions.values()
            if session.idle_seconds(now) > self.idle_timeout_seconds and not session.lock.locked()
        ]
        for session_id in expired:
            session = self.pop(session_id)
            logger.warning(
                f"[{session_id}] Session expired after {session.idle_seconds(now):.0f}s idle, "
                f"dropped {session.processor.buffered_frames} buffered frames"
            )
        return expired

    def close_all(self) -> None:
        """Flush and drop every session (service shutdown)."""
        for session_id in list(self._sessions):
            self.close(session_id)

    def list_sessions(self) -> list[LipTrackSession]:
        self.expire_idle()
        return list(self._sessions.values())
