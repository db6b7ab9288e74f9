"""Per-connection session state"""

import time
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Set

import structlog

logger = structlog.get_logger(__name__)

Emitter = Callable[[str, Dict[str, Any]], Awaitable[None]]


class StageCategory(str, Enum):
    """Busy-flag categories; at most one in-flight job per category per session"""
    GESTURE = "gesture-processing"
    SPEECH = "speech-processing"


class StageGuard:
    """Holds a session's busy flag and clears it on exit"""
    
    def __init__(self, session: "Session", category: StageCategory):
        self.session = session
        self.category = category
        self._released = False
    
    def release(self):
        if not self._released:
            self._released = True
            self.session.busy_flags.discard(self.category)
    
    def __enter__(self) -> "StageGuard":
        return self
    
    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


class Session:
    """State for one connected client"""
    
    def __init__(self, connection_id: str, emitter: Emitter, session_id: str = None):
        self.connection_id = connection_id
        self.session_id = session_id or f"session_{uuid.uuid4().hex}"
        self.emitter = emitter
        self.created_at = time.time()
        self.last_activity = self.created_at
        self.busy_flags: Set[StageCategory] = set()
        self.avatar_settings: Dict[str, Any] = {}
    
    def touch(self):
        self.last_activity = time.time()
    
    def is_busy(self, category: StageCategory) -> bool:
        return category in self.busy_flags
    
    def claim_stage(self, category: StageCategory) -> Optional[StageGuard]:
        """Set the busy flag, or return None if a job is already in flight"""
        if category in self.busy_flags:
            return None
        self.busy_flags.add(category)
        return StageGuard(self, category)
    
    def clear_flags(self):
        self.busy_flags.clear()
    
    def processing_status(self) -> Dict[str, bool]:
        return {
            "sign_processing": StageCategory.GESTURE in self.busy_flags,
            "voice_processing": StageCategory.SPEECH in self.busy_flags,
        }
    
    def __repr__(self) -> str:
        return f"Session(connection_id={self.connection_id!r}, session_id={self.session_id!r})"


class SessionRegistry:
    """Connection id -> Session map owned by the coordinator"""
    
    def __init__(self):
        self._sessions: Dict[str, Session] = {}
    
    def insert(self, session: Session):
        if session.connection_id in self._sessions:
            logger.warning("Replacing existing session", connection_id=session.connection_id)
        self._sessions[session.connection_id] = session
    
    def remove(self, connection_id: str) -> Optional[Session]:
        session = self._sessions.pop(connection_id, None)
        if session is not None:
            session.clear_flags()
        return session
    
    def get(self, connection_id: str) -> Optional[Session]:
        return self._sessions.get(connection_id)
    
    def snapshot(self) -> List[Session]:
        return list(self._sessions.values())
    
    def clear(self):
        for session in self._sessions.values():
            session.clear_flags()
        self._sessions.clear()
    
    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions
    
    def __iter__(self) -> Iterator[Session]:
        return iter(self.snapshot())
    
    def __len__(self) -> int:
        return len(self._sessions)
