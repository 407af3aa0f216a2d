"""
SessionRegistry: session key -> AuthenticatedSession, with lazy creation and an hourly sweep.
"""
import logging
import threading
from typing import Callable, Dict, List, Optional

from poolmon.plugins.omnilogic.const import DEFAULT_BASE_URL
from poolmon.plugins.omnilogic.session import AuthenticatedSession

SWEEP_TASK_NAME = "omnilogic_session_sweep"
DEFAULT_SWEEP_INTERVAL = 3600


class SessionRegistry:
    def __init__(self, session_factory: Optional[Callable[[str], AuthenticatedSession]] = None):
        self._factory = session_factory or AuthenticatedSession
        self._sessions: Dict[str, AuthenticatedSession] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(cls, config: dict) -> "SessionRegistry":
        base_url = config.get("base_url") or DEFAULT_BASE_URL
        timeout = float(config.get("request_timeout_seconds", 10))
        max_idle = float(config.get("session_max_idle_hours", 24)) * 3600

        def factory(key: str) -> AuthenticatedSession:
            return AuthenticatedSession(key, base_url=base_url, timeout=timeout, max_idle_seconds=max_idle)

        return cls(factory)

    def get(self, key: str) -> AuthenticatedSession:
        """Existing live session for key, or a new unauthenticated one. Never an expired session."""
        with self._lock:
            session = self._sessions.get(key)
            if session is not None and not session.is_expired():
                return session
            if session is not None:
                self.logger.info(f"Session {key} expired, replacing it")
            session = self._factory(key)
            self._sessions[key] = session
            return session

    def peek(self, key: str) -> Optional[AuthenticatedSession]:
        with self._lock:
            return self._sessions.get(key)

    def remove(self, key: str) -> bool:
        with self._lock:
            session = self._sessions.pop(key, None)
        if session is None:
            return False
        session.logout()
        self.logger.info(f"Session {key} removed")
        return True

    def all_sessions(self) -> List[AuthenticatedSession]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def sweep_expired(self) -> int:
        """Drop every expired session; returns how many were removed."""
        with self._lock:
            expired = [key for key, session in self._sessions.items() if session.is_expired()]
            for key in expired:
                del self._sessions[key]
        if expired:
            self.logger.info(f"Swept {len(expired)} expired session(s)")
        return len(expired)

    def start_sweeper(self, task_manager, interval_seconds: int = DEFAULT_SWEEP_INTERVAL) -> None:
        task_manager.schedule_task(SWEEP_TASK_NAME, self.sweep_expired, interval_seconds, one_time=False)
