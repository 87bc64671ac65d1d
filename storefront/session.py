# storefront/session.py
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from .cart import Cart
from .models import CatalogSnapshot

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    session_id: str
    last_seen: datetime
    cart: Cart = field(default_factory=Cart)
    catalog: Optional[CatalogSnapshot] = None


class SessionStore:
    """In-memory browsing sessions; each owns exactly one cart.

    Sessions idle for longer than ``max_idle`` are dropped, together with
    their cart, the next time a session is opened.
    """

    def __init__(self, max_idle: timedelta = timedelta(hours=2), clock: Optional[Callable[[], datetime]] = None):
        self.max_idle = max_idle
        self._clock = clock or _utcnow
        self._sessions: Dict[str, Session] = {}

    def create(self) -> Session:
        self.sweep()
        session = Session(session_id=f"sess_{uuid.uuid4().hex[:12]}", last_seen=self._clock())
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        now = self._clock()
        if now - session.last_seen > self.max_idle:
            del self._sessions[session_id]
            return None
        session.last_seen = now
        return session

    def sweep(self) -> int:
        cutoff = self._clock() - self.max_idle
        expired = [sid for sid, s in self._sessions.items() if s.last_seen < cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("Dropped %s idle session(s)", len(expired))
        return len(expired)

    def close(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)
