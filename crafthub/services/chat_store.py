# crafthub/services/chat_store.py
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import or_

from ..model import Template

MIN_WORD_LENGTH = 3


@dataclass
class _Session:
    messages: list = field(default_factory=list)
    touched_at: float = 0.0


class ChatSessionStore:
    """Conversation history per session id.

    Bounded in two directions: at most ``max_sessions`` sessions (least
    recently used evicted first) and sessions idle longer than
    ``ttl_seconds`` are dropped. Each session keeps its last
    ``max_messages`` messages.
    """

    def __init__(self, max_sessions=1000, ttl_seconds=3600, max_messages=20, clock=time.monotonic):
        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self.max_messages = max_messages
        self._clock = clock
        self._sessions: "OrderedDict[str, _Session]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            self._purge(self._clock())
            return len(self._sessions)

    def _purge(self, now):
        expired = [sid for sid, s in self._sessions.items() if now - s.touched_at > self.ttl_seconds]
        for sid in expired:
            del self._sessions[sid]

    def purge_expired(self) -> int:
        with self._lock:
            before = len(self._sessions)
            self._purge(self._clock())
            return before - len(self._sessions)

    def append(self, session_id: str, role: str, content: str) -> list:
        now = self._clock()
        with self._lock:
            self._purge(now)
            session = self._sessions.pop(session_id, None) or _Session()
            session.messages.append({"role": role, "content": content})
            del session.messages[:-self.max_messages]
            session.touched_at = now
            self._sessions[session_id] = session
            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)
            return list(session.messages)

    def history(self, session_id: str) -> list:
        now = self._clock()
        with self._lock:
            self._purge(now)
            session = self._sessions.get(session_id)
            return list(session.messages) if session else []

    def clear(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None


def search_templates(query: str, limit: int = 5):
    words = [w for w in (query or "").lower().split() if len(w) >= MIN_WORD_LENGTH]
    if not words:
        return []
    clauses = []
    for w in words:
        pattern = f"%{w}%"
        clauses += [
            Template.title.ilike(pattern),
            Template.description.ilike(pattern),
            Template.category.ilike(pattern),
        ]
    return Template.query.filter(or_(*clauses)).order_by(Template.title.asc()).limit(limit).all()


def catalog_responder(message: str, history: list, templates: list) -> str:
    """Default reply: a plain summary of matching templates."""
    if not templates:
        return "I couldn't find templates matching that. Try describing the style or category you need."
    lines = [f"- {t.title} ({t.category or 'template'}): ${float(t.price):.2f}" for t in templates]
    return "Here are some templates that may fit:\n" + "\n".join(lines)


def get_chat_store() -> ChatSessionStore:
    return current_app.extensions["chat_store"]
