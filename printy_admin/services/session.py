"""
Conversation Store for the Printy Admin Assistant
=================================================

This module keeps the live admin conversations. Every conversation is keyed
by its session id and owns its own flow instance, context snapshot and
transcript, so two admins working the same topic never share state.

Conversations are in-memory only: a flow holds callables into the record
store, which cannot be serialized. Losing a conversation (restart, TTL,
eviction) means the admin starts a new one; the records themselves are
already committed.

Eviction Strategy:
------------------
1. **TTL-based**: Conversations not touched within SESSION_TTL_SECONDS are
   dropped. Checked probabilistically (~1% of lookups) to avoid overhead.

2. **LRU-based**: When the store reaches SESSION_MAX_CACHE_SIZE, the oldest 10%
   (by last access time) are evicted to make room.

Thread Safety:
--------------
All store operations are protected by a threading.Lock because FastAPI runs
sync endpoints in a thread pool. A single conversation is still expected to
see one turn at a time.

Usage:
------
    from printy_admin.services.session import conversation_store

    conversation = conversation_store.create(flow, topic, context)
    conversation = conversation_store.get(session_id)
    if conversation is None:
        raise HTTPException(404, "Conversation not found")
"""

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import SESSION_MAX_CACHE_SIZE, SESSION_TTL_SECONDS
from ..flows.base import FlowBase
from ..flows.state import BotMessage, FlowContext

logger = logging.getLogger(__name__)


@dataclass
class ConversationSession:
    """One admin conversation and everything it needs between turns."""

    session_id: str
    flow: FlowBase
    topic: Optional[str]
    context: FlowContext
    transcript: List[Dict[str, str]] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    last_access: float = field(default_factory=time.time)

    def record_user(self, text: str) -> None:
        self.transcript.append({"role": "admin", "text": text})

    def record_bot(self, messages: List[BotMessage]) -> None:
        self.transcript.extend({"role": m.role, "text": m.text} for m in messages)


class ConversationStore:
    """Session-keyed store of live conversations with TTL and LRU eviction."""

    def __init__(
        self,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        max_size: int = SESSION_MAX_CACHE_SIZE,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._sessions: Dict[str, ConversationSession] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # Maintenance
    # =========================================================================

    def _cleanup_expired_sessions(self) -> int:
        """
        Remove conversations not accessed within the TTL.

        Returns:
            int: Number of conversations removed
        """
        now = time.time()
        with self._lock:
            expired = [
                sid for sid, conv in self._sessions.items()
                if now - conv.last_access > self.ttl_seconds
            ]
            for sid in expired:
                del self._sessions[sid]

        if expired:
            logger.debug("Cleaned up %d expired conversations", len(expired))
        return len(expired)

    def _evict_oldest_sessions(self, count: int) -> None:
        """Evict the least recently used conversations. Caller holds the lock."""
        oldest = sorted(self._sessions.items(), key=lambda item: item[1].last_access)
        for sid, _ in oldest[:count]:
            del self._sessions[sid]
        logger.debug("Evicted %d oldest conversations", min(count, len(oldest)))

    # =========================================================================
    # Public API
    # =========================================================================

    def create(
        self,
        flow: FlowBase,
        topic: Optional[str],
        context: FlowContext,
        session_id: Optional[str] = None,
    ) -> ConversationSession:
        """
        Store a new conversation, replacing any existing one with the same id.

        A new session id is generated when none is given.
        """
        session_id = session_id or str(uuid.uuid4())
        conversation = ConversationSession(
            session_id=session_id, flow=flow, topic=topic, context=context
        )
        with self._lock:
            if len(self._sessions) >= self.max_size and session_id not in self._sessions:
                self._evict_oldest_sessions(max(1, self.max_size // 10))
            self._sessions[session_id] = conversation

        logger.info("Conversation %s opened on %s", session_id[:8], flow.flow_id)
        return conversation

    def get(self, session_id: str) -> Optional[ConversationSession]:
        """Return the conversation and refresh its access time, or None."""
        if random.randint(1, 100) == 1:
            self._cleanup_expired_sessions()

        with self._lock:
            conversation = self._sessions.get(session_id)
            if conversation is None:
                return None
            if time.time() - conversation.last_access > self.ttl_seconds:
                del self._sessions[session_id]
                logger.debug("Conversation %s expired", session_id[:8])
                return None
            conversation.last_access = time.time()
            return conversation

    def delete(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info("Conversation %s closed", session_id[:8])
        return removed

    def clear_cache(self) -> int:
        """
        Drop every conversation.

        Useful for testing and maintenance.

        Returns:
            int: Number of conversations that were stored
        """
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
        logger.info("Cleared %d conversations", count)
        return count

    def get_cache_stats(self) -> Dict[str, Any]:
        """Size, limits and access-time range of the store, for monitoring."""
        with self._lock:
            access_times = [conv.last_access for conv in self._sessions.values()]
            return {
                "size": len(self._sessions),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "oldest_access": min(access_times) if access_times else None,
                "newest_access": max(access_times) if access_times else None,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


conversation_store = ConversationStore()
