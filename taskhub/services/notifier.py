"""
Change notifier: scoped publish/subscribe for live task updates.

Sessions (connected clients) subscribe to scopes such as ``project:<id>``
or ``user:<id>``. Publishing hands a message to every session currently
subscribed, once per session. Delivery is best-effort: no retries, no
replay, a disconnected or saturated session simply misses the message.

One lock guards the subscription table. Fan-out happens while holding it,
which is what gives per-scope FIFO ordering; ``deliver`` must therefore
never block. Actual socket writes happen later, in each connection's own
sender task.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set
from uuid import UUID

from taskhub.utils.time import utc_now_iso

logger = logging.getLogger(__name__)


class TaskEvent(str, Enum):
    TASK_CREATED = "taskCreated"
    TASK_UPDATED = "taskUpdated"
    TASK_DELETED = "taskDeleted"
    TASK_ASSIGNED = "taskAssigned"
    COMMENT_ADDED = "commentAdded"
    # Sent instead of the task body to scopes that lost sight of the task
    TASK_REMOVED = "taskRemoved"


def project_scope(project_id: UUID) -> str:
    return f"project:{project_id}"


def user_scope(user_id: UUID) -> str:
    return f"user:{user_id}"


class Subscriber(Protocol):
    def deliver(self, message: Dict[str, Any]) -> None:
        """Accept a message without blocking."""


class QueueSubscriber:
    """
    Subscriber backed by a bounded asyncio queue.

    The WebSocket handler drains ``queue`` and writes to the socket.
    """

    def __init__(self, user_id: Optional[UUID] = None, maxsize: int = 256) -> None:
        self.user_id = user_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def deliver(self, message: Dict[str, Any]) -> None:
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Dropping %s for user %s: outbox full (%d dropped so far)",
                message.get("event"),
                self.user_id,
                self.dropped,
            )

    def __repr__(self) -> str:
        return f"QueueSubscriber(user_id={self.user_id})"


class ChangeNotifier:
    """Subscription registry and fan-out."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # scope -> sessions, dicts used as insertion-ordered sets
        self._by_scope: Dict[str, Dict[Subscriber, None]] = {}
        self._by_session: Dict[Subscriber, Set[str]] = {}
        self._closed = False

    def subscribe(self, session: Subscriber, scope: str) -> bool:
        """Add a scope to a session. Returns False if it was already there."""
        with self._lock:
            if self._closed:
                return False
            sessions = self._by_scope.setdefault(scope, {})
            if session in sessions:
                return False
            sessions[session] = None
            self._by_session.setdefault(session, set()).add(scope)
        logger.debug("%r subscribed to %s", session, scope)
        return True

    def _detach(self, session: Subscriber, scope: str) -> None:
        # caller holds the lock
        sessions = self._by_scope.get(scope)
        if sessions is not None:
            sessions.pop(session, None)
            if not sessions:
                del self._by_scope[scope]
        scopes = self._by_session.get(session)
        if scopes is not None:
            scopes.discard(scope)
            if not scopes:
                del self._by_session[session]

    def unsubscribe(self, session: Subscriber, scope: str) -> bool:
        """Remove one scope from a session. Returns False if it was not subscribed."""
        with self._lock:
            sessions = self._by_scope.get(scope)
            if not sessions or session not in sessions:
                return False
            self._detach(session, scope)
        logger.debug("%r unsubscribed from %s", session, scope)
        return True

    def unsubscribe_user(self, scope: str, user_id: UUID) -> int:
        """
        Remove every session belonging to a user from one scope.

        Called when the user loses access to what the scope carries.
        Returns how many sessions were removed.
        """
        with self._lock:
            owned = [
                session
                for session in self._by_scope.get(scope, {})
                if getattr(session, "user_id", None) == user_id
            ]
            for session in owned:
                self._detach(session, scope)
        if owned:
            logger.info("Removed %d session(s) of user %s from %s", len(owned), user_id, scope)
        return len(owned)

    def drop_scope(self, scope: str) -> int:
        """Unsubscribe every session from a scope whose subject is gone."""
        with self._lock:
            sessions = list(self._by_scope.get(scope, {}))
            for session in sessions:
                self._detach(session, scope)
        if sessions:
            logger.info("Dropped %s with %d subscriber(s)", scope, len(sessions))
        return len(sessions)

    def unsubscribe_all(self, session: Subscriber) -> None:
        """Drop every subscription a session holds (on disconnect)."""
        with self._lock:
            for scope in list(self._by_session.get(session, ())):
                self._detach(session, scope)

    def subscribers(self, scope: str) -> List[Subscriber]:
        with self._lock:
            return list(self._by_scope.get(scope, {}))

    def scopes_for(self, session: Subscriber) -> Set[str]:
        with self._lock:
            return set(self._by_session.get(session, set()))

    def publish(self, scope: str, event: str, payload: Any) -> int:
        """Deliver to every session subscribed to scope. Returns the delivery count."""
        return self.publish_many([scope], event, payload)

    def publish_many(
        self,
        scopes: Iterable[str],
        event: str,
        payload: Any,
        exclude: Iterable[str] = (),
    ) -> int:
        """
        Deliver one message to the union of the scopes' subscribers.

        A session subscribed to several of the scopes receives it once,
        labelled with the first matching scope. Sessions subscribed to any
        scope in ``exclude`` are skipped. Never raises.
        """
        event_name = event.value if isinstance(event, Enum) else str(event)
        timestamp = utc_now_iso()
        delivered = 0

        with self._lock:
            skipped: Set[Subscriber] = set()
            for scope in exclude:
                skipped.update(self._by_scope.get(scope, {}))

            targets: Dict[Subscriber, str] = {}
            for scope in dict.fromkeys(scopes):
                for session in self._by_scope.get(scope, {}):
                    if session not in skipped:
                        targets.setdefault(session, scope)

            for session, scope in targets.items():
                message = {
                    "event": event_name,
                    "scope": scope,
                    "data": payload,
                    "timestamp": timestamp,
                }
                try:
                    session.deliver(message)
                    delivered += 1
                except Exception:
                    logger.warning("Delivery of %s to %r failed", event_name, session, exc_info=True)

        logger.debug("Published %s to %d session(s)", event_name, delivered)
        return delivered

    def close(self) -> None:
        """Forget every subscription; later subscribe calls are refused."""
        with self._lock:
            self._closed = True
            self._by_scope.clear()
            self._by_session.clear()
