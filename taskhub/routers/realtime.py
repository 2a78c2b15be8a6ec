"""
WebSocket endpoint for live task updates.

Clients authenticate with the same bearer token as the REST API, either
as ``?token=`` or in the Authorization header. Each connection starts
subscribed to its own ``user:<id>`` scope and can join the scope of any
project it may access:

    -> {"event": "join-project", "projectId": "<uuid>"}
    <- {"event": "joined-project", "data": {"projectId": "<uuid>"}}
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from taskhub.core.config import settings as default_settings
from taskhub.core.permissions import can_access_project
from taskhub.errors import AppError
from taskhub.models.user import User
from taskhub.repositories.project_repository import ProjectRepository
from taskhub.services.auth_service import AuthService
from taskhub.services.notifier import ChangeNotifier, QueueSubscriber, project_scope, user_scope

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

JOIN_PROJECT = "join-project"
LEAVE_PROJECT = "leave-project"


def _bearer_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def _authenticate(websocket: WebSocket, token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    state = websocket.app.state
    async with state.session_factory() as db:
        try:
            return await AuthService(db, settings=getattr(state, "settings", default_settings)).resolve_principal(token)
        except AppError as exc:
            logger.info("Rejected realtime connection: %s", exc.message)
            return None


def _error(message: str) -> Dict[str, Any]:
    return {"event": "error", "data": {"message": message}}


async def _handle_message(
    websocket: WebSocket,
    notifier: ChangeNotifier,
    session: QueueSubscriber,
    user: User,
    message: Any,
) -> None:
    if not isinstance(message, dict):
        session.deliver(_error("Messages must be JSON objects"))
        return

    event = message.get("event")
    if event not in (JOIN_PROJECT, LEAVE_PROJECT):
        session.deliver(_error(f"Unknown event: {event}"))
        return

    try:
        project_id = UUID(str(message.get("projectId")))
    except ValueError:
        session.deliver(_error("Invalid projectId"))
        return

    scope = project_scope(project_id)
    if event == LEAVE_PROJECT:
        notifier.unsubscribe(session, scope)
        session.deliver({"event": "left-project", "data": {"projectId": str(project_id)}})
        return

    async with websocket.app.state.session_factory() as db:
        project = await ProjectRepository(db).get_by_id(project_id)
        allowed = can_access_project(user, project)

    if not allowed:
        session.deliver(_error("Project not found"))
        return

    notifier.subscribe(session, scope)
    session.deliver({"event": "joined-project", "data": {"projectId": str(project_id)}})


async def _pump(websocket: WebSocket, session: QueueSubscriber) -> None:
    while True:
        message = await session.queue.get()
        await websocket.send_json(message)


@router.websocket("/ws")
async def realtime(websocket: WebSocket, token: Optional[str] = None):
    user = await _authenticate(websocket, _bearer_token(websocket, token))
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    notifier: Optional[ChangeNotifier] = getattr(websocket.app.state, "notifier", None)
    if notifier is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    await websocket.accept()
    app_settings = getattr(websocket.app.state, "settings", default_settings)
    session = QueueSubscriber(user.id, maxsize=app_settings.NOTIFIER_QUEUE_SIZE)
    notifier.subscribe(session, user_scope(user.id))
    session.deliver({"event": "connected", "data": {"userId": str(user.id)}})
    logger.info("Realtime session opened for user %s", user.id)

    sender = asyncio.create_task(_pump(websocket, session))
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                session.deliver(_error("Malformed JSON"))
                continue
            await _handle_message(websocket, notifier, session, user, message)
    except WebSocketDisconnect:
        pass
    finally:
        notifier.unsubscribe_all(session)
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.debug("Sender for user %s stopped with an error", user.id, exc_info=True)
        logger.info("Realtime session closed for user %s", user.id)
