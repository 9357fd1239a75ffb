"""Room-based, best-effort fan-out of orchestration lifecycle events.

Nothing is queued or persisted: a listener that is not joined when an event
fires never sees it and must re-fetch state instead.
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from mcp_system.models import Project
from mcp_system.storage import Storage

logger = logging.getLogger(__name__)

Listener = Callable[[str, dict[str, Any]], Awaitable[None]]


class Events:
    NEW_MESSAGE = "new_message"
    BUILDER_THINKING = "builder_thinking"
    BUILDER_COMPLETED = "builder_completed"
    BUILDER_ERROR = "builder_error"
    JUDGE_THINKING = "judge_thinking"
    JUDGE_COMPLETED = "judge_completed"
    JUDGE_ERROR = "judge_error"
    ROLES_SWITCHED = "roles_switched"
    DEBATE_TURN_THINKING = "debate_turn_thinking"
    DEBATE_TURN_COMPLETED = "debate_turn_completed"
    DEBATE_TURN_ERROR = "debate_turn_error"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def project_room(project_id: str) -> str:
    return f"project:{project_id}"


def conversation_room(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


def debate_room(debate_id: str) -> str:
    return f"debate:{debate_id}"


@dataclass
class Client:
    client_id: str
    user_id: str
    listener: Listener
    rooms: set[str] = field(default_factory=set)


class Notifier:
    """Tracks connected clients and the rooms they sit in."""

    def __init__(self, storage: Storage | None = None) -> None:
        self._storage = storage
        self._clients: dict[str, Client] = {}
        self._rooms: dict[str, set[str]] = defaultdict(set)

    async def connect(self, client_id: str, user_id: str, listener: Listener) -> Client:
        """Register an authenticated client and auto-join its user and project rooms."""
        client = Client(client_id=client_id, user_id=user_id, listener=listener)
        self._clients[client_id] = client
        self.join(client_id, user_room(user_id))

        if self._storage is not None:
            joined = 0
            for row in await self._storage.select("projects"):
                if Project.from_row(row).is_member(user_id):
                    self.join(client_id, project_room(row["id"]))
                    joined += 1
            logger.info("User %s connected, joined %d project rooms", user_id, joined)
        return client

    def disconnect(self, client_id: str) -> None:
        client = self._clients.pop(client_id, None)
        if client is None:
            return
        for room in client.rooms:
            self._rooms[room].discard(client_id)
        logger.info("User %s disconnected", client.user_id)

    def join(self, client_id: str, room: str) -> None:
        client = self._clients.get(client_id)
        if client is None:
            raise KeyError(f"Unknown client: {client_id}")
        client.rooms.add(room)
        self._rooms[room].add(client_id)

    def leave(self, client_id: str, room: str) -> None:
        client = self._clients.get(client_id)
        if client is not None:
            client.rooms.discard(room)
        self._rooms[room].discard(client_id)

    def join_conversation(self, client_id: str, conversation_id: str) -> None:
        self.join(client_id, conversation_room(conversation_id))

    def leave_conversation(self, client_id: str, conversation_id: str) -> None:
        self.leave(client_id, conversation_room(conversation_id))

    def join_debate(self, client_id: str, debate_id: str) -> None:
        self.join(client_id, debate_room(debate_id))

    def leave_debate(self, client_id: str, debate_id: str) -> None:
        self.leave(client_id, debate_room(debate_id))

    def members(self, room: str) -> set[str]:
        return set(self._rooms.get(room, ()))

    async def emit(self, room: str, event: str, payload: dict[str, Any]) -> int:
        """Deliver event to every client in room. Returns how many listeners accepted it.

        A failing listener is logged and skipped; the remaining ones still run.
        """
        delivered = 0
        for client_id in sorted(self._rooms.get(room, ())):
            client = self._clients.get(client_id)
            if client is None:
                continue
            try:
                await client.listener(event, payload)
                delivered += 1
            except Exception as exc:
                logger.warning("Delivery of %s to %s failed: %s", event, client_id, exc)
        logger.debug("Emitted %s to %s (%d listeners)", event, room, delivered)
        return delivered
