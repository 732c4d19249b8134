"""
Connection sessions and room-scoped delivery.

A session is one WebSocket connection. It is distinct from the Player it is
bound to: `session_id` identifies the connection, `player_id` identifies the
seat it currently occupies (assigned on create/join, cleared on leave).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    session_id: str
    player_id: Optional[str] = None
    name: Optional[str] = None
    room_id: Optional[str] = None

    async def emit(self, event: str, data: dict) -> None:
        """Send one event to this connection."""
        await self.websocket.send_json({"event": event, "data": data})


class SessionRegistry:
    """
    Tracks which sessions are in which room.

    Delivery failures to a single connection are logged and skipped so one
    dead socket never blocks the rest of the room.
    """

    def __init__(self) -> None:
        self.sessions: dict[str, ConnectionContext] = {}
        self.room_members: dict[str, set[str]] = {}

    def connect(self, ctx: ConnectionContext) -> None:
        self.sessions[ctx.session_id] = ctx

    def disconnect(self, ctx: ConnectionContext) -> None:
        """Forget a session. Safe to call more than once."""
        self.leave_room(ctx)
        self.sessions.pop(ctx.session_id, None)

    def join_room(self, ctx: ConnectionContext, room_id: str) -> None:
        self.room_members.setdefault(room_id, set()).add(ctx.session_id)

    def leave_room(self, ctx: ConnectionContext) -> None:
        if not ctx.room_id:
            return
        members = self.room_members.get(ctx.room_id)
        if members is None:
            return
        members.discard(ctx.session_id)
        if not members:
            del self.room_members[ctx.room_id]

    def members(self, room_id: str) -> list[ConnectionContext]:
        """Snapshot of the sessions currently in a room."""
        ids = list(self.room_members.get(room_id, ()))
        return [self.sessions[sid] for sid in ids if sid in self.sessions]

    async def broadcast(self, room_id: str, event: str, data: dict) -> None:
        """
        Send an event to every session in a room.

        Args:
            room_id: Target room.
            event: Event name.
            data: JSON-serializable payload.
        """
        for ctx in self.members(room_id):
            await self.send(ctx, event, data)

    async def send(self, ctx: ConnectionContext, event: str, data: dict) -> None:
        try:
            await ctx.emit(event, data)
        except Exception as e:
            logger.debug(f"Send to session {ctx.session_id} failed: {e}")
