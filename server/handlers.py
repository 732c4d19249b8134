"""WebSocket event handlers for the card table.

Each handler corresponds to a single inbound event name and returns the
acknowledgement dict (`{"ok": bool, "error"?: str, ...}`). Handlers are
dispatched via the HANDLERS dict by handle_message().

Handlers mutate the in-memory room synchronously and only then await the
broadcasts. Anything that runs after an await looks the room up again
instead of holding on to a reference from before the suspension.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from game_log import render_feed
from models.payloads import (
    CardLockRequest,
    CardRequest,
    ChatRequest,
    ChooseCharacterRequest,
    CreateRoomRequest,
    DiscardPileRequest,
    DiscardRequest,
    DrawRequest,
    JoinRoomRequest,
    LocationLockRequest,
    MoveRequest,
    PlayRequest,
    PowerRequest,
    RemoveRequest,
    SetReadyRequest,
)
from models.results import ActionResult
from processor import ActionProcessor
from projection import private_state, public_state
from room import RoomManager
from sessions import ConnectionContext, SessionRegistry
from undo import UndoEngine

logger = logging.getLogger(__name__)

NOT_IN_ROOM = {"ok": False, "error": "not in a room"}
ROOM_NOT_FOUND = {"ok": False, "error": "room not found"}


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------

async def broadcast_room_state(room_id: str, room_manager: RoomManager, sessions: SessionRegistry) -> None:
    """Send the public view to the room, then each member's private view."""
    room = room_manager.get_room(room_id)
    if not room:
        return
    await sessions.broadcast(room_id, "room:state", public_state(room))

    for member in sessions.members(room_id):
        room = room_manager.get_room(room_id)
        if not room:
            return
        view = private_state(room, member.player_id)
        if view is not None:
            await sessions.send(member, "room:self", view)


async def broadcast_room_log(room_id: str, room_manager: RoomManager, sessions: SessionRegistry) -> None:
    room = room_manager.get_room(room_id)
    if not room:
        return
    await sessions.broadcast(room_id, "room:log", {"items": render_feed(room)})


async def broadcast_system_message(room_id: str, text: str, room_manager: RoomManager, sessions: SessionRegistry) -> None:
    room = room_manager.get_room(room_id)
    if not room:
        return
    msg = room.chat.system(text)
    await sessions.broadcast(room_id, "chat:msg", {"roomId": room_id, "msg": msg.to_dict()})


async def publish(room_id: str, room_manager: RoomManager, sessions: SessionRegistry, log: bool = True) -> None:
    await broadcast_room_state(room_id, room_manager, sessions)
    if log:
        await broadcast_room_log(room_id, room_manager, sessions)


async def leave_current_room(
    ctx: ConnectionContext,
    room_manager: RoomManager,
    sessions: SessionRegistry,
    reason: Optional[str] = None,
) -> None:
    """
    Take this connection out of its room, if it is in one.

    Idempotent: calling it for an already-cleaned session does nothing.
    """
    room_id = ctx.room_id
    if not room_id:
        return

    sessions.leave_room(ctx)
    ctx.room_id = None
    player_id, ctx.player_id = ctx.player_id, None

    removed = room_manager.leave(room_id, player_id)
    if not removed:
        return
    logger.info(f"{removed.name} left room {room_id}" + (f" ({reason})" if reason else ""))

    if room_manager.get_room(room_id):
        suffix = f" ({reason})" if reason else ""
        await broadcast_system_message(room_id, f"{removed.name} disconnected{suffix}.", room_manager, sessions)
        await broadcast_room_state(room_id, room_manager, sessions)


# ---------------------------------------------------------------------------
# Lobby / Room handlers
# ---------------------------------------------------------------------------

async def handle_create_room(data: dict, ctx: ConnectionContext, *, room_manager, sessions, **kw) -> dict:
    req = CreateRoomRequest.model_validate(data)
    name = req.name.strip()
    if not name:
        return {"ok": False, "error": "name required"}

    if ctx.room_id:
        await leave_current_room(ctx, room_manager, sessions, reason="switching rooms")

    room = room_manager.create_room()
    player_id = room_manager.new_player_id()
    room.add_player(player_id, name)

    ctx.player_id = player_id
    ctx.name = name
    ctx.room_id = room.id
    sessions.join_room(ctx, room.id)

    logger.info(f"Room {room.id} created by {name} ({ctx.session_id})")
    await publish(room.id, room_manager, sessions)
    return {"ok": True, "roomId": room.id, "playerId": player_id}


async def handle_join_room(data: dict, ctx: ConnectionContext, *, room_manager, sessions, **kw) -> dict:
    req = JoinRoomRequest.model_validate(data)
    name = req.name.strip()
    room = room_manager.get_room(req.room_id)
    if not room:
        return ROOM_NOT_FOUND
    if not name:
        return {"ok": False, "error": "name required"}

    # Rejoining the room this session already sits in is a no-op
    if ctx.room_id == room.id and room.get_player(ctx.player_id):
        return {"ok": True, "roomId": room.id, "playerId": ctx.player_id}

    if ctx.room_id:
        await leave_current_room(ctx, room_manager, sessions, reason="switching rooms")

    room = room_manager.get_room(req.room_id)
    if not room:
        return ROOM_NOT_FOUND

    player_id = room_manager.new_player_id()
    room.add_player(player_id, name)
    ctx.player_id = player_id
    ctx.name = name
    ctx.room_id = room.id
    sessions.join_room(ctx, room.id)

    logger.info(f"{name} ({ctx.session_id}) joined room {room.id}")
    await sessions.send(ctx, "chat:history", {"roomId": room.id, "messages": room.chat.history()})
    await publish(room.id, room_manager, sessions)
    return {"ok": True, "roomId": room.id, "playerId": player_id}


async def handle_leave_room(data: dict, ctx: ConnectionContext, *, room_manager, sessions, **kw) -> dict:
    await leave_current_room(ctx, room_manager, sessions, reason="left room")
    return {"ok": True}


async def handle_choose_character(data: dict, ctx: ConnectionContext, *, room_manager, sessions, **kw) -> dict:
    req = ChooseCharacterRequest.model_validate(data)
    if not ctx.room_id:
        return NOT_IN_ROOM
    room = room_manager.get_room(ctx.room_id)
    if not room:
        return ROOM_NOT_FOUND

    result = room.choose_character(ctx.player_id, req.character_id)
    if result:
        player = room.get_player(ctx.player_id)
        announcement = f"{player.name} chose {player.character_id}"
        await broadcast_room_state(room.id, room_manager, sessions)
        await broadcast_system_message(room.id, announcement, room_manager, sessions)
    return result.to_ack()


async def handle_set_ready(data: dict, ctx: ConnectionContext, *, room_manager, sessions, **kw) -> dict:
    req = SetReadyRequest.model_validate(data)
    if not ctx.room_id:
        return NOT_IN_ROOM
    room = room_manager.get_room(ctx.room_id)
    if not room:
        return ROOM_NOT_FOUND

    result = room.set_ready(ctx.player_id, req.ready)
    if result:
        await broadcast_room_state(room.id, room_manager, sessions)
    return result.to_ack()


# ---------------------------------------------------------------------------
# Game lifecycle handlers
# ---------------------------------------------------------------------------

async def handle_start_game(data: dict, ctx: ConnectionContext, *, room_manager, sessions, processor, **kw) -> dict:
    if not ctx.room_id:
        return NOT_IN_ROOM
    room = room_manager.get_room(ctx.room_id)
    if not room:
        return ROOM_NOT_FOUND

    result = room.start_game(ctx.player_id, rng=processor.rng)
    if result:
        await publish(room.id, room_manager, sessions)
        await broadcast_system_message(room.id, "Game started!", room_manager, sessions)
    return result.to_ack()


async def handle_end_turn(data: dict, ctx: ConnectionContext, *, room_manager, sessions, **kw) -> dict:
    if not ctx.room_id:
        return NOT_IN_ROOM
    room = room_manager.get_room(ctx.room_id)
    if not room:
        return ROOM_NOT_FOUND

    result = room.end_turn(ctx.player_id)
    if result:
        await broadcast_room_state(room.id, room_manager, sessions)
    return result.to_ack()


async def handle_end_game(data: dict, ctx: ConnectionContext, *, room_manager, sessions, **kw) -> dict:
    if not ctx.room_id:
        return NOT_IN_ROOM
    room = room_manager.get_room(ctx.room_id)
    if not room:
        return ROOM_NOT_FOUND

    result = room.end_game(ctx.player_id)
    if result:
        await broadcast_room_state(room.id, room_manager, sessions)
        await broadcast_system_message(room.id, "Game ended.", room_manager, sessions)
    return result.to_ack()


# ---------------------------------------------------------------------------
# Turn action handlers
# ---------------------------------------------------------------------------

async def _after_action(result: ActionResult, ctx: ConnectionContext, room_manager, sessions) -> dict:
    if result:
        await publish(ctx.room_id, room_manager, sessions)
    return result.to_ack()


async def handle_draw(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    req = DrawRequest.model_validate(data)
    result = processor.draw(ctx.room_id, ctx.player_id, req.count)
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_play(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    req = PlayRequest.model_validate(data)
    result = processor.play(ctx.room_id, ctx.player_id, req.card_id, req.location_index)
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_discard(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    req = DiscardRequest.model_validate(data)
    result = processor.discard(ctx.room_id, ctx.player_id, req.ids())
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_move(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    req = MoveRequest.model_validate(data)
    result = processor.move(ctx.room_id, ctx.player_id, req.card_id, req.from_location, req.to_location)
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_remove(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    req = RemoveRequest.model_validate(data)
    result = processor.remove(ctx.room_id, ctx.player_id, req.card_id, req.from_location)
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_reshuffle(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    result = processor.reshuffle(ctx.room_id, ctx.player_id)
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_take_from_discard(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    req = CardRequest.model_validate(data)
    result = processor.retrieve(ctx.room_id, ctx.player_id, req.card_id)
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_get_discard(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, **kw) -> dict:
    req = DiscardPileRequest.model_validate(data)
    return processor.discard_pile(ctx.room_id, req.player_id).to_ack()


async def handle_power_change(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    req = PowerRequest.model_validate(data)
    result = processor.change_power(ctx.room_id, ctx.player_id, req.delta if req.delta is not None else 0)
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_location_lock(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    req = LocationLockRequest.model_validate(data)
    result = processor.set_location_lock(ctx.room_id, ctx.player_id, req.index, req.locked)
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_card_lock(data: dict, ctx: ConnectionContext, *, processor: ActionProcessor, room_manager, sessions, **kw) -> dict:
    req = CardLockRequest.model_validate(data)
    result = processor.set_card_lock(ctx.room_id, ctx.player_id, req.card_id, req.locked)
    return await _after_action(result, ctx, room_manager, sessions)


async def handle_undo(data: dict, ctx: ConnectionContext, *, undo_engine: UndoEngine, room_manager, sessions, **kw) -> dict:
    result = undo_engine.undo(ctx.room_id, ctx.player_id)
    return await _after_action(result, ctx, room_manager, sessions)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

async def handle_chat_send(data: dict, ctx: ConnectionContext, *, room_manager, sessions, **kw) -> dict:
    req = ChatRequest.model_validate(data)
    if not ctx.room_id:
        return NOT_IN_ROOM
    room = room_manager.get_room(ctx.room_id)
    if not room:
        return ROOM_NOT_FOUND

    msg = room.chat.post(ctx.player_id or ctx.session_id, ctx.name or "Anonymous", req.text)
    if not msg:
        return {"ok": False, "error": "empty message"}
    await sessions.broadcast(room.id, "chat:msg", {"roomId": room.id, "msg": msg.to_dict()})
    return {"ok": True}


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "room:create": handle_create_room,
    "room:join": handle_join_room,
    "room:leave": handle_leave_room,
    "lobby:chooseCharacter": handle_choose_character,
    "lobby:setReady": handle_set_ready,
    "lobby:start": handle_start_game,
    "game:endTurn": handle_end_turn,
    "game:end": handle_end_game,
    "game:draw": handle_draw,
    "game:playToLocation": handle_play,
    "game:discard": handle_discard,
    "game:moveCard": handle_move,
    "game:removeCard": handle_remove,
    "game:reshuffleDeck": handle_reshuffle,
    "pile:takeFromDiscard": handle_take_from_discard,
    "pile:getDiscard": handle_get_discard,
    "power:change": handle_power_change,
    "board:toggleLocationLock": handle_location_lock,
    "board:toggleCardLock": handle_card_lock,
    "log:undoSelf": handle_undo,
    "chat:send": handle_chat_send,
}


async def handle_message(message: dict, ctx: ConnectionContext, **deps) -> Optional[dict]:
    """
    Dispatch one inbound envelope and deliver its acknowledgement.

    Envelope: {"event": name, "payload": {...}, "ack": id-or-null}. The ack
    is sent back as {"event": "ack", "ack": id, "data": {...}} only when the
    request carried an ack id.

    Returns:
        The acknowledgement dict.
    """
    event = message.get("event") if isinstance(message, dict) else None
    payload = message.get("payload") if isinstance(message, dict) else None
    ack_id = message.get("ack") if isinstance(message, dict) else None
    if not isinstance(payload, dict):
        payload = {}

    handler = HANDLERS.get(event)
    if handler is None:
        ack = {"ok": False, "error": "unknown event"}
    else:
        try:
            ack = await handler(payload, ctx, **deps)
        except ValidationError as e:
            logger.debug(f"Bad payload for {event}: {e}")
            ack = {"ok": False, "error": "bad payload"}
        except Exception:
            logger.exception(f"Handler for {event} failed")
            ack = {"ok": False, "error": "internal error"}

    if not ack.get("ok"):
        logger.debug(f"{event} rejected for session {ctx.session_id}: {ack.get('error')}")

    if ack_id is not None:
        await ctx.websocket.send_json({"event": "ack", "ack": ack_id, "data": ack})
    return ack
