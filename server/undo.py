"""
Single-step undo for the card table.

Undo is a compensating action, not a snapshot restore: the most recent log
entry is inverted only if its forward effect is still intact where it left
it. Each inverse below first verifies that, and only then mutates; a stale
entry is rejected with no changes.

Rules:
    - Only the chronologically last log entry can be undone
    - Only by the player who performed it, and only once
    - An undo entry itself cannot be undone
    - Reshuffles and power changes cannot be undone
"""

import logging
from typing import Callable, Optional

from game import GamePhase, Player, find_card
from models.actions import (
    ActionEntry,
    CardLockData,
    DiscardData,
    DrawData,
    LocationLockData,
    MoveData,
    PlayData,
    PowerData,
    RemoveData,
    ReshuffleData,
    RetrieveData,
    UndoData,
)
from models.results import ActionResult
from room import RoomManager

logger = logging.getLogger(__name__)


def _clamped(index: int, length: int) -> int:
    return min(max(0, index), length)


# =============================================================================
# Inverses
# =============================================================================
# Each returns an error string when the entry is stale, or None once applied.


def _undo_draw(me: Player, data: DrawData) -> Optional[str]:
    hand_ids = {c.id for c in me.zones.hand}
    if not all(card_id in hand_ids for card_id in data.card_ids):
        return "cannot undo: cards already moved"

    for card_id in reversed(data.card_ids):
        card = me.zones.hand.pop(find_card(me.zones.hand, card_id))
        card.face_up = False
        me.zones.deck.append(card)
    return None


def _undo_play(me: Player, data: PlayData) -> Optional[str]:
    loc = me.board.locations[data.location_index]
    idx = find_card(loc.bottom, data.card_id)
    if idx == -1:
        return "card not on board anymore"

    me.zones.hand.append(loc.bottom.pop(idx))
    return None


def _undo_discard(me: Player, data: DiscardData) -> Optional[str]:
    pile = me.zones.discard
    n = len(data.card_ids)
    if len(pile) < n:
        return "cannot undo: discard changed"
    # The discarded cards must still be the top n of the pile, in order
    for offset, card_id in enumerate(reversed(data.card_ids), start=1):
        if pile[-offset].id != card_id:
            return "cannot undo: discard changed"

    for _ in range(n):
        me.zones.hand.append(pile.pop())
    return None


def _undo_move(me: Player, data: MoveData) -> Optional[str]:
    src = me.board.locations[data.from_location]
    dst = me.board.locations[data.to_location]
    idx = find_card(dst.bottom, data.card_id)
    if idx == -1:
        return "card not in destination anymore"

    card = dst.bottom.pop(idx)
    src.bottom.insert(_clamped(data.from_index, len(src.bottom)), card)
    return None


def _undo_remove(me: Player, data: RemoveData) -> Optional[str]:
    top = me.zones.discard_top()
    if not top or top.id != data.card_id:
        return "cannot undo: discard changed"

    src = me.board.locations[data.from_location]
    card = me.zones.discard.pop()
    src.bottom.insert(_clamped(data.from_index, len(src.bottom)), card)
    return None


def _undo_retrieve(me: Player, data: RetrieveData) -> Optional[str]:
    idx = find_card(me.zones.hand, data.card_id)
    if idx == -1:
        return "cannot undo: card moved from hand"

    card = me.zones.hand.pop(idx)
    me.zones.discard.insert(_clamped(data.from_index, len(me.zones.discard)), card)
    return None


def _undo_location_lock(me: Player, data: LocationLockData) -> Optional[str]:
    me.board.locations[data.location].locked = data.prev
    return None


def _undo_card_lock(me: Player, data: CardLockData) -> Optional[str]:
    stack = me.board.locations[data.location].stack(data.row)
    idx = find_card(stack, data.card_id)
    if idx == -1:
        return "card not found"
    stack[idx].locked = data.prev
    return None


_INVERSES: dict[type, Callable[[Player, object], Optional[str]]] = {
    DrawData: _undo_draw,
    PlayData: _undo_play,
    DiscardData: _undo_discard,
    MoveData: _undo_move,
    RemoveData: _undo_remove,
    RetrieveData: _undo_retrieve,
    LocationLockData: _undo_location_lock,
    CardLockData: _undo_card_lock,
}

_NOT_UNDOABLE: dict[type, str] = {
    ReshuffleData: "reshuffle cannot be undone",
    PowerData: "power cannot be undone",
    UndoData: "cannot undo an undo",
}


class UndoEngine:
    """Reverts a player's own most recent action in a room."""

    def __init__(self, room_manager: RoomManager) -> None:
        self.room_manager = room_manager

    def undo(self, room_id: Optional[str], player_id: str) -> ActionResult:
        """
        Undo the caller's last action.

        On success the original entry is flagged `undone` and a new `undo`
        entry referencing it is appended to the log.
        """
        if not room_id:
            return ActionResult.fail("not in a room")
        room = self.room_manager.get_room(room_id)
        if not room:
            return ActionResult.fail("room not found")
        if room.game.phase != GamePhase.PLAYING:
            return ActionResult.fail("game not started")

        last = room.log.last()
        if not last:
            return ActionResult.fail("nothing to undo")
        if last.actor_id != player_id:
            return ActionResult.fail("only your last action can be undone")
        if last.undone:
            return ActionResult.fail("already undone")

        me = room.get_player(player_id)
        if not me:
            return ActionResult.fail("player not found")

        data_type = type(last.data)
        if data_type in _NOT_UNDOABLE:
            return ActionResult.fail(_NOT_UNDOABLE[data_type])
        inverse = _INVERSES.get(data_type)
        if inverse is None:
            return ActionResult.fail("unsupported undo")

        error = inverse(me, last.data)
        if error:
            logger.debug(f"Room {room.id}: undo of {last.type.value} rejected ({error})")
            return ActionResult.fail(error)

        last.undone = True
        room.push_log(ActionEntry(actor_id=player_id, data=UndoData(action_id=last.id)))
        return ActionResult.success(undid=last.type.value)
