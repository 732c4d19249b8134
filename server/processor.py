"""
Action processing for the card table.

The ActionProcessor is the single place table state is mutated during play.
Every operation follows the same shape:

    1. Resolve the room from the injected RoomManager
    2. Check phase, turn ownership and that the caller is seated
    3. Check the kind-specific preconditions
    4. Mutate the caller's own zones/board (never another player's)
    5. Append one ActionEntry to the room log

Any failed check returns ActionResult.fail() before step 4, so a rejected
action has no side effects at all.
"""

import logging
import math
import random
from typing import Optional, Sequence

from constants import MAX_DRAW, MAX_POWER, MAX_POWER_STEP, MIN_DRAW, is_location_index
from game import Card, GamePhase, Player, Row, find_card, shuffle_discard_into_deck
from models.actions import (
    ActionData,
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
)
from models.results import ActionResult
from room import Room, RoomManager

logger = logging.getLogger(__name__)


class ActionProcessor:
    """
    Validates and applies player actions against rooms in a RoomManager.

    Args:
        room_manager: The room store to resolve rooms from.
        rng: Optional Random instance used for every shuffle.
    """

    def __init__(self, room_manager: RoomManager, rng: Optional[random.Random] = None) -> None:
        self.room_manager = room_manager
        self.rng = rng

    # -------------------------------------------------------------------------
    # Shared checks
    # -------------------------------------------------------------------------

    def resolve(
        self,
        room_id: Optional[str],
        player_id: str,
        require_turn: bool = True,
    ) -> tuple[Optional[Room], Optional[Player], Optional[ActionResult]]:
        """
        Run the common preconditions.

        Returns:
            (room, player, None) on success, or (None, None, failure).
        """
        if not room_id:
            return None, None, ActionResult.fail("not in a room")
        room = self.room_manager.get_room(room_id)
        if not room:
            return None, None, ActionResult.fail("room not found")
        if room.game.phase != GamePhase.PLAYING:
            return None, None, ActionResult.fail("game not started")
        if require_turn and not room.is_active(player_id):
            return None, None, ActionResult.fail("not your turn")
        player = room.get_player(player_id)
        if not player:
            return None, None, ActionResult.fail("player not found")
        return room, player, None

    def _record(self, room: Room, player: Player, data: ActionData) -> ActionEntry:
        entry = ActionEntry(actor_id=player.id, data=data)
        room.push_log(entry)
        logger.debug(f"Room {room.id}: {player.name} {data.kind.value}")
        return entry

    # -------------------------------------------------------------------------
    # Zone actions
    # -------------------------------------------------------------------------

    def draw(self, room_id: Optional[str], player_id: str, count: object = 1) -> ActionResult:
        """
        Draw up to `count` cards (clamped to 1..5) from deck to hand.

        An empty deck is refilled from the discard pile before each draw;
        drawing stops early once both are empty, and an empty draw is
        still acknowledged and logged.
        """
        room, me, failure = self.resolve(room_id, player_id)
        if failure is not None:
            return failure

        n = _clamp_count(count)

        drawn: list[str] = []
        for _ in range(n):
            if not me.zones.deck:
                shuffle_discard_into_deck(me, self.rng)
            if not me.zones.deck:
                break
            card = me.zones.deck.pop()
            card.face_up = True
            me.zones.hand.append(card)
            drawn.append(card.id)

        self._record(room, me, DrawData(card_ids=tuple(drawn)))
        return ActionResult.success(drawn=len(drawn))

    def play(self, room_id: Optional[str], player_id: str, card_id: str, location_index: object) -> ActionResult:
        """Play a hand card face-up onto the bottom stack of a board location."""
        room, me, failure = self.resolve(room_id, player_id)
        if failure is not None:
            return failure
        if not is_location_index(location_index):
            return ActionResult.fail("bad location index")

        idx = find_card(me.zones.hand, card_id)
        if idx == -1:
            return ActionResult.fail("card not in hand")
        loc = me.board.locations[location_index]
        if loc.locked:
            return ActionResult.fail("location is locked")

        card = me.zones.hand.pop(idx)
        card.face_up = True
        loc.bottom.append(card)

        self._record(room, me, PlayData(card_id=card.id, location_index=location_index))
        return ActionResult.success()

    def discard(self, room_id: Optional[str], player_id: str, card_ids: Sequence[str]) -> ActionResult:
        """
        Discard one or more hand cards.

        Ids not in hand are skipped; at least one must resolve.
        """
        room, me, failure = self.resolve(room_id, player_id)
        if failure is not None:
            return failure
        if not card_ids:
            return ActionResult.fail("no cards specified")

        discarded: list[str] = []
        for card_id in card_ids:
            idx = find_card(me.zones.hand, card_id)
            if idx == -1:
                continue
            card = me.zones.hand.pop(idx)
            card.face_up = True
            me.zones.discard.append(card)
            discarded.append(card.id)

        if not discarded:
            return ActionResult.fail("card(s) not in hand")

        self._record(room, me, DiscardData(card_ids=tuple(discarded)))
        return ActionResult.success(discarded=len(discarded))

    def move(
        self,
        room_id: Optional[str],
        player_id: str,
        card_id: str,
        from_location: object,
        to_location: object,
    ) -> ActionResult:
        """Move a card between the bottom stacks of two board locations."""
        room, me, failure = self.resolve(room_id, player_id)
        if failure is not None:
            return failure
        if not is_location_index(from_location) or not is_location_index(to_location):
            return ActionResult.fail("bad location index")
        if from_location == to_location:
            return ActionResult.fail("moving within same location not supported")

        src = me.board.locations[from_location]
        dst = me.board.locations[to_location]
        idx = find_card(src.bottom, card_id)
        if idx == -1:
            return ActionResult.fail("card not in source location (bottom)")
        if src.bottom[idx].locked:
            return ActionResult.fail("card is locked")
        if dst.locked:
            return ActionResult.fail("destination locked")

        card = src.bottom.pop(idx)
        to_index = len(dst.bottom)
        dst.bottom.append(card)

        self._record(room, me, MoveData(
            card_id=card.id,
            from_location=from_location,
            to_location=to_location,
            from_index=idx,
            to_index=to_index,
        ))
        return ActionResult.success()

    def remove(self, room_id: Optional[str], player_id: str, card_id: str, from_location: object) -> ActionResult:
        """Send a board card to the discard pile."""
        room, me, failure = self.resolve(room_id, player_id)
        if failure is not None:
            return failure
        if not is_location_index(from_location):
            return ActionResult.fail("bad location index")

        src = me.board.locations[from_location]
        idx = find_card(src.bottom, card_id)
        if idx == -1:
            return ActionResult.fail("card not on that location (bottom)")
        if src.bottom[idx].locked:
            return ActionResult.fail("card is locked")

        card = src.bottom.pop(idx)
        card.face_up = True
        me.zones.discard.append(card)

        self._record(room, me, RemoveData(card_id=card.id, from_location=from_location, from_index=idx))
        return ActionResult.success()

    def reshuffle(self, room_id: Optional[str], player_id: str) -> ActionResult:
        """Shuffle the whole discard pile into the deck (not undoable)."""
        room, me, failure = self.resolve(room_id, player_id)
        if failure is not None:
            return failure

        moved = shuffle_discard_into_deck(me, self.rng)
        if moved == 0:
            return ActionResult.fail("discard is empty")

        self._record(room, me, ReshuffleData(moved=moved))
        return ActionResult.success(moved=moved)

    def retrieve(self, room_id: Optional[str], player_id: str, card_id: str) -> ActionResult:
        """Take a specific card from the caller's discard pile into hand."""
        room, me, failure = self.resolve(room_id, player_id)
        if failure is not None:
            return failure
        card_id = (card_id or "").strip()
        if not card_id:
            return ActionResult.fail("missing cardId")

        idx = find_card(me.zones.discard, card_id)
        if idx == -1:
            return ActionResult.fail("card not in your discard")

        card = me.zones.discard.pop(idx)
        card.face_up = True
        me.zones.hand.append(card)

        self._record(room, me, RetrieveData(card_id=card.id, from_index=idx))
        return ActionResult.success()

    # -------------------------------------------------------------------------
    # Self-only table state (no turn requirement)
    # -------------------------------------------------------------------------

    def change_power(self, room_id: Optional[str], player_id: str, delta: object) -> ActionResult:
        """Adjust the caller's power by a small step, clamped to 0..MAX_POWER."""
        room, me, failure = self.resolve(room_id, player_id, require_turn=False)
        if failure is not None:
            return failure

        if isinstance(delta, bool) or not isinstance(delta, (int, float)) or not math.isfinite(delta):
            return ActionResult.fail("no change")
        step = max(-MAX_POWER_STEP, min(MAX_POWER_STEP, math.floor(delta + 0.5)))
        prev = me.power
        nxt = max(0, min(MAX_POWER, prev + step))
        if nxt == prev:
            return ActionResult.fail("no change")

        me.power = nxt
        self._record(room, me, PowerData(delta=nxt - prev, prev=prev, next=nxt))
        return ActionResult.success(power=nxt)

    def set_location_lock(
        self,
        room_id: Optional[str],
        player_id: str,
        index: object,
        locked: Optional[bool] = None,
    ) -> ActionResult:
        """Lock or unlock one of the caller's locations (toggle when `locked` is None)."""
        room, me, failure = self.resolve(room_id, player_id, require_turn=False)
        if failure is not None:
            return failure
        if not is_location_index(index):
            return ActionResult.fail("bad location index")

        loc = me.board.locations[index]
        prev = loc.locked
        nxt = (not prev) if locked is None else bool(locked)
        if nxt == prev:
            return ActionResult.fail("no change")

        loc.locked = nxt
        self._record(room, me, LocationLockData(location=index, prev=prev, next=nxt))
        return ActionResult.success(locked=nxt)

    def set_card_lock(
        self,
        room_id: Optional[str],
        player_id: str,
        card_id: str,
        locked: Optional[bool] = None,
    ) -> ActionResult:
        """Lock or unlock a card on the caller's board (toggle when `locked` is None)."""
        room, me, failure = self.resolve(room_id, player_id, require_turn=False)
        if failure is not None:
            return failure
        card_id = (card_id or "").strip()
        if not card_id:
            return ActionResult.fail("missing cardId")

        found = _find_on_board(me, card_id)
        if not found:
            return ActionResult.fail("card not on your board")
        loc_idx, row, card = found

        prev = card.locked
        nxt = (not prev) if locked is None else bool(locked)
        if nxt == prev:
            return ActionResult.fail("no change")

        card.locked = nxt
        self._record(room, me, CardLockData(location=loc_idx, row=row, card_id=card.id, prev=prev, next=nxt))
        return ActionResult.success(locked=nxt)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def discard_pile(self, room_id: Optional[str], target_player_id: str) -> ActionResult:
        """Return any seated player's discard pile, top card first."""
        if not room_id:
            return ActionResult.fail("not in a room")
        room = self.room_manager.get_room(room_id)
        if not room:
            return ActionResult.fail("room not found")
        target = room.get_player((target_player_id or "").strip())
        if not target:
            return ActionResult.fail("player not found")
        cards = [c.to_dict() for c in reversed(target.zones.discard)]
        return ActionResult.success(cards=cards)


def _clamp_count(count: object) -> int:
    try:
        n = int(count) if count is not None else MIN_DRAW
    except (TypeError, ValueError):
        n = MIN_DRAW
    return max(MIN_DRAW, min(MAX_DRAW, n))


def _find_on_board(player: Player, card_id: str) -> Optional[tuple[int, Row, Card]]:
    """Locate a board card, checking each location's top stack before its bottom."""
    for i, loc in enumerate(player.board.locations):
        for row in (Row.TOP, Row.BOTTOM):
            stack = loc.stack(row)
            idx = find_card(stack, card_id)
            if idx != -1:
                return i, row, stack[idx]
    return None
