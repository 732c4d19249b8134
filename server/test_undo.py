"""
Test suite for the single-step UndoEngine.

Covers:
- Exact restoration for each undoable kind
- Staleness: an entry whose effect was disturbed is rejected untouched
- Ownership, double-undo and non-undoable kinds

Run with: pytest test_undo.py -v
"""

import random

import pytest

from models.actions import ActionType, UndoData
from processor import ActionProcessor
from room import RoomManager
from undo import UndoEngine


def make_table(num_players=2, seed=0):
    rm = RoomManager()
    room = rm.create_room()
    for i in range(num_players):
        room.add_player(f"p{i}", f"Player {i}")
        room.set_ready(f"p{i}", True)
    assert room.start_game("p0", rng=random.Random(seed))
    return ActionProcessor(rm, rng=random.Random(seed)), UndoEngine(rm), room


def ids(cards):
    return [c.id for c in cards]


def snapshot(player):
    return (
        ids(player.zones.deck),
        ids(player.zones.hand),
        ids(player.zones.discard),
        [(ids(loc.bottom), ids(loc.top), loc.locked) for loc in player.board.locations],
    )


# =============================================================================
# Round trips
# =============================================================================

class TestUndoRestores:

    def test_undo_draw_restores_deck_order(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        before = snapshot(me)

        proc.draw(room.id, "p0", 3)
        result = undo.undo(room.id, "p0")

        assert result.to_ack() == {"ok": True, "undid": "draw"}
        assert snapshot(me) == before
        assert all(not c.face_up for c in me.zones.deck)

    def test_undo_play(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 1)
        before = snapshot(me)
        proc.play(room.id, "p0", me.zones.hand[0].id, 2)

        assert undo.undo(room.id, "p0")
        assert snapshot(me) == before

    def test_undo_discard(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 3)
        hand = ids(me.zones.hand)
        proc.discard(room.id, "p0", hand[:2])

        assert undo.undo(room.id, "p0")
        assert me.zones.discard == []
        assert sorted(ids(me.zones.hand)) == sorted(hand)

    def test_undo_move_restores_position(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 3)
        a, b, c = ids(me.zones.hand)
        for card_id in (a, b, c):
            proc.play(room.id, "p0", card_id, 0)
        before = snapshot(me)
        proc.move(room.id, "p0", b, 0, 1)

        assert undo.undo(room.id, "p0")
        assert snapshot(me) == before
        assert ids(me.board.locations[0].bottom) == [a, b, c]

    def test_undo_remove_restores_position(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 2)
        a, b = ids(me.zones.hand)
        proc.play(room.id, "p0", a, 3)
        proc.play(room.id, "p0", b, 3)
        before = snapshot(me)
        proc.remove(room.id, "p0", a, 3)

        assert undo.undo(room.id, "p0")
        assert snapshot(me) == before

    def test_undo_retrieve(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 2)
        a, b = ids(me.zones.hand)
        proc.discard(room.id, "p0", [a, b])
        before = snapshot(me)
        proc.retrieve(room.id, "p0", a)

        assert undo.undo(room.id, "p0")
        assert snapshot(me) == before

    def test_undo_card_lock(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 1)
        card_id = me.zones.hand[0].id
        proc.play(room.id, "p0", card_id, 2)
        proc.set_card_lock(room.id, "p0", card_id, True)

        result = undo.undo(room.id, "p0")

        assert result.to_ack() == {"ok": True, "undid": "lock"}
        assert me.board.locations[2].bottom[0].locked is False

    def test_undo_empty_draw(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        me.zones.deck = []
        proc.draw(room.id, "p0", 1)
        assert undo.undo(room.id, "p0")
        assert me.zones.deck == [] and me.zones.hand == []

    def test_undo_location_lock(self):
        proc, undo, room = make_table()
        me = room.get_player("p1")
        proc.set_location_lock(room.id, "p1", 1, True)
        assert undo.undo(room.id, "p1")
        assert me.board.locations[1].locked is False


# =============================================================================
# Staleness
# =============================================================================

class TestUndoStaleness:

    def test_drawn_card_gone_from_hand(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 2)
        me.zones.discard.append(me.zones.hand.pop())
        before = snapshot(me)

        result = undo.undo(room.id, "p0")

        assert result.error == "cannot undo: cards already moved"
        assert snapshot(me) == before
        assert room.log.last().undone is False

    def test_played_card_moved_externally(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 1)
        proc.play(room.id, "p0", me.zones.hand[0].id, 0)
        me.board.locations[1].bottom.append(me.board.locations[0].bottom.pop())
        before = snapshot(me)

        assert undo.undo(room.id, "p0").error == "card not on board anymore"
        assert snapshot(me) == before

    def test_discard_partial_failure_changes_nothing(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 3)
        proc.discard(room.id, "p0", ids(me.zones.hand)[:2])
        me.zones.discard.pop()
        before = snapshot(me)

        result = undo.undo(room.id, "p0")

        assert result.error == "cannot undo: discard changed"
        assert snapshot(me) == before

    def test_moved_card_left_destination(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 1)
        card_id = me.zones.hand[0].id
        proc.play(room.id, "p0", card_id, 0)
        proc.move(room.id, "p0", card_id, 0, 1)
        me.zones.discard.append(me.board.locations[1].bottom.pop())

        assert undo.undo(room.id, "p0").error == "card not in destination anymore"

    def test_removed_card_buried_in_discard(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 2)
        a, b = ids(me.zones.hand)
        proc.play(room.id, "p0", a, 1)
        proc.remove(room.id, "p0", a, 1)
        me.zones.discard.append(me.zones.hand.pop())
        before = snapshot(me)

        result = undo.undo(room.id, "p0")

        assert result.error == "cannot undo: discard changed"
        assert snapshot(me) == before
        assert ids(me.zones.discard) == [a, b]

    def test_retrieved_card_left_hand(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 2)
        a, b = ids(me.zones.hand)
        proc.discard(room.id, "p0", [a, b])
        proc.retrieve(room.id, "p0", a)
        me.board.locations[0].bottom.append(me.zones.hand.pop())
        before = snapshot(me)

        result = undo.undo(room.id, "p0")

        assert result.error == "cannot undo: card moved from hand"
        assert snapshot(me) == before
        assert room.log.last().undone is False

    def test_locked_card_left_its_stack(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 1)
        card_id = me.zones.hand[0].id
        proc.play(room.id, "p0", card_id, 2)
        proc.set_card_lock(room.id, "p0", card_id, True)
        me.board.locations[3].bottom.append(me.board.locations[2].bottom.pop())

        result = undo.undo(room.id, "p0")

        assert result.error == "card not found"
        assert me.board.locations[3].bottom[0].locked is True


# =============================================================================
# Rules
# =============================================================================

class TestUndoRules:

    def test_double_undo_rejected(self):
        proc, undo, room = make_table()
        proc.draw(room.id, "p0", 1)
        assert undo.undo(room.id, "p0")
        assert undo.undo(room.id, "p0").error == "cannot undo an undo"

    def test_undo_marks_entry_and_appends_compensation(self):
        proc, undo, room = make_table()
        proc.draw(room.id, "p0", 1)
        original = room.log.last()

        undo.undo(room.id, "p0")

        assert original.undone is True
        assert room.log.last().type == ActionType.UNDO
        assert room.log.last().data == UndoData(action_id=original.id)
        assert len(room.log) == 2

    def test_nothing_to_undo(self):
        proc, undo, room = make_table()
        assert undo.undo(room.id, "p0").error == "nothing to undo"

    def test_only_own_last_action(self):
        proc, undo, room = make_table()
        proc.draw(room.id, "p0", 1)
        proc.change_power(room.id, "p1", 2)
        assert undo.undo(room.id, "p0").error == "only your last action can be undone"

    def test_other_player_cannot_undo(self):
        proc, undo, room = make_table()
        proc.draw(room.id, "p0", 1)
        assert undo.undo(room.id, "p1").error == "only your last action can be undone"

    def test_reshuffle_not_undoable(self):
        proc, undo, room = make_table()
        me = room.get_player("p0")
        proc.draw(room.id, "p0", 1)
        proc.discard(room.id, "p0", ids(me.zones.hand))
        proc.reshuffle(room.id, "p0")
        assert undo.undo(room.id, "p0").error == "reshuffle cannot be undone"

    def test_power_not_undoable(self):
        proc, undo, room = make_table()
        proc.change_power(room.id, "p0", 4)
        assert undo.undo(room.id, "p0").error == "power cannot be undone"

    def test_undo_outside_game(self):
        rm = RoomManager()
        room = rm.create_room()
        room.add_player("p0", "Alice")
        assert UndoEngine(rm).undo(room.id, "p0").error == "game not started"
        assert UndoEngine(rm).undo(None, "p0").error == "not in a room"

    def test_undo_not_turn_gated(self):
        proc, undo, room = make_table()
        proc.set_location_lock(room.id, "p1", 0)
        assert room.game.active_player_id == "p0"
        assert undo.undo(room.id, "p1")
