"""
Test suite for the action log and the rendered feed.

Run with: pytest test_game_log.py -v
"""

import random

from game_log import actor_name, build_log_item, render_feed
from models.actions import (
    ActionEntry,
    ActionLog,
    DrawData,
    MoveData,
    PlayData,
    PowerData,
    ReshuffleData,
)
from room import Room, RoomManager
from processor import ActionProcessor
from undo import UndoEngine


class TestActionLog:

    def test_cap_evicts_oldest_first(self):
        log = ActionLog(cap=25)
        entries = [ActionEntry(actor_id="p0", data=ReshuffleData(moved=i)) for i in range(30)]
        for entry in entries:
            log.append(entry)

        assert len(log) == 25
        assert [e.id for e in log] == [e.id for e in entries[5:]]
        assert log.last() is entries[-1]

    def test_recent_is_oldest_first(self):
        log = ActionLog(cap=5)
        for i in range(4):
            log.append(ActionEntry(actor_id="p0", data=ReshuffleData(moved=i)))
        assert [e.data.moved for e in log.recent(2)] == [2, 3]
        assert log.recent(0) == []


class TestRenderFeed:

    def make_room(self):
        room = Room(id="ROOM01")
        room.add_player("p0aaaaaaa", "Alice")
        return room

    def test_templates(self):
        room = self.make_room()
        cases = [
            (DrawData(card_ids=("a",)), "Alice drew 1 card"),
            (DrawData(card_ids=("a", "b")), "Alice drew 2 cards"),
            (PlayData(card_id="a", location_index=2), "Alice played a card to L3"),
            (MoveData(card_id="a", from_location=0, to_location=3, from_index=0, to_index=0),
             "Alice moved a card L1 → L4"),
            (PowerData(delta=-2, prev=5, next=3), "Alice −2 power (5 → 3)"),
            (ReshuffleData(moved=4), "Alice reshuffled 4 cards into deck"),
        ]
        for data, text in cases:
            item = build_log_item(room, ActionEntry(actor_id="p0aaaaaaa", data=data))
            assert item["text"] == text
            assert item["actorName"] == "Alice"

    def test_departed_actor_uses_short_id(self):
        room = self.make_room()
        assert actor_name(room, "zz9876543") == "zz9876"

    def test_undone_entry_renders_as_undo(self):
        room = self.make_room()
        entry = ActionEntry(actor_id="p0aaaaaaa", data=DrawData(card_ids=("a",)), undone=True)
        item = build_log_item(room, entry)
        assert item["type"] == "undo"
        assert item["text"] == "Alice undid their last action"

    def test_feed_is_most_recent_first(self):
        rm = RoomManager()
        room = rm.create_room()
        room.add_player("p0", "Alice")
        room.add_player("p1", "Bob")
        for p in room.players:
            room.set_ready(p.id, True)
        room.start_game("p0", rng=random.Random(1))
        proc = ActionProcessor(rm, rng=random.Random(1))

        proc.change_power(room.id, "p1", 1)
        proc.change_power(room.id, "p0", 2)
        proc.draw(room.id, "p0", 1)
        assert UndoEngine(rm).undo(room.id, "p0")

        feed = render_feed(room)

        assert [item["type"] for item in feed] == ["undo", "undo", "power", "power"]
        assert feed[1]["text"] == "Alice undid their last action"
        assert feed[2]["text"] == "Alice +2 power (0 → 2)"
        assert feed[3]["text"] == "Bob +1 power (0 → 1)"

    def test_feed_limit(self):
        room = self.make_room()
        for i in range(10):
            room.push_log(ActionEntry(actor_id="p0aaaaaaa", data=ReshuffleData(moved=i + 1)))
        feed = render_feed(room, limit=3)
        assert [item["text"] for item in feed] == [
            "Alice reshuffled 10 cards into deck",
            "Alice reshuffled 9 cards into deck",
            "Alice reshuffled 8 cards into deck",
        ]
