"""
End-to-end table scenarios driven through the message envelope.

Verifies:
- The full create / join / ready / start / draw / play / undo flow
- Staleness and conservation across a longer session
- Log capping under sustained play
"""

import random
from collections import Counter

import pytest

from game import GamePhase
from handlers import handle_message
from processor import ActionProcessor
from room import RoomManager
from sessions import ConnectionContext, SessionRegistry
from undo import UndoEngine


class Recorder:
    """Minimal WebSocket stand-in that records everything sent to it."""

    def __init__(self):
        self.sent = []

    async def send_json(self, data):
        self.sent.append(data)


@pytest.fixture
def deps():
    rm = RoomManager(rng=random.Random(11))
    return dict(
        room_manager=rm,
        sessions=SessionRegistry(),
        processor=ActionProcessor(rm, rng=random.Random(11)),
        undo_engine=UndoEngine(rm),
    )


def client(deps, session_id):
    ctx = ConnectionContext(websocket=Recorder(), session_id=session_id)
    deps["sessions"].connect(ctx)
    return ctx


async def emit(ctx, deps, event, **payload):
    return await handle_message({"event": event, "payload": payload, "ack": None}, ctx, **deps)


async def seated_game(deps):
    alice = client(deps, "alice-session")
    bob = client(deps, "bob-session")
    created = await emit(alice, deps, "room:create", name="Alice")
    joined = await emit(bob, deps, "room:join", roomId=created["roomId"], name="Bob")
    assert joined["ok"]
    assert (await emit(alice, deps, "lobby:setReady", ready=True))["ok"]
    assert (await emit(bob, deps, "lobby:setReady", ready=True))["ok"]
    assert (await emit(alice, deps, "lobby:start"))["ok"]
    return alice, bob, deps["room_manager"].get_room(created["roomId"])


class TestAliceAndBob:

    @pytest.mark.asyncio
    async def test_draw_play_undo(self, deps):
        alice, bob, room = await seated_game(deps)
        me = room.get_player(alice.player_id)

        assert room.game.phase == GamePhase.PLAYING
        assert room.game.turn == 1
        assert room.game.active_player_id == alice.player_id
        assert all(len(p.zones.deck) == 15 for p in room.players)

        assert (await emit(alice, deps, "game:draw", count=1))["ok"]
        assert len(me.zones.hand) == 1
        assert len(me.zones.deck) == 14

        card_id = me.zones.hand[0].id
        assert (await emit(alice, deps, "game:playToLocation", cardId=card_id, locationIndex=2))["ok"]
        assert me.zones.hand == []
        assert len(me.board.locations[2].bottom) == 1
        play_entry = room.log.last()

        result = await emit(alice, deps, "log:undoSelf")

        assert result == {"ok": True, "undid": "play"}
        assert [c.id for c in me.zones.hand] == [card_id]
        assert me.board.locations[2].bottom == []
        assert play_entry.undone is True

    @pytest.mark.asyncio
    async def test_bob_cannot_act_on_alices_turn(self, deps):
        alice, bob, room = await seated_game(deps)
        for event, payload in [
            ("game:draw", {}),
            ("game:playToLocation", {"cardId": "x", "locationIndex": 0}),
            ("game:discard", {"cardId": "x"}),
            ("game:moveCard", {"cardId": "x", "from": 0, "to": 1}),
            ("game:removeCard", {"cardId": "x", "from": 0}),
            ("game:reshuffleDeck", {}),
            ("game:endTurn", {}),
        ]:
            result = await emit(bob, deps, event, **payload)
            assert result == {"ok": False, "error": "not your turn"}, event

    @pytest.mark.asyncio
    async def test_turns_and_conservation_over_a_session(self, deps):
        alice, bob, room = await seated_game(deps)
        seats = {alice.player_id: alice, bob.player_id: bob}
        starting = {p.id: Counter(p.all_card_ids()) for p in room.players}

        for _ in range(6):
            ctx = seats[room.game.active_player_id]
            me = room.get_player(ctx.player_id)
            await emit(ctx, deps, "game:draw", count=3)
            hand = [c.id for c in me.zones.hand]
            await emit(ctx, deps, "game:playToLocation", cardId=hand[0], locationIndex=0)
            await emit(ctx, deps, "game:discard", cardIds=hand[1:2])
            await emit(ctx, deps, "game:moveCard", cardId=hand[0], **{"from": 0, "to": 1})
            await emit(ctx, deps, "game:removeCard", cardId=hand[0], **{"from": 1})
            assert (await emit(ctx, deps, "game:endTurn"))["ok"]

        assert room.game.turn == 4
        for p in room.players:
            assert Counter(p.all_card_ids()) == starting[p.id]

    @pytest.mark.asyncio
    async def test_log_stays_capped(self, deps):
        alice, bob, room = await seated_game(deps)
        for _ in range(15):
            await emit(alice, deps, "board:toggleLocationLock", index=0)
            await emit(bob, deps, "board:toggleLocationLock", index=3)
        assert len(room.log) == 25

    @pytest.mark.asyncio
    async def test_disconnect_mid_game(self, deps):
        alice, bob, room = await seated_game(deps)
        await emit(alice, deps, "room:leave")

        assert room.owner_id == bob.player_id
        assert room.game.active_player_id == bob.player_id
        assert (await emit(bob, deps, "game:draw"))["ok"]
        assert (await emit(bob, deps, "game:endTurn"))["ok"]
        assert room.game.active_player_id == bob.player_id
