"""
State projection for the card table.

Two views are derived from a Room:

    - public: broadcast to the whole room. Deck and hand contents are never
      included, only their counts; the discard top and the full board are.
    - private: sent only to the owning connection. Adds the full hand.

The face_up flag on cards is a display hint; what a client may see is
decided here.
"""

from typing import Optional

from game import Player
from room import Room


def public_player(player: Player) -> dict:
    top = player.zones.discard_top()
    return {
        "id": player.id,
        "name": player.name,
        "ready": player.ready,
        "characterId": player.character_id,
        "power": player.power,
        "counts": player.zones.counts(),
        "discardTop": top.to_dict() if top else None,
        "board": player.board.to_dict(),
    }


def public_state(room: Room) -> dict:
    """The room-wide view, safe to send to every member."""
    return {
        "roomId": room.id,
        "ownerId": room.owner_id,
        "players": [public_player(p) for p in room.players],
        "game": room.game.to_dict(),
    }


def private_state(room: Room, player_id: str) -> Optional[dict]:
    """
    The owner-only view of one player's hidden zones.

    Returns:
        The private view, or None if the player is not seated in the room.
    """
    me = room.get_player(player_id)
    if not me:
        return None
    return {
        "roomId": room.id,
        "hand": [c.to_dict() for c in me.zones.hand],
        "counts": me.zones.counts(),
    }
