"""Human-readable action feed built from a room's action log."""

from typing import Callable

from constants import ACTION_LOG_CAP, ACTOR_ID_FALLBACK_LENGTH
from models.actions import (
    ActionEntry,
    ActionType,
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
from room import Room


def _plural(n: int, word: str = "card") -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def _loc(index: int) -> str:
    return f"L{index + 1}"


def _power_text(d: PowerData) -> str:
    sign = "+" if d.delta >= 0 else "−"
    return f"{sign}{abs(d.delta)} power ({d.prev} → {d.next})"


_TEMPLATES: dict[type, Callable] = {
    DrawData: lambda d: f"drew {_plural(len(d.card_ids))}",
    PlayData: lambda d: f"played a card to {_loc(d.location_index)}",
    DiscardData: lambda d: f"discarded {_plural(len(d.card_ids))}",
    MoveData: lambda d: f"moved a card {_loc(d.from_location)} → {_loc(d.to_location)}",
    RemoveData: lambda d: f"discarded a board card from {_loc(d.from_location)}",
    ReshuffleData: lambda d: f"reshuffled {_plural(d.moved)} into deck",
    RetrieveData: lambda d: "took a card from discard",
    PowerData: _power_text,
    LocationLockData: lambda d: f"{'locked' if d.next else 'unlocked'} {_loc(d.location)}",
    CardLockData: lambda d: f"{'locked' if d.next else 'unlocked'} a card on {_loc(d.location)}",
    UndoData: lambda d: "undid their last action",
}


def actor_name(room: Room, actor_id: str) -> str:
    """Roster name of the actor, or a shortened id once they have left."""
    actor = room.get_player(actor_id)
    return actor.name if actor else actor_id[:ACTOR_ID_FALLBACK_LENGTH]


def build_log_item(room: Room, entry: ActionEntry) -> dict:
    """
    Render one log entry.

    Entries that were undone render as a generic undo line whatever their
    original kind was.
    """
    name = actor_name(room, entry.actor_id)
    if entry.undone:
        kind = ActionType.UNDO
        text = f"{name} undid their last action"
    else:
        kind = entry.type
        template = _TEMPLATES.get(type(entry.data))
        text = f"{name} {template(entry.data)}" if template else f"{name} did {kind.value}"

    return {
        "id": entry.id,
        "ts": entry.ts,
        "actorId": entry.actor_id,
        "actorName": name,
        "type": kind.value,
        "text": text,
    }


def render_feed(room: Room, limit: int = ACTION_LOG_CAP) -> list[dict]:
    """The most recent `limit` entries, most recent first."""
    return [build_log_item(room, e) for e in reversed(room.log.recent(limit))]
