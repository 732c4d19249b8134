"""
Action log entries for the card table.

Every successful mutation appends one ActionEntry to the room's log. The
entry's `data` is one of the per-kind records below; each record carries
only its own fields and its kind is the class-level `kind` tag. The undo
engine dispatches on that tag.

The log is append-only except for the `undone` flag, and is capped: the
oldest entries are evicted first once the cap is exceeded.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterator, Optional, Union

from game import Row, new_id


class ActionType(str, Enum):
    """All logged action kinds."""

    DRAW = "draw"
    PLAY = "play"
    DISCARD = "discard"
    MOVE = "move"
    REMOVE = "remove"
    RESHUFFLE = "reshuffle"
    RETRIEVE = "retrieve"
    POWER = "power"
    LOCK = "lock"
    UNDO = "undo"


# =============================================================================
# Per-kind payloads
# =============================================================================


@dataclass(frozen=True)
class DrawData:
    """Cards drawn, in draw order."""
    kind: ClassVar[ActionType] = ActionType.DRAW
    card_ids: tuple[str, ...]


@dataclass(frozen=True)
class PlayData:
    kind: ClassVar[ActionType] = ActionType.PLAY
    card_id: str
    location_index: int


@dataclass(frozen=True)
class DiscardData:
    """Cards actually discarded, in discard order."""
    kind: ClassVar[ActionType] = ActionType.DISCARD
    card_ids: tuple[str, ...]


@dataclass(frozen=True)
class MoveData:
    kind: ClassVar[ActionType] = ActionType.MOVE
    card_id: str
    from_location: int
    to_location: int
    from_index: int
    to_index: int


@dataclass(frozen=True)
class RemoveData:
    kind: ClassVar[ActionType] = ActionType.REMOVE
    card_id: str
    from_location: int
    from_index: int


@dataclass(frozen=True)
class ReshuffleData:
    kind: ClassVar[ActionType] = ActionType.RESHUFFLE
    moved: int


@dataclass(frozen=True)
class RetrieveData:
    kind: ClassVar[ActionType] = ActionType.RETRIEVE
    card_id: str
    from_index: int


@dataclass(frozen=True)
class PowerData:
    kind: ClassVar[ActionType] = ActionType.POWER
    delta: int
    prev: int
    next: int


@dataclass(frozen=True)
class LocationLockData:
    kind: ClassVar[ActionType] = ActionType.LOCK
    location: int
    prev: bool
    next: bool


@dataclass(frozen=True)
class CardLockData:
    kind: ClassVar[ActionType] = ActionType.LOCK
    location: int
    row: Row
    card_id: str
    prev: bool
    next: bool


@dataclass(frozen=True)
class UndoData:
    """Compensating entry pointing at the entry that was undone."""
    kind: ClassVar[ActionType] = ActionType.UNDO
    action_id: str


ActionData = Union[
    DrawData,
    PlayData,
    DiscardData,
    MoveData,
    RemoveData,
    ReshuffleData,
    RetrieveData,
    PowerData,
    LocationLockData,
    CardLockData,
    UndoData,
]


@dataclass
class ActionEntry:
    """
    A single logged action.

    Attributes:
        actor_id: Player who performed the action.
        data: Kind-specific payload (its `kind` is the entry type).
        id: Unique entry id.
        ts: Unix timestamp in milliseconds.
        undone: Set once, when this entry is reverted by its actor.
    """

    actor_id: str
    data: ActionData
    id: str = field(default_factory=new_id)
    ts: int = field(default_factory=lambda: int(time.time() * 1000))
    undone: bool = False

    @property
    def type(self) -> ActionType:
        return self.data.kind


class ActionLog:
    """Bounded FIFO of ActionEntry; the oldest entries are evicted first."""

    def __init__(self, cap: int = 25) -> None:
        self.cap = cap
        self._entries: list[ActionEntry] = []

    def append(self, entry: ActionEntry) -> None:
        self._entries.append(entry)
        overflow = len(self._entries) - self.cap
        if overflow > 0:
            del self._entries[:overflow]

    def last(self) -> Optional[ActionEntry]:
        return self._entries[-1] if self._entries else None

    def recent(self, n: int) -> list[ActionEntry]:
        """The last n entries, oldest first."""
        return self._entries[-n:] if n > 0 else []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ActionEntry]:
        return iter(self._entries)
