"""Models package for the card table server."""

from .actions import (
    ActionData,
    ActionEntry,
    ActionLog,
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
from .results import ActionResult

__all__ = [
    "ActionData",
    "ActionEntry",
    "ActionLog",
    "ActionType",
    "ActionResult",
    "CardLockData",
    "DiscardData",
    "DrawData",
    "LocationLockData",
    "MoveData",
    "PlayData",
    "PowerData",
    "RemoveData",
    "ReshuffleData",
    "RetrieveData",
    "UndoData",
]
