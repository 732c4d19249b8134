"""
Room management for the card table server.

This module owns the authoritative Room aggregate and its state machine,
plus the RoomManager store that holds every live room.

A Room contains:
    - A unique room code for joining
    - The player roster (list order is turn order, i.e. join order)
    - GameMeta: phase (lobby -> playing -> ended), turn counter, active player
    - A capped action log and a capped chat history

Rooms are created on demand, hold their players until the last one leaves,
and are then dropped from the manager.
"""

import logging
import random
import string
from dataclasses import dataclass, field
from typing import Optional

from chat import ChatLog
from constants import (
    ACTION_LOG_CAP,
    CHARACTER_ID_MAX_LENGTH,
    MIN_PLAYERS_TO_START,
    ROOM_CODE_LENGTH,
)
from game import GameMeta, GamePhase, Player, new_id
from models.actions import ActionEntry, ActionLog
from models.results import ActionResult

logger = logging.getLogger(__name__)


@dataclass
class Room:
    """
    A table session.

    Attributes:
        id: Room code used for joining.
        owner_id: Player id of the owner (first player until they leave).
        players: Roster in turn order.
        game: Phase, turn and active player.
        log: Capped action log (oldest evicted first).
        chat: Capped chat history.
    """

    id: str
    owner_id: Optional[str] = None
    players: list[Player] = field(default_factory=list)
    game: GameMeta = field(default_factory=GameMeta)
    log: ActionLog = field(default_factory=lambda: ActionLog(ACTION_LOG_CAP))
    chat: ChatLog = field(default_factory=ChatLog)

    # -------------------------------------------------------------------------
    # Roster
    # -------------------------------------------------------------------------

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        """Find a player by id, or None if not seated here."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def player_index(self, player_id: str) -> int:
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return -1

    def add_player(self, player_id: str, name: str) -> Player:
        """
        Seat a player at the end of the roster.

        The first player becomes the owner. Adding an already-seated id is a
        no-op that returns the existing player.
        """
        existing = self.get_player(player_id)
        if existing:
            return existing

        player = Player(id=player_id, name=name)
        self.players.append(player)
        if self.owner_id is None:
            self.owner_id = player_id
        if self.game.active_player_id is None:
            self.game.active_player_id = self.players[0].id
        return player

    def remove_player(self, player_id: str) -> Optional[Player]:
        """
        Remove a player from the roster.

        Ownership and the active-player pointer pass to the new first player
        when the leaver held them.

        Returns:
            The removed Player, or None if not found.
        """
        idx = self.player_index(player_id)
        if idx == -1:
            return None

        removed = self.players.pop(idx)
        first = self.players[0] if self.players else None

        if self.owner_id == player_id:
            self.owner_id = first.id if first else None
        if self.game.active_player_id == player_id:
            self.game.active_player_id = first.id if first else None

        return removed

    def is_empty(self) -> bool:
        """Check if the room has no players."""
        return len(self.players) == 0

    def is_owner(self, player_id: str) -> bool:
        return self.owner_id is not None and self.owner_id == player_id

    def all_ready(self) -> bool:
        return bool(self.players) and all(p.ready for p in self.players)

    def is_active(self, player_id: str) -> bool:
        return self.game.active_player_id is not None and self.game.active_player_id == player_id

    # -------------------------------------------------------------------------
    # Lobby
    # -------------------------------------------------------------------------

    def set_ready(self, player_id: str, ready: bool) -> ActionResult:
        if self.game.phase != GamePhase.LOBBY:
            return ActionResult.fail("not in lobby")
        player = self.get_player(player_id)
        if not player:
            return ActionResult.fail("player not found")
        player.ready = bool(ready)
        return ActionResult.success()

    def choose_character(self, player_id: str, character_id: str) -> ActionResult:
        if self.game.phase != GamePhase.LOBBY:
            return ActionResult.fail("not in lobby")
        chosen = (character_id or "").strip()[:CHARACTER_ID_MAX_LENGTH]
        if not chosen:
            return ActionResult.fail("character required")
        player = self.get_player(player_id)
        if not player:
            return ActionResult.fail("player not found")
        player.character_id = chosen
        return ActionResult.success()

    # -------------------------------------------------------------------------
    # Game Lifecycle
    # -------------------------------------------------------------------------

    def start_game(self, player_id: str, rng: Optional[random.Random] = None) -> ActionResult:
        """
        Transition lobby -> playing.

        Requires the owner, at least two players, and everyone ready. Each
        player gets a fresh shuffled starter deck, an empty hand and discard,
        and a new empty board; turn resets to 1 with the first seat active.
        """
        if self.game.phase != GamePhase.LOBBY:
            return ActionResult.fail("already started")
        if not self.is_owner(player_id):
            return ActionResult.fail("owner only")
        if len(self.players) < MIN_PLAYERS_TO_START:
            return ActionResult.fail(f"need at least {MIN_PLAYERS_TO_START} players")
        if not self.all_ready():
            return ActionResult.fail("not all ready")

        for player in self.players:
            player.reset_for_game(rng)

        self.game.phase = GamePhase.PLAYING
        self.game.turn = 1
        self.game.active_player_id = self.players[0].id

        logger.info(f"Room {self.id} started with {len(self.players)} players")
        return ActionResult.success()

    def end_turn(self, player_id: str) -> ActionResult:
        """
        Pass the turn to the next seat, wrapping around.

        The caller's index is looked up fresh each time so roster removals
        never desynchronize rotation. Wrapping back to seat 0 bumps the turn.
        """
        if self.game.phase != GamePhase.PLAYING:
            return ActionResult.fail("game not started")
        if not self.is_active(player_id):
            return ActionResult.fail("not your turn")

        idx = self.player_index(player_id)
        if idx == -1:
            return ActionResult.fail("player not in room")

        next_idx = (idx + 1) % len(self.players)
        self.game.active_player_id = self.players[next_idx].id
        if next_idx == 0:
            self.game.turn += 1
        return ActionResult.success()

    def end_game(self, player_id: str) -> ActionResult:
        """Owner-only playing -> ended transition. Ended is terminal."""
        if self.game.phase != GamePhase.PLAYING:
            return ActionResult.fail("game not started")
        if not self.is_owner(player_id):
            return ActionResult.fail("owner only")
        self.game.phase = GamePhase.ENDED
        logger.info(f"Room {self.id} ended")
        return ActionResult.success()

    def push_log(self, entry: ActionEntry) -> None:
        self.log.append(entry)


class RoomManager:
    """
    Owns every active room.

    Constructed once at startup and handed to whoever needs room lookup;
    rooms are inserted on creation and removed when their last player leaves.
    """

    def __init__(self, code_length: int = ROOM_CODE_LENGTH, rng: Optional[random.Random] = None) -> None:
        """Initialize an empty room manager."""
        self.rooms: dict[str, Room] = {}
        self.code_length = code_length
        self.rng = rng

    def _generate_code(self, max_attempts: int = 100) -> str:
        """Generate a unique room code."""
        alphabet = string.ascii_uppercase + string.digits
        chooser = self.rng or random
        for _ in range(max_attempts):
            code = "".join(chooser.choices(alphabet, k=self.code_length))
            if code not in self.rooms:
                return code
        raise RuntimeError("Could not generate unique room code")

    def create_room(self) -> Room:
        """
        Create a new empty room with a unique code.

        Returns:
            The newly created Room.
        """
        code = self._generate_code()
        room = Room(id=code)
        self.rooms[code] = room
        return room

    def get_room(self, code: Optional[str]) -> Optional[Room]:
        """Get a room by its code (case-insensitive), or None."""
        if not code:
            return None
        return self.rooms.get(code.strip().upper())

    def remove_room(self, code: str) -> None:
        """Delete a room. Unknown codes are ignored."""
        if code in self.rooms:
            del self.rooms[code]

    def leave(self, room_id: Optional[str], player_id: str) -> Optional[Player]:
        """
        Remove a player from a room, dropping the room once it is empty.

        Safe to call repeatedly: an unknown room or player is a no-op.

        Returns:
            The removed Player, or None if nothing changed.
        """
        room = self.get_room(room_id)
        if not room:
            return None
        removed = room.remove_player(player_id)
        if room.is_empty():
            self.remove_room(room.id)
            logger.info(f"Room {room.id} deleted (empty)")
        return removed

    def new_player_id(self) -> str:
        return new_id()
