"""
Table model for the card table server.

This module holds the card and zone primitives plus the per-player table:
cards, the three private/public zones, and the fixed four-location board.

Zone conventions:
    - deck: ordered, the top is the END of the list, face-down
    - hand: private to its owner, stored in arrival order
    - discard: ordered, the top is the END of the list, public

Board Layout:
    [L1] [L2] [L3] [L4]      <- indices 0..3
    each location holds a `top` and a `bottom` stack, both public
"""

import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from constants import BOARD_SIZE, STARTER_DECK_SIZE


def new_id(length: int = 8) -> str:
    """Generate a short opaque identifier."""
    return uuid.uuid4().hex[:length]


def shuffle(cards: list, rng: Optional[random.Random] = None) -> None:
    """
    Uniformly permute a list in place.

    random.shuffle is a Fisher-Yates shuffle; the same routine is used for
    starter decks, auto-reshuffles and explicit reshuffles.

    Args:
        cards: List to shuffle.
        rng: Optional Random instance (tests pass a seeded one).
    """
    (rng or random).shuffle(cards)


@dataclass
class Card:
    """
    A card on the table.

    Attributes:
        id: Immutable identity, unique within its owner's zones and board.
        label: Display text.
        face_up: Display hint only; visibility is enforced by projection.
        locked: Locked cards cannot be moved or removed from the board.
    """

    id: str
    label: str
    face_up: bool = False
    locked: bool = False

    def to_dict(self) -> dict:
        """Convert card to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "label": self.label,
            "faceUp": self.face_up,
            "locked": self.locked,
        }


class Row(str, Enum):
    """The two stacks of a board location."""

    TOP = "top"
    BOTTOM = "bottom"


@dataclass
class Location:
    """
    One of the four board locations.

    Both stacks are always public. Only `bottom` is changed by card actions.
    """

    id: str
    name: str
    locked: bool = False
    bottom: list[Card] = field(default_factory=list)
    top: list[Card] = field(default_factory=list)

    def stack(self, row: Row) -> list[Card]:
        return self.top if row == Row.TOP else self.bottom

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "locked": self.locked,
            "top": [c.to_dict() for c in self.top],
            "bottom": [c.to_dict() for c in self.bottom],
        }


def make_location(index: int, name: Optional[str] = None) -> Location:
    return Location(id=new_id(6), name=name or f"Loc {index + 1}")


def _four_locations() -> tuple[Location, Location, Location, Location]:
    return tuple(make_location(i) for i in range(BOARD_SIZE))


@dataclass
class Board:
    """
    A player's board: exactly four locations plus the mover pointer.

    `mover_at` is carried as inert state; no action reads or writes it.
    """

    locations: tuple[Location, Location, Location, Location] = field(default_factory=_four_locations)
    mover_at: int = 0

    def __post_init__(self) -> None:
        if len(self.locations) != BOARD_SIZE:
            raise ValueError(f"a board has exactly {BOARD_SIZE} locations")
        self.locations = tuple(self.locations)

    def all_cards(self) -> list[Card]:
        cards: list[Card] = []
        for loc in self.locations:
            cards.extend(loc.bottom)
            cards.extend(loc.top)
        return cards

    def to_dict(self) -> dict:
        return {
            "moverAt": self.mover_at,
            "locations": [loc.to_dict() for loc in self.locations],
        }


@dataclass
class Zones:
    """A player's deck, hand and discard pile."""

    deck: list[Card] = field(default_factory=list)
    hand: list[Card] = field(default_factory=list)
    discard: list[Card] = field(default_factory=list)

    def counts(self) -> dict:
        return {
            "deck": len(self.deck),
            "hand": len(self.hand),
            "discard": len(self.discard),
        }

    def discard_top(self) -> Optional[Card]:
        return self.discard[-1] if self.discard else None


def find_card(cards: list[Card], card_id: str) -> int:
    """Return the index of a card by id, or -1 if absent."""
    for i, card in enumerate(cards):
        if card.id == card_id:
            return i
    return -1


@dataclass
class Player:
    """
    A seated player.

    Attributes:
        id: Player identity inside the room (bound to a session, not a socket).
        name: Display name.
        ready: Lobby readiness flag.
        character_id: Chosen character, or None.
        zones: Deck, hand and discard.
        board: The four-location board.
        power: Public power track value.
    """

    id: str
    name: str
    ready: bool = False
    character_id: Optional[str] = None
    zones: Zones = field(default_factory=Zones)
    board: Board = field(default_factory=Board)
    power: int = 0

    def all_card_ids(self) -> list[str]:
        """Every card id this player owns, across zones and board."""
        cards = self.zones.deck + self.zones.hand + self.zones.discard + self.board.all_cards()
        return [c.id for c in cards]

    def reset_for_game(self, rng: Optional[random.Random] = None) -> None:
        """Deal a fresh starter deck and clear hand, discard and board."""
        self.zones = Zones(deck=make_starter_deck(self.name, rng=rng))
        self.board = Board()
        self.power = 0


def make_starter_deck(
    owner_name: str,
    size: int = STARTER_DECK_SIZE,
    rng: Optional[random.Random] = None,
) -> list[Card]:
    """
    Create a shuffled starter deck.

    This is the only place cards come into existence.

    Args:
        owner_name: Used for the placeholder labels ("Alice 1", "Alice 2", ...).
        size: Number of cards.
        rng: Optional Random instance for the shuffle.

    Returns:
        Face-down cards with fresh ids, shuffled once.
    """
    cards = [Card(id=new_id(), label=f"{owner_name} {i}") for i in range(1, size + 1)]
    shuffle(cards, rng)
    return cards


def shuffle_discard_into_deck(player: Player, rng: Optional[random.Random] = None) -> int:
    """
    Move the whole discard pile onto the deck face-down and shuffle the deck.

    The entire resulting deck is shuffled, not only the moved portion.

    Returns:
        Number of cards moved (0 if the discard was empty).
    """
    moved = len(player.zones.discard)
    if moved == 0:
        return 0
    for card in player.zones.discard:
        card.face_up = False
    player.zones.deck.extend(player.zones.discard)
    player.zones.discard = []
    shuffle(player.zones.deck, rng)
    return moved


class GamePhase(str, Enum):
    """
    Phases of a table session.

    Flow: LOBBY -> PLAYING -> ENDED
    """

    LOBBY = "lobby"
    PLAYING = "playing"
    ENDED = "ended"


@dataclass
class GameMeta:
    """Phase, turn counter and the active-player pointer."""

    phase: GamePhase = GamePhase.LOBBY
    turn: int = 1
    active_player_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "turn": self.turn,
            "activePlayerId": self.active_player_id,
        }
