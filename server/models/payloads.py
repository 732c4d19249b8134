"""
Inbound event payloads.

Field names on the wire are camelCase; the models expose snake_case
attributes. Fields are optional wherever the table rules, rather than the
schema, decide what a missing value means (e.g. a missing location index is
a "bad location index", not a parse error).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Payload(BaseModel):
    """Base for all inbound payloads."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CreateRoomRequest(Payload):
    name: str = ""


class JoinRoomRequest(Payload):
    room_id: str = Field("", alias="roomId")
    name: str = ""


class ChooseCharacterRequest(Payload):
    character_id: str = Field("", alias="characterId")


class SetReadyRequest(Payload):
    ready: bool = False


class DrawRequest(Payload):
    count: Optional[int] = None


class PlayRequest(Payload):
    card_id: str = Field("", alias="cardId")
    location_index: Optional[int] = Field(None, alias="locationIndex")


class DiscardRequest(Payload):
    card_id: Optional[str] = Field(None, alias="cardId")
    card_ids: Optional[list[str]] = Field(None, alias="cardIds")

    def ids(self) -> list[str]:
        """Normalize to a list; `cardIds` wins when both are given."""
        if self.card_ids:
            return list(self.card_ids)
        return [self.card_id] if self.card_id else []


class MoveRequest(Payload):
    card_id: str = Field("", alias="cardId")
    from_location: Optional[int] = Field(None, alias="from")
    to_location: Optional[int] = Field(None, alias="to")


class RemoveRequest(Payload):
    card_id: str = Field("", alias="cardId")
    from_location: Optional[int] = Field(None, alias="from")


class CardRequest(Payload):
    card_id: str = Field("", alias="cardId")


class DiscardPileRequest(Payload):
    player_id: str = Field("", alias="playerId")


class PowerRequest(Payload):
    delta: Optional[float] = None


class LocationLockRequest(Payload):
    index: Optional[int] = None
    locked: Optional[bool] = None


class CardLockRequest(Payload):
    card_id: str = Field("", alias="cardId")
    locked: Optional[bool] = None


class ChatRequest(Payload):
    text: str = ""
