"""Per-room chat history (bounded) and system announcements."""

import time
from dataclasses import dataclass, field
from typing import Optional

from constants import CHAT_HISTORY_CAP, CHAT_MAX_LENGTH, SYSTEM_PLAYER_ID, SYSTEM_PLAYER_NAME
from game import new_id


@dataclass
class ChatMessage:
    player_id: str
    name: str
    text: str
    id: str = field(default_factory=new_id)
    ts: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ts": self.ts,
            "playerId": self.player_id,
            "name": self.name,
            "text": self.text,
        }


class ChatLog:
    """Keeps only the most recent messages of a room."""

    def __init__(self, cap: int = CHAT_HISTORY_CAP) -> None:
        self.cap = cap
        self.messages: list[ChatMessage] = []

    def post(self, player_id: str, name: str, raw_text: str) -> Optional[ChatMessage]:
        """
        Store a player message.

        Returns:
            The stored message, or None if the text was blank.
        """
        text = (raw_text or "").strip()[:CHAT_MAX_LENGTH]
        if not text:
            return None
        return self._append(ChatMessage(player_id=player_id, name=name, text=text))

    def system(self, text: str) -> ChatMessage:
        return self._append(ChatMessage(player_id=SYSTEM_PLAYER_ID, name=SYSTEM_PLAYER_NAME, text=text))

    def history(self) -> list[dict]:
        return [m.to_dict() for m in self.messages]

    def _append(self, msg: ChatMessage) -> ChatMessage:
        self.messages.append(msg)
        if len(self.messages) > self.cap:
            self.messages = self.messages[-self.cap:]
        return msg

    def __len__(self) -> int:
        return len(self.messages)
