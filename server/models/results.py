"""Outcome of a table operation, shaped for the acknowledgement channel."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ActionResult:
    """
    Result of a validated operation.

    A failed result means nothing was mutated and nothing should be
    broadcast; every failure is safe to retry.
    """

    ok: bool
    error: Optional[str] = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def success(cls, **extra) -> "ActionResult":
        return cls(ok=True, extra=extra)

    @classmethod
    def fail(cls, error: str) -> "ActionResult":
        return cls(ok=False, error=error)

    def __bool__(self) -> bool:
        return self.ok

    def to_ack(self) -> dict:
        """Convert to the `{ok, error?, ...extra}` acknowledgement dict."""
        ack = {"ok": self.ok}
        if self.error is not None:
            ack["error"] = self.error
        ack.update(self.extra)
        return ack
