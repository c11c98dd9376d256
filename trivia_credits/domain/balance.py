"""Balance value object

Immutable snapshot of a user's three balance sources. The total is always
derived from the sources and never stored.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class Balance:
    user_id: str
    credits: int
    purchased_credits: int
    free_questions: int
    daily_limit: int
    last_reset_at: Optional[datetime] = None
    version: int = field(default=0, compare=False)

    @property
    def total_credits(self) -> int:
        return self.credits + self.purchased_credits + self.free_questions

    @property
    def can_play_free(self) -> bool:
        return self.free_questions > 0

    def with_sources(self, credits: int, purchased_credits: int, free_questions: int) -> "Balance":
        return replace(
            self,
            credits=max(0, credits),
            purchased_credits=max(0, purchased_credits),
            free_questions=max(0, free_questions),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "credits": self.credits,
            "purchased_credits": self.purchased_credits,
            "free_questions": self.free_questions,
            "daily_limit": self.daily_limit,
            "last_reset_at": self.last_reset_at.isoformat() if self.last_reset_at else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Balance":
        last_reset_at = data.get("last_reset_at")
        return cls(
            user_id=data["user_id"],
            credits=int(data["credits"]),
            purchased_credits=int(data["purchased_credits"]),
            free_questions=int(data["free_questions"]),
            daily_limit=int(data["daily_limit"]),
            last_reset_at=datetime.fromisoformat(last_reset_at) if last_reset_at else None,
            version=int(data.get("version", 0)),
        )
