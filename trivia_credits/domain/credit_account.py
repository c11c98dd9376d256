"""Credit Account Domain Entity

Stores the balance of a single user. Each user has exactly one account.
All writes go through a version-checked conditional update.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import CheckConstraint, Integer, String
from trivia_credits.domain.base import BaseModel, BigIntegerId
from trivia_credits.domain.balance import Balance


class CreditAccount(BaseModel, table=True):
    """
    Credit Account - Tracks a user's three balance sources

    Domain Rules:
    - One account per user (user_id is unique)
    - credits, purchased_credits and free_questions are never negative
    - total credits are derived, never stored
    - version increases by one on every balance write
    """

    __tablename__ = "credit_accounts"
    __table_args__ = (
        CheckConstraint('credits >= 0', name='credits_non_negative'),
        CheckConstraint('purchased_credits >= 0', name='purchased_credits_non_negative'),
        CheckConstraint('free_questions >= 0', name='free_questions_non_negative'),
        CheckConstraint('daily_limit >= 0', name='daily_limit_non_negative'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntegerId, primary_key=True, autoincrement=True),
        description="Unique account identifier (auto-increment)"
    )

    user_id: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True, index=True),
        description="User ID (unique - one account per user)"
    )

    credits: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="General-purpose credits"
    )

    purchased_credits: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Credits obtained through payments"
    )

    free_questions: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Remaining free questions for the current day"
    )

    daily_limit: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Free questions restored by the daily reset"
    )

    last_reset_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp of the last daily reset (UTC)"
    )

    version: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Optimistic concurrency token"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Account creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last balance update timestamp"
    )

    def to_balance(self) -> Balance:
        return Balance(
            user_id=self.user_id,
            credits=self.credits or 0,
            purchased_credits=self.purchased_credits or 0,
            free_questions=self.free_questions or 0,
            daily_limit=self.daily_limit or 0,
            last_reset_at=self.last_reset_at,
            version=self.version or 0,
        )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "user_id": "user_42",
                "credits": 100,
                "purchased_credits": 0,
                "free_questions": 20,
                "daily_limit": 20,
                "last_reset_at": "2024-01-01T00:00:00Z",
                "version": 0,
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }
