"""Credit Transaction Domain Entity

Immutable append-only audit trail of all balance mutations.
Each transaction records the signed amount and a snapshot of all three
balance sources after the mutation.
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import Integer, String, Text
from trivia_credits.domain.base import BaseModel, BigIntegerId


class TransactionType(str, Enum):
    """Credit transaction types"""
    DEDUCTION = "deduction"                # Credits spent on a game session
    PURCHASE = "purchase"                  # Credits bought through a payment
    BONUS = "bonus"                        # Credits granted for free
    DAILY_RESET = "daily_reset"            # Free questions restored for the day
    ADMIN_ADJUSTMENT = "admin_adjustment"  # Manual correction (positive or negative)


class CreditSource(str, Enum):
    """Balance source a transaction affected"""
    FREE_DAILY = "free_daily"
    PURCHASED = "purchased"
    CREDITS = "credits"
    BONUS = "bonus"


class CreditTransaction(BaseModel, table=True):
    """
    Credit Transaction - Immutable audit trail of balance mutations

    Domain Rules:
    - Transactions are immutable (append-only, never updated or deleted)
    - amount is signed: negative for deductions
    - amount + total before == total after (credits_after + purchased_credits_after + free_questions_after)
    - payment_reference is unique (a payment is credited at most once)
    - source is None when a deduction drew from more than one source;
      the per-source split is kept in metadata_json
    """

    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index('ix_credit_transactions_user_date', 'user_id', 'transaction_date'),
        Index('ix_credit_transactions_created_at', 'created_at'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntegerId, primary_key=True, autoincrement=True),
        description="Unique transaction identifier (auto-increment)"
    )

    user_id: str = Field(
        sa_column=Column(String(255), nullable=False, index=True),
        description="User the transaction belongs to"
    )

    transaction_type: TransactionType = Field(
        description="Type of transaction (deduction, purchase, bonus, daily_reset, admin_adjustment)"
    )

    source: Optional[CreditSource] = Field(
        default=None,
        description="Balance source affected (None when several sources were drawn)"
    )

    amount: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Signed amount (negative for deductions)"
    )

    credits_after: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="General credits after the mutation"
    )

    purchased_credits_after: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Purchased credits after the mutation"
    )

    free_questions_after: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Free questions after the mutation"
    )

    payment_reference: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True, unique=True),
        description="Payment gateway reference (idempotency key for purchases)"
    )

    description: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True),
        description="Human-readable description"
    )

    metadata_json: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="JSON metadata (game mode, session size, breakdown, reason)"
    )

    transaction_date: date = Field(
        default_factory=lambda: datetime.utcnow().date(),
        description="Calendar date of the transaction (UTC)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Transaction timestamp (immutable)"
    )

    @property
    def total_after(self) -> int:
        return self.credits_after + self.purchased_credits_after + self.free_questions_after

    @property
    def metadata_dict(self) -> dict[str, Any]:
        if not self.metadata_json:
            return {}
        return json.loads(self.metadata_json)

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "user_id": "user_42",
                "transaction_type": "deduction",
                "source": "free_daily",
                "amount": -5,
                "credits_after": 100,
                "purchased_credits_after": 0,
                "free_questions_after": 15,
                "payment_reference": None,
                "description": "Credits deducted for question-limited game",
                "metadata_json": "{\"game_mode\": \"question-limited\", \"session_size\": 5}",
                "transaction_date": "2024-01-01",
                "created_at": "2024-01-01T00:00:00Z"
            }
        }
