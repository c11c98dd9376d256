"""Data Transfer Objects for Credit Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_package import CreditPackage
from trivia_credits.domain.credit_transaction import CreditTransaction
from trivia_credits.domain.deduction import DeductionBreakdown


class CanPlayCommandDTO(BaseModel):
    """
    Command DTO for the pre-flight play check

    session_size is a question count, or seconds for time-based modes.
    -1 requests an unlimited session.
    """

    user_id: str = Field(..., description="User identifier")

    session_size: Optional[int] = Field(default=None, description="Questions (or seconds) requested, -1 for unlimited")

    game_mode: str = Field(default="question-limited", description="Game mode")


class CanPlayResponseDTO(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    required_credits: int
    available_credits: Optional[int] = None


class DeductCommandDTO(BaseModel):
    """
    Command DTO for charging a game session

    Used as input to DeductCredits use case.
    """

    user_id: str = Field(..., description="User identifier")

    session_size: int = Field(..., description="Questions (or seconds) requested, -1 for unlimited")

    game_mode: str = Field(default="question-limited", description="Game mode")

    reason: Optional[str] = Field(default=None, description="Optional reason stored with the ledger entry")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_42",
                "session_size": 5,
                "game_mode": "question-limited",
                "reason": "solo game"
            }
        }


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for a user's balance

    total_credits is always credits + purchased_credits + free_questions.
    """

    user_id: str
    total_credits: int
    credits: int
    purchased_credits: int
    free_questions: int
    daily_limit: int
    can_play_free: bool
    last_reset_at: Optional[datetime] = None

    @classmethod
    def from_balance(cls, balance: Balance) -> "BalanceResponseDTO":
        return cls(
            user_id=balance.user_id,
            total_credits=balance.total_credits,
            credits=balance.credits,
            purchased_credits=balance.purchased_credits,
            free_questions=balance.free_questions,
            daily_limit=balance.daily_limit,
            can_play_free=balance.can_play_free,
            last_reset_at=balance.last_reset_at,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_42",
                "total_credits": 120,
                "credits": 100,
                "purchased_credits": 0,
                "free_questions": 20,
                "daily_limit": 20,
                "can_play_free": True,
                "last_reset_at": "2024-01-01T00:00:00Z"
            }
        }


class DeductionBreakdownDTO(BaseModel):
    free_questions_used: int = 0
    purchased_credits_used: int = 0
    credits_used: int = 0

    @classmethod
    def from_breakdown(cls, breakdown: DeductionBreakdown) -> "DeductionBreakdownDTO":
        return cls(**breakdown.to_dict())


class DeductResponseDTO(BaseModel):
    """
    Response DTO for DeductCredits

    charged is False for unrestricted accounts, which keep their balance and
    get no ledger entry.
    """

    balance: BalanceResponseDTO
    required_credits: int
    breakdown: DeductionBreakdownDTO
    charged: bool
    transaction_id: Optional[int] = None


class ConfirmPurchaseCommandDTO(BaseModel):
    """
    Command DTO for crediting a completed payment

    payment_reference is the idempotency key: a reference is credited once.
    """

    user_id: str = Field(..., description="User identifier")

    payment_reference: str = Field(..., description="Gateway payment reference")

    credits: int = Field(..., description="Credits bought with the payment")

    package_id: Optional[str] = Field(default=None, description="Purchased package, if any")


class ConfirmPurchaseResponseDTO(BaseModel):
    balance: BalanceResponseDTO
    payment_reference: str
    credited: int
    duplicate: bool = False
    transaction_id: Optional[int] = None


class PurchaseCommandDTO(BaseModel):
    user_id: str = Field(..., description="User identifier")

    package_id: str = Field(..., description="Credit package to buy")

    payment_details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque payment method details passed to the payment gateway"
    )


class PurchaseResponseDTO(BaseModel):
    status: str
    payment_reference: str
    package_id: str
    credits: int
    balance: Optional[BalanceResponseDTO] = None


class CreditPackageDTO(BaseModel):
    id: str
    credits: int
    bonus: int
    price: Decimal
    currency: str
    price_display: str
    price_per_credit: Decimal
    tier: str

    @classmethod
    def from_package(cls, package: CreditPackage) -> "CreditPackageDTO":
        return cls(
            id=package.id,
            credits=package.credits,
            bonus=package.bonus,
            price=package.price,
            currency=package.currency,
            price_display=package.price_display,
            price_per_credit=package.price_per_credit,
            tier=package.tier,
        )


class TransactionDTO(BaseModel):
    """Ledger entry as returned by the history endpoint"""

    id: int
    transaction_type: str
    source: Optional[str] = None
    amount: int
    credits_after: int
    purchased_credits_after: int
    free_questions_after: int
    payment_reference: Optional[str] = None
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    transaction_date: date
    created_at: datetime

    @classmethod
    def from_transaction(cls, txn: CreditTransaction) -> "TransactionDTO":
        return cls(
            id=txn.id,
            transaction_type=txn.transaction_type.value if hasattr(txn.transaction_type, "value") else txn.transaction_type,
            source=txn.source.value if hasattr(txn.source, "value") else txn.source,
            amount=txn.amount,
            credits_after=txn.credits_after,
            purchased_credits_after=txn.purchased_credits_after,
            free_questions_after=txn.free_questions_after,
            payment_reference=txn.payment_reference,
            description=txn.description,
            metadata=txn.metadata_dict,
            transaction_date=txn.transaction_date,
            created_at=txn.created_at,
        )


class ListTransactionsResponseDTO(BaseModel):
    user_id: str
    transactions: List[TransactionDTO]
    limit: int


class GrantBonusCommandDTO(BaseModel):
    user_id: str = Field(..., description="User identifier")

    amount: int = Field(..., description="Bonus credits to grant (must be > 0)")

    reason: Optional[str] = Field(default=None, description="Why the bonus was granted")


class AdjustCreditsCommandDTO(BaseModel):
    """
    Command DTO for an administrative balance correction

    delta is signed; the adjusted source must not go negative.
    """

    user_id: str = Field(..., description="User identifier")

    delta: int = Field(..., description="Signed adjustment")

    source: str = Field(default="credits", description="free_daily, purchased or credits")

    reason: str = Field(..., min_length=1, description="Reason recorded in the ledger")


class CreditMutationResponseDTO(BaseModel):
    balance: BalanceResponseDTO
    transaction_id: Optional[int] = None
    changed: bool = True


class CreateAccountCommandDTO(BaseModel):
    user_id: str = Field(..., description="User identifier")

    credits: Optional[int] = Field(default=None, ge=0, description="Initial general credits")

    daily_limit: Optional[int] = Field(default=None, ge=0, description="Daily free questions")


class DailyResetResultDTO(BaseModel):
    """Summary of one daily reset run"""

    total_users: int
    reset_users: int
    skipped_users: int
    failed_users: int
    reset_date: date
    execution_time_ms: int
