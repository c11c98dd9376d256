"""Request schemas for the Credits API

Pydantic models for validating incoming HTTP requests. Older clients send the
session size as questions_per_request, questionsPerRequest or amount; all are
accepted and normalized to session_size.
"""

from typing import Optional, Dict, Any
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


SESSION_SIZE_ALIASES = AliasChoices("session_size", "questions_per_request", "questionsPerRequest", "amount")


class DeductRequestSchema(BaseModel):
    """
    Request schema for charging a game session

    Used for POST /credits/deduct endpoint.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "user_id": "user_42",
                "session_size": 5,
                "game_mode": "question-limited",
                "reason": "solo game"
            }
        },
    )

    user_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("user_id", "userId"),
        description="User identifier (required, non-empty)"
    )

    session_size: int = Field(
        ...,
        validation_alias=SESSION_SIZE_ALIASES,
        description="Questions (seconds for time-limited), -1 for unlimited"
    )

    game_mode: str = Field(
        default="question-limited",
        validation_alias=AliasChoices("game_mode", "gameMode"),
        description="question-limited, time-limited, unlimited or multiplayer"
    )

    reason: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Optional reason stored with the ledger entry"
    )


class PurchaseRequestSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, validation_alias=AliasChoices("user_id", "userId"))

    package_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("package_id", "packageId"),
        description="Credit package to buy (see GET /credits/packages)"
    )

    payment_details: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("payment_details", "paymentDetails"),
        description="Payment method details forwarded to the payment gateway"
    )


class ConfirmPurchaseRequestSchema(BaseModel):
    """
    Request schema for crediting a completed payment

    Used for POST /credits/purchase/confirm (payment webhook or client retry).
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, validation_alias=AliasChoices("user_id", "userId"))

    payment_reference: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("payment_reference", "paymentReference"),
    )

    credits: int = Field(..., gt=0, description="Credits bought with the payment")

    package_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("package_id", "packageId"),
    )


class BonusRequestSchema(BaseModel):
    user_id: str = Field(..., min_length=1)

    amount: int = Field(..., gt=0, description="Bonus credits (must be > 0)")

    reason: Optional[str] = Field(default=None, max_length=255)


class AdjustRequestSchema(BaseModel):
    user_id: str = Field(..., min_length=1)

    delta: int = Field(..., description="Signed adjustment, non-zero")

    source: str = Field(default="credits", description="free_daily, purchased or credits")

    reason: str = Field(..., min_length=1, max_length=255)


class CreateAccountRequestSchema(BaseModel):
    user_id: str = Field(..., min_length=1)

    credits: Optional[int] = Field(default=None, ge=0)

    daily_limit: Optional[int] = Field(default=None, ge=0)
