from .base import BaseModel, generate_uuid
from .balance import Balance
from .credit_account import CreditAccount
from .credit_transaction import CreditTransaction, CreditSource, TransactionType
from .credit_package import CreditPackage, CREDIT_PURCHASE_PACKAGES, find_package
from .game_mode import (
    GameMode,
    CostPolicy,
    TimeIntervalCost,
    CREDIT_COSTS,
    Bounded,
    Unlimited,
    SessionSize,
    UNLIMITED_SESSION_SIZE,
)
from .payment import PaymentRequest, PaymentResult, PaymentStatus

__all__ = [
    "BaseModel",
    "generate_uuid",
    "Balance",
    "CreditAccount",
    "CreditTransaction",
    "CreditSource",
    "TransactionType",
    "CreditPackage",
    "CREDIT_PURCHASE_PACKAGES",
    "find_package",
    "GameMode",
    "CostPolicy",
    "TimeIntervalCost",
    "CREDIT_COSTS",
    "Bounded",
    "Unlimited",
    "SessionSize",
    "UNLIMITED_SESSION_SIZE",
    "PaymentRequest",
    "PaymentResult",
    "PaymentStatus",
]
