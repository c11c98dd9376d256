"""Payment collaborator value types"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class PaymentStatus(str, Enum):
    """Payment states reported by the gateway"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PaymentRequest:
    amount: Decimal
    currency: str
    description: str
    metadata: dict[str, Any] = field(default_factory=dict)
    payment_details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentResult:
    status: PaymentStatus
    reference: str
    message: Optional[str] = None
