"""Payment Gateway Interface

The engine never talks to a specific payment provider. It only needs the
final status of a payment and the gateway's reference for it.
"""

from abc import ABC, abstractmethod
from trivia_credits.domain.payment import PaymentRequest, PaymentResult


class PaymentGateway(ABC):

    @abstractmethod
    async def process_payment(self, user_id: str, request: PaymentRequest) -> PaymentResult:
        """
        Charge a user

        Args:
            user_id: Paying user
            request: Amount, currency and description of the charge

        Returns:
            PaymentResult with status pending, completed or failed and the
            gateway reference
        """
        pass
