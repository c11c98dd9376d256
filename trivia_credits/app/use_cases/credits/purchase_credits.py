"""PurchaseCredits Use Case

Charges the user for a credit package through the payment gateway and, when
the payment completes, credits the package to purchased_credits.
"""

import logging
from typing import Sequence
from libs.result import Result, Return, Error
from trivia_credits.app.services.payment_gateway import PaymentGateway
from trivia_credits.domain.credit_package import CREDIT_PURCHASE_PACKAGES, CreditPackage, find_package
from trivia_credits.domain.payment import PaymentRequest, PaymentStatus
from .confirm_purchase import ConfirmPurchase
from .dtos import ConfirmPurchaseCommandDTO, PurchaseCommandDTO, PurchaseResponseDTO
from .validation import invalid_input, validate_user_id

logger = logging.getLogger(__name__)


class PurchaseCredits:
    """
    Use Case: Buy a credit package

    Business Rules:
    1. Only catalogue packages can be bought
    2. Credits are added only for a completed payment
    3. Crediting is delegated to ConfirmPurchase, so the gateway reference is
       credited at most once

    Errors:
        INVALID_INPUT: Bad user id or unknown package
        PAYMENT_NOT_COMPLETED: Gateway reported a pending or failed payment
        Any ConfirmPurchase error
    """

    def __init__(
        self,
        payment_gateway: PaymentGateway,
        confirm_purchase: ConfirmPurchase,
        packages: Sequence[CreditPackage] = CREDIT_PURCHASE_PACKAGES,
    ):
        self.payment_gateway = payment_gateway
        self.confirm_purchase = confirm_purchase
        self.packages = tuple(packages)

    async def execute(self, command: PurchaseCommandDTO) -> Result[PurchaseResponseDTO]:
        error = validate_user_id(command.user_id)
        if error:
            return Return.err(error)

        package = find_package(command.package_id, self.packages)
        if not package:
            return Return.err(
                invalid_input(
                    f"Unknown credit package '{command.package_id}'",
                    reason=f"expected one of {[p.id for p in self.packages]}",
                )
            )

        payment = await self.payment_gateway.process_payment(
            command.user_id,
            PaymentRequest(
                amount=package.price,
                currency=package.currency,
                description=f"Purchase of {package.total_credits} credits",
                metadata={
                    "user_id": command.user_id,
                    "package_id": package.id,
                    "credits": package.total_credits,
                },
                payment_details=command.payment_details,
            ),
        )

        if payment.status != PaymentStatus.COMPLETED:
            logger.warning(
                f"Payment {payment.reference} for user {command.user_id} is {payment.status.value}: "
                f"{payment.message}"
            )
            return Return.err(
                Error(
                    code="PAYMENT_NOT_COMPLETED",
                    message=f"Payment {payment.status.value}: {payment.message or 'no details'}",
                    reason=f"status={payment.status.value}, reference={payment.reference}",
                )
            )

        confirmed = await self.confirm_purchase.execute(
            ConfirmPurchaseCommandDTO(
                user_id=command.user_id,
                payment_reference=payment.reference,
                credits=package.total_credits,
                package_id=package.id,
            )
        )
        if confirmed.is_err():
            logger.error(
                f"Payment {payment.reference} completed but crediting user {command.user_id} failed: "
                f"{confirmed.error.code}"
            )
            return Return.err(confirmed.error)

        return Return.ok(
            PurchaseResponseDTO(
                status=payment.status.value,
                payment_reference=payment.reference,
                package_id=package.id,
                credits=package.total_credits,
                balance=confirmed.value.balance,
            )
        )
