"""Payment Gateway Implementations

Provides concrete implementations for charging credit package purchases.
"""

import logging
from typing import Optional
import httpx
from trivia_credits.app.services.payment_gateway import PaymentGateway
from trivia_credits.domain.base import generate_uuid
from trivia_credits.domain.payment import PaymentRequest, PaymentResult, PaymentStatus

logger = logging.getLogger(__name__)


class LocalPaymentGateway(PaymentGateway):
    """
    Payment gateway that approves every payment

    Useful for development and testing. References are random UUIDs.
    """

    async def process_payment(self, user_id: str, request: PaymentRequest) -> PaymentResult:
        reference = f"local_{generate_uuid()}"
        logger.warning(
            f"[LOCAL PAYMENT] User: {user_id}, Amount: {request.amount} {request.currency}, "
            f"Reference: {reference}"
        )
        return PaymentResult(status=PaymentStatus.COMPLETED, reference=reference)


class HttpPaymentGateway(PaymentGateway):
    """
    Payment gateway reached over HTTP

    POSTs a JSON payment request and expects
    {"status": "completed|pending|failed", "reference": "...", "message": "..."}.
    Transport errors are reported as FAILED payments.
    """

    def __init__(self, gateway_url: str, timeout: float = 10.0):
        """
        Initialize HTTP payment gateway

        Args:
            gateway_url: URL to POST payment requests to
            timeout: Request timeout in seconds
        """
        self.gateway_url = gateway_url
        self.timeout = timeout

    async def process_payment(self, user_id: str, request: PaymentRequest) -> PaymentResult:
        request_id = generate_uuid()
        payload = {
            "request_id": request_id,
            "user_id": user_id,
            "amount": str(request.amount),
            "currency": request.currency,
            "description": request.description,
            "metadata": request.metadata,
            "payment_details": request.payment_details,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.gateway_url,
                    json=payload,
                    headers={"Content-Type": "application/json", "Idempotency-Key": request_id},
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Payment request {request_id} for user {user_id} failed: {e}")
            return PaymentResult(status=PaymentStatus.FAILED, reference=request_id, message=str(e))
        except ValueError as e:
            logger.error(f"Payment gateway returned invalid JSON for request {request_id}: {e}")
            return PaymentResult(status=PaymentStatus.FAILED, reference=request_id, message="Invalid gateway response")

        try:
            status = PaymentStatus(str(body.get("status", "")).lower())
        except ValueError:
            logger.error(f"Unknown payment status {body.get('status')!r} for request {request_id}")
            status = PaymentStatus.FAILED

        reference = body.get("reference") or request_id
        logger.info(f"Payment {reference} for user {user_id}: {status.value}")
        return PaymentResult(status=status, reference=reference, message=body.get("message"))


def create_payment_gateway(gateway_url: Optional[str] = None, timeout: float = 10.0) -> PaymentGateway:
    """
    Factory function to create appropriate payment gateway

    Args:
        gateway_url: Optional gateway URL. Without one, payments are approved locally.
        timeout: HTTP timeout in seconds

    Returns:
        Configured PaymentGateway
    """
    if gateway_url:
        return HttpPaymentGateway(gateway_url, timeout=timeout)
    return LocalPaymentGateway()
