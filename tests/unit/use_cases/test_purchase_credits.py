"""Unit tests for PurchaseCredits and ConfirmPurchase use cases

Tests cover:
- Completed payments credit purchased_credits
- Pending and failed payments credit nothing
- Confirmation is idempotent on payment_reference
- A lost race on the payment reference still checks ownership
- Caller-supplied credits are capped
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from trivia_credits.app.use_cases.credits.confirm_purchase import ConfirmPurchase
from trivia_credits.app.use_cases.credits.dtos import ConfirmPurchaseCommandDTO, PurchaseCommandDTO
from trivia_credits.app.use_cases.credits.purchase_credits import PurchaseCredits
from trivia_credits.domain.credit_transaction import CreditSource, TransactionType
from trivia_credits.domain.payment import PaymentResult, PaymentStatus


@pytest.fixture
def make_confirm(make_store):
    def _make():
        store = make_store()
        return ConfirmPurchase(store, store.transaction_repo)

    return _make


@pytest.fixture
def mock_gateway():
    gateway = MagicMock()
    gateway.process_payment = AsyncMock(
        return_value=PaymentResult(status=PaymentStatus.COMPLETED, reference="pay_123")
    )
    return gateway


@pytest.mark.asyncio
class TestConfirmPurchase:
    async def test_credits_purchased_credits(self, db, make_confirm):
        # Arrange
        db.add_account("user_1", credits=100, purchased_credits=0, free_questions=20)

        # Act
        result = await make_confirm().execute(
            ConfirmPurchaseCommandDTO(user_id="user_1", payment_reference="pay_1", credits=100)
        )

        # Assert
        assert result.is_ok()
        assert result.value.duplicate is False
        assert result.value.credited == 100
        assert result.value.balance.purchased_credits == 100
        assert result.value.balance.total_credits == 220

        [entry] = db.transactions_for("user_1")
        assert entry.transaction_type == TransactionType.PURCHASE
        assert entry.source == CreditSource.PURCHASED
        assert entry.amount == 100
        assert entry.payment_reference == "pay_1"

    async def test_repeated_confirmation_credits_once(self, db, make_confirm):
        """
        Given: Payment pay_1 was already credited
        When: It is confirmed again
        Then: Success with the current balance, no second ledger entry
        """
        db.add_account("user_1", purchased_credits=0)
        command = ConfirmPurchaseCommandDTO(user_id="user_1", payment_reference="pay_1", credits=100)

        first = await make_confirm().execute(command)
        second = await make_confirm().execute(command)

        assert first.is_ok() and second.is_ok()
        assert second.value.duplicate is True
        assert second.value.credited == 0
        assert second.value.transaction_id == first.value.transaction_id
        assert second.value.balance.purchased_credits == 100
        assert len(db.transactions_for("user_1")) == 1

    async def test_concurrent_confirmations_credit_once(self, db, make_confirm):
        db.add_account("user_1", purchased_credits=0)
        command = ConfirmPurchaseCommandDTO(user_id="user_1", payment_reference="pay_1", credits=100)

        results = await asyncio.gather(make_confirm().execute(command), make_confirm().execute(command))

        assert all(r.is_ok() for r in results)
        assert sorted(r.value.duplicate for r in results) == [False, True]
        assert db.balance("user_1").purchased_credits == 100
        assert len(db.transactions) == 1

    async def test_reference_of_another_user_is_rejected(self, db, make_confirm):
        db.add_account("user_1")
        db.add_account("user_2")
        await make_confirm().execute(
            ConfirmPurchaseCommandDTO(user_id="user_1", payment_reference="pay_1", credits=100)
        )

        result = await make_confirm().execute(
            ConfirmPurchaseCommandDTO(user_id="user_2", payment_reference="pay_1", credits=100)
        )

        assert result.error.code == "INVALID_INPUT"
        assert db.balance("user_2").purchased_credits == 0

    async def test_lost_reference_race_checks_owner(self, db, make_confirm):
        """
        Given: pay_1 was credited to user_1 after user_2's lookup found nothing
        When: user_2's credit hits the unique payment reference
        Then: The reference is re-read and rejected as another user's payment
        """
        # Arrange
        db.add_account("user_1")
        db.add_account("user_2")
        await make_confirm().execute(
            ConfirmPurchaseCommandDTO(user_id="user_1", payment_reference="pay_1", credits=100)
        )
        [credited] = db.transactions
        confirm = make_confirm()
        confirm.transaction_repo.get_by_payment_reference = AsyncMock(side_effect=[None, credited])

        # Act
        result = await confirm.execute(
            ConfirmPurchaseCommandDTO(user_id="user_2", payment_reference="pay_1", credits=100)
        )

        # Assert
        assert result.error.code == "INVALID_INPUT"
        assert confirm.transaction_repo.get_by_payment_reference.await_count == 2
        assert db.balance("user_2").purchased_credits == 0
        assert len(db.transactions) == 1

    async def test_lost_reference_race_by_same_user_is_duplicate(self, db, make_confirm):
        db.add_account("user_1", purchased_credits=0)
        command = ConfirmPurchaseCommandDTO(user_id="user_1", payment_reference="pay_1", credits=100)
        await make_confirm().execute(command)
        [credited] = db.transactions
        confirm = make_confirm()
        confirm.transaction_repo.get_by_payment_reference = AsyncMock(side_effect=[None, credited])

        result = await confirm.execute(command)

        assert result.is_ok()
        assert result.value.duplicate is True
        assert result.value.transaction_id == credited.id
        assert result.value.balance.purchased_credits == 100

    async def test_credits_above_cap_are_rejected(self, db, make_store):
        db.add_account("user_1", purchased_credits=0)
        store = make_store()
        confirm = ConfirmPurchase(store, store.transaction_repo, max_credits=500)

        over = await confirm.execute(
            ConfirmPurchaseCommandDTO(user_id="user_1", payment_reference="pay_1", credits=501)
        )
        at_cap = await confirm.execute(
            ConfirmPurchaseCommandDTO(user_id="user_1", payment_reference="pay_2", credits=500)
        )

        assert over.error.code == "INVALID_INPUT"
        assert "501" in over.error.reason
        assert at_cap.is_ok()
        assert db.balance("user_1").purchased_credits == 500

    @pytest.mark.parametrize("reference, credits", [("", 100), ("pay_1", 0), ("pay_1", -5), ("pay_1", 10001)])
    async def test_invalid_command(self, db, make_confirm, reference, credits):
        db.add_account("user_1")

        result = await make_confirm().execute(
            ConfirmPurchaseCommandDTO(user_id="user_1", payment_reference=reference, credits=credits)
        )

        assert result.error.code == "INVALID_INPUT"
        assert db.transactions == []


@pytest.mark.asyncio
class TestPurchaseCredits:
    async def test_completed_payment_adds_package_credits(self, db, make_confirm, mock_gateway):
        # Arrange
        db.add_account("user_1", purchased_credits=0)
        use_case = PurchaseCredits(mock_gateway, make_confirm())

        # Act
        result = await use_case.execute(
            PurchaseCommandDTO(user_id="user_1", package_id="package_250", payment_details={"token": "tok_1"})
        )

        # Assert
        assert result.is_ok()
        assert result.value.status == "completed"
        assert result.value.payment_reference == "pay_123"
        assert result.value.credits == 250
        assert result.value.balance.purchased_credits == 250

        user_id, request = mock_gateway.process_payment.call_args.args
        assert user_id == "user_1"
        assert str(request.amount) == "9.99"
        assert request.metadata["package_id"] == "package_250"
        assert request.payment_details == {"token": "tok_1"}

        [entry] = db.transactions_for("user_1")
        assert entry.payment_reference == "pay_123"
        assert entry.metadata_dict["package_id"] == "package_250"

    @pytest.mark.parametrize("status", [PaymentStatus.PENDING, PaymentStatus.FAILED])
    async def test_incomplete_payment_credits_nothing(self, db, make_confirm, mock_gateway, status):
        db.add_account("user_1", purchased_credits=0)
        mock_gateway.process_payment = AsyncMock(
            return_value=PaymentResult(status=status, reference="pay_9", message="card declined")
        )

        result = await PurchaseCredits(mock_gateway, make_confirm()).execute(
            PurchaseCommandDTO(user_id="user_1", package_id="package_50")
        )

        assert result.is_err()
        assert result.error.code == "PAYMENT_NOT_COMPLETED"
        assert status.value in result.error.reason
        assert db.balance("user_1").purchased_credits == 0
        assert db.transactions == []

    async def test_unknown_package(self, db, make_confirm, mock_gateway):
        db.add_account("user_1")

        result = await PurchaseCredits(mock_gateway, make_confirm()).execute(
            PurchaseCommandDTO(user_id="user_1", package_id="package_3")
        )

        assert result.error.code == "INVALID_INPUT"
        mock_gateway.process_payment.assert_not_awaited()
