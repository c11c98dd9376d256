"""SQLAlchemy implementation of CreditTransactionRepository

Append-only persistence of ledger entries. Purchase idempotency is enforced
by the unique constraint on payment_reference.
"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from trivia_credits.app.repositories.credit_transaction_repository import CreditTransactionRepository
from trivia_credits.domain.credit_transaction import CreditTransaction


class SqlAlchemyCreditTransactionRepository(CreditTransactionRepository):
    """
    SQLAlchemy implementation of CreditTransactionRepository

    Features:
    - Immutable append-only transactions
    - Duplicate payment references surface as IntegrityError on flush
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Create a new credit transaction

        Args:
            transaction: CreditTransaction entity to persist

        Returns:
            Created CreditTransaction with generated ID

        Raises:
            IntegrityError: If payment_reference already exists
        """
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def get_by_payment_reference(self, payment_reference: str) -> Optional[CreditTransaction]:
        stmt = select(CreditTransaction).where(
            CreditTransaction.payment_reference == payment_reference
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_user_id(self, user_id: str, limit: int) -> list[CreditTransaction]:
        """
        List the most recent transactions of a user

        Ordered by transaction_date DESC, then created_at and id DESC, so
        entries written in the same second keep their write order.
        """
        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.user_id == user_id)
            .order_by(
                CreditTransaction.transaction_date.desc(),
                CreditTransaction.created_at.desc(),
                CreditTransaction.id.desc(),
            )
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
