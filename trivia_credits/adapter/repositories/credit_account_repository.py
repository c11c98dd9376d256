"""SQLAlchemy implementation of CreditAccountRepository

Balance writes are conditional updates on the version column, so two
concurrent writers can never both apply a change computed from the same read.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import or_, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from trivia_credits.app.repositories.credit_account_repository import CreditAccountRepository
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.credit_account import CreditAccount


def _naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


class SqlAlchemyCreditAccountRepository(CreditAccountRepository):
    """
    SQLAlchemy implementation of CreditAccountRepository

    Features:
    - Optimistic concurrency via version column (UPDATE ... WHERE version = ?)
    - Reads always refresh the identity map, so a retry sees the latest row
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_id(self, user_id: str) -> Optional[CreditAccount]:
        stmt = (
            select(CreditAccount)
            .where(CreditAccount.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, account: CreditAccount) -> CreditAccount:
        """
        Create a new credit account

        Raises:
            IntegrityError: If the user already has an account
        """
        account.last_reset_at = _naive_utc(account.last_reset_at)
        self.session.add(account)
        await self.session.flush()
        await self.session.refresh(account)
        return account

    async def compare_and_swap(self, balance: Balance, expected_version: int) -> bool:
        """
        Write all balance sources if the stored version is unchanged

        Note:
            Should be called within the unit of work that also appends the
            ledger entry, so both are committed together
        """
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.user_id == balance.user_id)
            .where(CreditAccount.version == expected_version)
            .values(
                credits=balance.credits,
                purchased_credits=balance.purchased_credits,
                free_questions=balance.free_questions,
                daily_limit=balance.daily_limit,
                last_reset_at=_naive_utc(balance.last_reset_at),
                version=expected_version + 1,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def list_user_ids_due_for_reset(
        self,
        reset_before: datetime,
        limit: int,
        after_user_id: Optional[str] = None,
    ) -> list[str]:
        stmt = select(CreditAccount.user_id).where(
            or_(
                CreditAccount.last_reset_at.is_(None),
                CreditAccount.last_reset_at < _naive_utc(reset_before),
            )
        )
        if after_user_id is not None:
            stmt = stmt.where(CreditAccount.user_id > after_user_id)

        stmt = stmt.order_by(CreditAccount.user_id).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
