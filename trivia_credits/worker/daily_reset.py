"""Daily Free Question Reset Background Worker

Restores every user's free questions to their daily limit once per calendar
day in the configured reset timezone.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
import time
from datetime import datetime, time as day_time, timezone
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from trivia_credits.adapter.repositories import (
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
)
from trivia_credits.adapter.services import SqlAlchemyUnitOfWork, create_balance_cache
from trivia_credits.app.services import BalanceCache, BalanceStore, Clock, SystemClock
from trivia_credits.app.use_cases.credits import DailyResetResultDTO, ResetDailyFreeQuestions
from trivia_credits.domain.deduction import calendar_day, reset_timezone

logger = logging.getLogger(__name__)


class DailyResetWorker:
    """
    Background worker for the daily free question reset

    Features:
    - Pages through accounts not yet reset today, in user id order
    - Each user is reset in its own session and unit of work
    - Idempotent: safe to re-run on the same day, already reset users are skipped
    - Can run once or continuously

    Usage:
        # Run once (typical cron usage)
        worker = DailyResetWorker()
        result = await worker.run_once()

        # Run continuously
        worker = DailyResetWorker()
        await worker.run_forever()
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        batch_size: Optional[int] = None,
        timezone_name: Optional[str] = None,
        cache: Optional[BalanceCache] = None,
        clock: Optional[Clock] = None,
        session_factory: Optional[sessionmaker] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            batch_size: Accounts fetched per page (defaults to ApplicationConfig.DAILY_RESET_BATCH_SIZE)
            timezone_name: Reset timezone (defaults to ApplicationConfig.RESET_TIMEZONE)
            cache: Balance cache to refresh (defaults to the configured backend)
            clock: Time source
            session_factory: Session factory to use instead of one built from db_uri
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.batch_size = batch_size or ApplicationConfig.DAILY_RESET_BATCH_SIZE
        self.tz = reset_timezone(timezone_name or ApplicationConfig.RESET_TIMEZONE)
        self.clock = clock or SystemClock()
        if cache is None and str(ApplicationConfig.CACHE_BACKEND).lower() == "memory":
            # the API processes would keep serving pre-reset balances
            raise ValueError(
                "CACHE_BACKEND memory is private to one process; the daily reset worker "
                "needs a shared backend (redis) or none"
            )
        self.cache = cache or create_balance_cache(
            ApplicationConfig.CACHE_BACKEND,
            redis_url=ApplicationConfig.REDIS_URL,
            ttl_seconds=ApplicationConfig.BALANCE_CACHE_TTL_SECONDS,
        )

        if session_factory is not None:
            self.engine = None
            self.async_session_factory = session_factory
        else:
            self.engine = create_async_engine(self.db_uri, echo=False, future=True)
            self.async_session_factory = sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
            )

        logger.info("DailyResetWorker initialized")

    def _start_of_day_utc(self, now: datetime) -> datetime:
        """
        Start of the reset day containing `now`, as naive UTC

        Accounts whose last reset is before this moment are due.
        """
        day = calendar_day(now, self.tz)
        start = datetime.combine(day, day_time.min, tzinfo=self.tz)
        return start.astimezone(timezone.utc).replace(tzinfo=None)

    async def run_once(self) -> DailyResetResultDTO:
        """
        Reset every account that has not been reset today

        Returns:
            DailyResetResultDTO with summary
        """
        start_time = time.time()
        now = self.clock.now()
        reset_before = self._start_of_day_utc(now)
        reset_date = calendar_day(now, self.tz)

        logger.info(f"Starting daily free question reset for {reset_date.isoformat()}")

        total_users = 0
        reset_users = 0
        skipped_users = 0
        failed_users = 0
        after_user_id: Optional[str] = None

        while True:
            async with self.async_session_factory() as session:
                account_repo = SqlAlchemyCreditAccountRepository(session)
                user_ids = await account_repo.list_user_ids_due_for_reset(
                    reset_before, limit=self.batch_size, after_user_id=after_user_id
                )

            if not user_ids:
                break

            for user_id in user_ids:
                total_users += 1
                try:
                    # Create a new session for each user to isolate transactions
                    async with self.async_session_factory() as user_session:
                        store = BalanceStore(
                            SqlAlchemyUnitOfWork(user_session),
                            SqlAlchemyCreditAccountRepository(user_session),
                            SqlAlchemyCreditTransactionRepository(user_session),
                            self.cache,
                            max_retries=ApplicationConfig.MAX_MUTATION_RETRIES,
                            clock=self.clock,
                        )
                        use_case = ResetDailyFreeQuestions(store, clock=self.clock, tz=self.tz)
                        result = await use_case.execute(user_id)

                    if result.is_err():
                        logger.error(
                            f"Failed to reset free questions for user {user_id}: "
                            f"{result.error.code} {result.error.message}"
                        )
                        failed_users += 1
                    elif result.value.changed:
                        reset_users += 1
                    else:
                        skipped_users += 1

                except Exception as e:
                    logger.error(f"Unexpected error resetting user {user_id}: {e}")
                    failed_users += 1

            after_user_id = user_ids[-1]

        execution_time_ms = int((time.time() - start_time) * 1000)

        logger.info(
            f"Daily reset complete: "
            f"{reset_users}/{total_users} reset, {skipped_users} skipped, "
            f"{failed_users} failed, {execution_time_ms}ms"
        )

        return DailyResetResultDTO(
            total_users=total_users,
            reset_users=reset_users,
            skipped_users=skipped_users,
            failed_users=failed_users,
            reset_date=reset_date,
            execution_time_ms=execution_time_ms,
        )

    async def run_forever(self, check_interval_seconds: Optional[int] = None):
        """
        Run the reset continuously

        Every check is cheap once the day's reset is done: no account is due
        until the next calendar day starts.

        Args:
            check_interval_seconds: Seconds between runs (defaults to ApplicationConfig.DAILY_RESET_INTERVAL_SECONDS)
        """
        interval = check_interval_seconds or ApplicationConfig.DAILY_RESET_INTERVAL_SECONDS
        logger.info(f"Starting continuous daily reset with {interval}s interval")

        while True:
            if not ApplicationConfig.DAILY_RESET_ENABLED:
                logger.info("Daily reset is disabled, skipping")
            else:
                try:
                    result = await self.run_once()
                    logger.info(f"Reset cycle: {result.reset_users} users reset")
                except Exception as e:
                    logger.error(f"Daily reset cycle failed: {e}")

            await asyncio.sleep(interval)

    async def shutdown(self):
        """Cleanup resources"""
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("DailyResetWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m trivia_credits.worker.daily_reset

        # Run continuously
        python -m trivia_credits.worker.daily_reset --continuous
    """
    import argparse

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Daily Free Question Reset Worker")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument("--interval", type=int, help="Seconds between runs when continuous")
    args = parser.parse_args()

    worker = DailyResetWorker()

    try:
        if args.continuous:
            await worker.run_forever(check_interval_seconds=args.interval)
        else:
            result = await worker.run_once()
            print("Daily reset complete:")
            print(f"  Reset date: {result.reset_date.isoformat()}")
            print(f"  Total users: {result.total_users}")
            print(f"  Reset users: {result.reset_users}")
            print(f"  Skipped users: {result.skipped_users}")
            print(f"  Failed users: {result.failed_users}")
            print(f"  Execution time: {result.execution_time_ms}ms")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
