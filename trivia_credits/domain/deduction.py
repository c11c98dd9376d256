"""Deduction Algorithm

Pure functions that compute a new Balance from an old one. Nothing here
touches storage, caches or user roles; callers decide whether a user is
charged at all and persist the result.

Deduction order is free questions, then purchased credits, then general
credits. A deduction either succeeds completely or leaves the balance as is.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone, tzinfo
from typing import Mapping, Optional, Sequence
from zoneinfo import ZoneInfo
from libs.result import Result, Return, Error
from trivia_credits.domain.balance import Balance
from trivia_credits.domain.cost_calculator import required_credits
from trivia_credits.domain.credit_transaction import CreditSource
from trivia_credits.domain.game_mode import (
    MAX_QUESTIONS_PER_REQUEST,
    CostPolicy,
    GameMode,
    SessionSize,
)


DEDUCTION_ORDER: tuple[CreditSource, ...] = (
    CreditSource.FREE_DAILY,
    CreditSource.PURCHASED,
    CreditSource.CREDITS,
)

SOURCE_FIELDS: dict[CreditSource, str] = {
    CreditSource.FREE_DAILY: "free_questions",
    CreditSource.PURCHASED: "purchased_credits",
    CreditSource.CREDITS: "credits",
    CreditSource.BONUS: "credits",
}


@dataclass(frozen=True)
class DeductionBreakdown:
    free_questions_used: int = 0
    purchased_credits_used: int = 0
    credits_used: int = 0

    @property
    def total(self) -> int:
        return self.free_questions_used + self.purchased_credits_used + self.credits_used

    @property
    def sources_used(self) -> list[CreditSource]:
        used = {
            CreditSource.FREE_DAILY: self.free_questions_used,
            CreditSource.PURCHASED: self.purchased_credits_used,
            CreditSource.CREDITS: self.credits_used,
        }
        return [source for source in DEDUCTION_ORDER if used[source] > 0]

    def to_dict(self) -> dict[str, int]:
        return {
            "free_questions_used": self.free_questions_used,
            "purchased_credits_used": self.purchased_credits_used,
            "credits_used": self.credits_used,
        }


@dataclass(frozen=True)
class Deduction:
    new_balance: Balance
    breakdown: DeductionBreakdown
    required: int


def insufficient_balance_error(required: int, available: int) -> Error:
    return Error(
        code="INSUFFICIENT_BALANCE",
        message=f"Insufficient credits. Required: {required}, Available: {available}",
        reason=f"required={required}, available={available}",
    )


def deduct_amount(
    balance: Balance,
    required: int,
    order: Sequence[CreditSource] = DEDUCTION_ORDER,
) -> Result[Deduction]:
    """
    Draw a credit amount from the balance sources in priority order

    Args:
        balance: Current balance (not modified)
        required: Credits to draw (>= 0)
        order: Source priority; must name each of the three sources once

    Returns:
        Result[Deduction]: new balance and per-source breakdown, or
        INSUFFICIENT_BALANCE when the sources cannot cover the amount
    """
    if required < 0:
        return Return.err(
            Error(
                code="INVALID_INPUT",
                message="Required credits must not be negative",
                reason=f"required={required}",
            )
        )
    if sorted(order) != sorted(DEDUCTION_ORDER):
        return Return.err(
            Error(
                code="INVALID_INPUT",
                message="Deduction order must name free, purchased and credits sources once each",
                reason=f"order={[source.value for source in order]}",
            )
        )

    if balance.total_credits < required:
        return Return.err(insufficient_balance_error(required, balance.total_credits))

    remaining = required
    amounts = {
        CreditSource.FREE_DAILY: balance.free_questions,
        CreditSource.PURCHASED: balance.purchased_credits,
        CreditSource.CREDITS: balance.credits,
    }
    used = {source: 0 for source in amounts}

    for source in order:
        if remaining <= 0:
            break
        drawn = min(remaining, amounts[source])
        amounts[source] -= drawn
        used[source] = drawn
        remaining -= drawn

    if remaining > 0:
        return Return.err(insufficient_balance_error(required, balance.total_credits))

    new_balance = balance.with_sources(
        credits=amounts[CreditSource.CREDITS],
        purchased_credits=amounts[CreditSource.PURCHASED],
        free_questions=amounts[CreditSource.FREE_DAILY],
    )

    return Return.ok(
        Deduction(
            new_balance=new_balance,
            breakdown=DeductionBreakdown(
                free_questions_used=used[CreditSource.FREE_DAILY],
                purchased_credits_used=used[CreditSource.PURCHASED],
                credits_used=used[CreditSource.CREDITS],
            ),
            required=required,
        )
    )


def apply_deduction(
    balance: Balance,
    session_size: SessionSize,
    mode: GameMode,
    policies: Optional[Mapping[GameMode, CostPolicy]] = None,
    max_questions_per_request: int = MAX_QUESTIONS_PER_REQUEST,
) -> Result[Deduction]:
    """Charge a game session against the balance"""
    required = required_credits(
        session_size,
        mode,
        policies=policies,
        max_questions_per_request=max_questions_per_request,
    )
    return deduct_amount(balance, required)


def apply_credit(
    balance: Balance,
    amount: int,
    source: CreditSource = CreditSource.PURCHASED,
) -> Result[Balance]:
    """
    Add credits to a balance

    Purchases land in purchased_credits; bonuses and general grants land in
    credits. Free questions are only restored by the daily reset.
    """
    if amount <= 0:
        return Return.err(
            Error(
                code="INVALID_INPUT",
                message="Credit amount must be positive",
                reason=f"amount={amount}",
            )
        )
    if source == CreditSource.FREE_DAILY:
        return Return.err(
            Error(
                code="INVALID_INPUT",
                message="Free questions cannot be credited directly",
                reason=f"source={source.value}",
            )
        )

    field_name = SOURCE_FIELDS[source]
    return Return.ok(replace(balance, **{field_name: getattr(balance, field_name) + amount}))


def apply_adjustment(balance: Balance, delta: int, source: CreditSource) -> Result[Balance]:
    """Apply a signed administrative correction to one source"""
    if delta == 0:
        return Return.err(
            Error(
                code="INVALID_INPUT",
                message="Adjustment must not be zero",
            )
        )

    field_name = SOURCE_FIELDS[source]
    current = getattr(balance, field_name)
    if current + delta < 0:
        return Return.err(insufficient_balance_error(-delta, current))

    return Return.ok(replace(balance, **{field_name: current + delta}))


def reset_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def calendar_day(moment: datetime, tz: tzinfo) -> date:
    """Calendar day of a moment in tz; naive datetimes are taken as UTC"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()


def apply_daily_reset(balance: Balance, now: datetime, tz: tzinfo = timezone.utc) -> Optional[Balance]:
    """
    Restore free questions to the daily limit

    Returns:
        The reset balance, or None if the balance was already reset on the
        calendar day of `now`
    """
    if balance.last_reset_at is not None and calendar_day(balance.last_reset_at, tz) == calendar_day(now, tz):
        return None
    return replace(balance, free_questions=balance.daily_limit, last_reset_at=now)
