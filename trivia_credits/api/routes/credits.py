"""Credits API Routes

FastAPI routes for credit balances, game session charges and purchases.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from trivia_credits.api.error import ClientError
from trivia_credits.api.schemas.credits_request import (
    AdjustRequestSchema,
    BonusRequestSchema,
    ConfirmPurchaseRequestSchema,
    CreateAccountRequestSchema,
    DeductRequestSchema,
    PurchaseRequestSchema,
)
from trivia_credits.app.services import AccountDirectory, BalanceCache, PaymentGateway
from trivia_credits.app.use_cases.credits import (
    AdjustCredits,
    CanPlay,
    ConfirmPurchase,
    CreateCreditAccount,
    DeductCredits,
    GetBalance,
    GrantBonusCredits,
    ListCreditPackages,
    ListTransactions,
    PurchaseCredits,
    SessionLimits,
)
from trivia_credits.app.use_cases.credits.dtos import (
    AdjustCreditsCommandDTO,
    BalanceResponseDTO,
    CanPlayCommandDTO,
    CanPlayResponseDTO,
    ConfirmPurchaseCommandDTO,
    ConfirmPurchaseResponseDTO,
    CreateAccountCommandDTO,
    CreditMutationResponseDTO,
    CreditPackageDTO,
    DeductCommandDTO,
    DeductResponseDTO,
    GrantBonusCommandDTO,
    ListTransactionsResponseDTO,
    PurchaseCommandDTO,
    PurchaseResponseDTO,
)
from trivia_credits.adapter.repositories import SqlAlchemyCreditTransactionRepository
from trivia_credits.depends import (
    build_balance_store,
    get_account_directory,
    get_balance_cache,
    get_payment_gateway,
    get_session,
)

router = APIRouter(prefix="/credits", tags=["Credits"])

ERROR_EXAMPLE = {
    "application/json": {
        "example": {
            "error": {
                "code": "INSUFFICIENT_BALANCE",
                "message": "Insufficient credits. Required: 10, Available: 4",
                "reason": "required=10, available=4"
            }
        }
    }
}


def _raise(result):
    if result.is_err():
        raise ClientError.from_error(result.error)
    return result.value


@router.get("/packages", response_model=list[CreditPackageDTO])
async def list_credit_packages():
    """List the credit packages available for purchase, cheapest first."""
    return _raise(await ListCreditPackages().execute())


@router.post("/accounts", response_model=BalanceResponseDTO, status_code=status.HTTP_201_CREATED)
async def create_credit_account(
    request: CreateAccountRequestSchema,
    session: AsyncSession = Depends(get_session),
    cache: BalanceCache = Depends(get_balance_cache),
):
    """
    Provision a credit account for a new user.

    Existing accounts are returned unchanged.
    """
    use_case = CreateCreditAccount(
        build_balance_store(session, cache),
        default_credits=ApplicationConfig.DEFAULT_CREDITS,
        default_daily_limit=ApplicationConfig.DEFAULT_DAILY_FREE_QUESTIONS,
    )
    command = CreateAccountCommandDTO(
        user_id=request.user_id,
        credits=request.credits,
        daily_limit=request.daily_limit,
    )
    return _raise(await use_case.execute(command))


@router.get("/{user_id}/balance", response_model=BalanceResponseDTO)
async def get_balance(
    user_id: str,
    session: AsyncSession = Depends(get_session),
    cache: BalanceCache = Depends(get_balance_cache),
):
    """
    Get the current balance of a user.

    **Returns:**
    - 200: Balance with per-source amounts and total
    - 404: User has no credit account
    """
    return _raise(await GetBalance(build_balance_store(session, cache)).execute(user_id))


@router.get("/{user_id}/can-play", response_model=CanPlayResponseDTO)
async def can_play(
    user_id: str,
    session_size: Optional[int] = Query(default=None, description="Questions (seconds for time-limited), -1 for unlimited"),
    questions_per_request: Optional[int] = Query(default=None, include_in_schema=False),
    questions_per_request_camel: Optional[int] = Query(default=None, alias="questionsPerRequest", include_in_schema=False),
    amount: Optional[int] = Query(default=None, include_in_schema=False),
    game_mode: str = Query(default="question-limited"),
    session: AsyncSession = Depends(get_session),
    cache: BalanceCache = Depends(get_balance_cache),
    account_directory: AccountDirectory = Depends(get_account_directory),
):
    """
    Check whether a user can afford a game session.

    Read-only: nothing is reserved. `allowed` is true when the total balance
    covers the required credits.
    """
    size = next(
        (value for value in (session_size, questions_per_request, questions_per_request_camel, amount) if value is not None),
        None,
    )
    use_case = CanPlay(
        build_balance_store(session, cache),
        account_directory,
        limits=SessionLimits.from_config(ApplicationConfig),
    )
    command = CanPlayCommandDTO(user_id=user_id, session_size=size, game_mode=game_mode)
    return _raise(await use_case.execute(command))


@router.post(
    "/deduct",
    response_model=DeductResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        402: {"description": "Insufficient credits", "content": ERROR_EXAMPLE},
        409: {"description": "Balance changed concurrently, retry"},
    }
)
async def deduct_credits(
    request: DeductRequestSchema,
    session: AsyncSession = Depends(get_session),
    cache: BalanceCache = Depends(get_balance_cache),
    account_directory: AccountDirectory = Depends(get_account_directory),
):
    """
    Charge a game session.

    Free questions are used first, then purchased credits, then general
    credits. The charge is all-or-nothing.

    **Example request:**
    ```json
    {
      "user_id": "user_42",
      "session_size": 5,
      "game_mode": "question-limited"
    }
    ```

    **Returns:**
    - 200: New balance and per-source breakdown
    - 400: Invalid session size or game mode
    - 402: Insufficient credits
    - 404: User has no credit account
    - 409: Balance changed concurrently
    """
    use_case = DeductCredits(
        build_balance_store(session, cache),
        account_directory,
        limits=SessionLimits.from_config(ApplicationConfig),
    )
    command = DeductCommandDTO(
        user_id=request.user_id,
        session_size=request.session_size,
        game_mode=request.game_mode,
        reason=request.reason,
    )
    return _raise(await use_case.execute(command))


@router.post(
    "/purchase",
    response_model=PurchaseResponseDTO,
    responses={402: {"description": "Payment pending or failed"}}
)
async def purchase_credits(
    request: PurchaseRequestSchema,
    session: AsyncSession = Depends(get_session),
    cache: BalanceCache = Depends(get_balance_cache),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Buy a credit package.

    Credits are added to purchased credits only when the payment completes.
    """
    confirm = ConfirmPurchase(
        build_balance_store(session, cache),
        SqlAlchemyCreditTransactionRepository(session),
        max_credits=ApplicationConfig.MAX_PURCHASE_CREDITS,
    )
    use_case = PurchaseCredits(payment_gateway, confirm)
    command = PurchaseCommandDTO(
        user_id=request.user_id,
        package_id=request.package_id,
        payment_details=request.payment_details,
    )
    return _raise(await use_case.execute(command))


@router.post("/purchase/confirm", response_model=ConfirmPurchaseResponseDTO)
async def confirm_purchase(
    request: ConfirmPurchaseRequestSchema,
    session: AsyncSession = Depends(get_session),
    cache: BalanceCache = Depends(get_balance_cache),
):
    """
    Credit a completed payment.

    Idempotent on payment_reference: repeated confirmations return the
    current balance with `duplicate: true` and credit nothing.
    """
    use_case = ConfirmPurchase(
        build_balance_store(session, cache),
        SqlAlchemyCreditTransactionRepository(session),
        max_credits=ApplicationConfig.MAX_PURCHASE_CREDITS,
    )
    command = ConfirmPurchaseCommandDTO(
        user_id=request.user_id,
        payment_reference=request.payment_reference,
        credits=request.credits,
        package_id=request.package_id,
    )
    return _raise(await use_case.execute(command))


@router.get("/{user_id}/history", response_model=ListTransactionsResponseDTO)
async def get_history(
    user_id: str,
    limit: int = Query(default=50, description="Number of entries (1-100)"),
    session: AsyncSession = Depends(get_session),
):
    """List a user's ledger entries, newest first."""
    use_case = ListTransactions(
        SqlAlchemyCreditTransactionRepository(session),
        max_limit=ApplicationConfig.MAX_HISTORY_LIMIT,
    )
    return _raise(await use_case.execute(user_id, limit=limit))


@router.post("/bonus", response_model=CreditMutationResponseDTO)
async def grant_bonus_credits(
    request: BonusRequestSchema,
    session: AsyncSession = Depends(get_session),
    cache: BalanceCache = Depends(get_balance_cache),
):
    """Grant promotional credits to a user's general credits."""
    command = GrantBonusCommandDTO(user_id=request.user_id, amount=request.amount, reason=request.reason)
    return _raise(await GrantBonusCredits(build_balance_store(session, cache)).execute(command))


@router.post("/adjust", response_model=CreditMutationResponseDTO)
async def adjust_credits(
    request: AdjustRequestSchema,
    session: AsyncSession = Depends(get_session),
    cache: BalanceCache = Depends(get_balance_cache),
):
    """
    Apply an administrative correction to one balance source.

    The source may not go below zero; the reason is stored in the ledger.
    """
    command = AdjustCreditsCommandDTO(
        user_id=request.user_id,
        delta=request.delta,
        source=request.source,
        reason=request.reason,
    )
    return _raise(await AdjustCredits(build_balance_store(session, cache)).execute(command))
