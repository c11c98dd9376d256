"""Credit use cases"""
from .can_play import CanPlay
from .deduct_credits import DeductCredits
from .get_balance import GetBalance
from .list_transactions import ListTransactions
from .list_credit_packages import ListCreditPackages
from .purchase_credits import PurchaseCredits
from .confirm_purchase import ConfirmPurchase
from .reset_daily_free_questions import ResetDailyFreeQuestions
from .grant_bonus_credits import GrantBonusCredits
from .adjust_credits import AdjustCredits
from .create_credit_account import CreateCreditAccount
from .validation import SessionLimits
from .dtos import (
    CanPlayCommandDTO,
    CanPlayResponseDTO,
    DeductCommandDTO,
    DeductResponseDTO,
    DeductionBreakdownDTO,
    BalanceResponseDTO,
    PurchaseCommandDTO,
    PurchaseResponseDTO,
    ConfirmPurchaseCommandDTO,
    ConfirmPurchaseResponseDTO,
    CreditPackageDTO,
    TransactionDTO,
    ListTransactionsResponseDTO,
    GrantBonusCommandDTO,
    AdjustCreditsCommandDTO,
    CreditMutationResponseDTO,
    CreateAccountCommandDTO,
    DailyResetResultDTO,
)

__all__ = [
    "CanPlay",
    "DeductCredits",
    "GetBalance",
    "ListTransactions",
    "ListCreditPackages",
    "PurchaseCredits",
    "ConfirmPurchase",
    "ResetDailyFreeQuestions",
    "GrantBonusCredits",
    "AdjustCredits",
    "CreateCreditAccount",
    "SessionLimits",
    "CanPlayCommandDTO",
    "CanPlayResponseDTO",
    "DeductCommandDTO",
    "DeductResponseDTO",
    "DeductionBreakdownDTO",
    "BalanceResponseDTO",
    "PurchaseCommandDTO",
    "PurchaseResponseDTO",
    "ConfirmPurchaseCommandDTO",
    "ConfirmPurchaseResponseDTO",
    "CreditPackageDTO",
    "TransactionDTO",
    "ListTransactionsResponseDTO",
    "GrantBonusCommandDTO",
    "AdjustCreditsCommandDTO",
    "CreditMutationResponseDTO",
    "CreateAccountCommandDTO",
    "DailyResetResultDTO",
]
