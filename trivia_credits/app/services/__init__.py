from .unit_of_work import UnitOfWork
from .balance_cache import BalanceCache
from .payment_gateway import PaymentGateway
from .account_directory import AccountDirectory
from .clock import Clock, SystemClock
from .balance_store import BalanceStore, BalanceChange, MutationOutcome

__all__ = [
    "UnitOfWork",
    "BalanceCache",
    "PaymentGateway",
    "AccountDirectory",
    "Clock",
    "SystemClock",
    "BalanceStore",
    "BalanceChange",
    "MutationOutcome",
]
