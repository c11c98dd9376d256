from .unit_of_work import SqlAlchemyUnitOfWork
from .balance_cache import AiocacheBalanceCache, NullBalanceCache, create_balance_cache
from .payment_gateway import LocalPaymentGateway, HttpPaymentGateway, create_payment_gateway
from .account_directory import ConfiguredAccountDirectory

__all__ = [
    "SqlAlchemyUnitOfWork",
    "AiocacheBalanceCache",
    "NullBalanceCache",
    "create_balance_cache",
    "LocalPaymentGateway",
    "HttpPaymentGateway",
    "create_payment_gateway",
    "ConfiguredAccountDirectory",
]
