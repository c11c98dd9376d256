"""Credit packages available for purchase

Static catalogue. Prices are in the package currency.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class CreditPackage:
    id: str
    credits: int
    price: Decimal
    tier: str
    currency: str = "USD"
    bonus: int = 0

    @property
    def total_credits(self) -> int:
        return self.credits + self.bonus

    @property
    def price_per_credit(self) -> Decimal:
        return (self.price / self.credits).quantize(Decimal("0.0001"))

    @property
    def price_display(self) -> str:
        return f"${self.price:.2f}"


CREDIT_PURCHASE_PACKAGES: tuple[CreditPackage, ...] = (
    CreditPackage(id="package_50", credits=50, price=Decimal("2.99"), tier="basic"),
    CreditPackage(id="package_100", credits=100, price=Decimal("4.99"), tier="basic"),
    CreditPackage(id="package_250", credits=250, price=Decimal("9.99"), tier="standard"),
    CreditPackage(id="package_500", credits=500, price=Decimal("18.99"), tier="premium"),
    CreditPackage(id="package_1000", credits=1000, price=Decimal("34.99"), tier="ultimate"),
    CreditPackage(id="package_2000", credits=2000, price=Decimal("64.99"), tier="ultimate"),
)


def find_package(package_id: str, packages: tuple[CreditPackage, ...] = CREDIT_PURCHASE_PACKAGES) -> Optional[CreditPackage]:
    for package in packages:
        if package.id == package_id:
            return package
    return None
