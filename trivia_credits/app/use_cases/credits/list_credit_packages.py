"""List Credit Packages Use Case"""

from typing import Sequence
from libs.result import Result, Return
from trivia_credits.domain.credit_package import CREDIT_PURCHASE_PACKAGES, CreditPackage
from .dtos import CreditPackageDTO


class ListCreditPackages:
    """Catalogue of credit packages a user can buy, cheapest first"""

    def __init__(self, packages: Sequence[CreditPackage] = CREDIT_PURCHASE_PACKAGES):
        self.packages = packages

    async def execute(self) -> Result[list[CreditPackageDTO]]:
        ordered = sorted(self.packages, key=lambda package: package.price)
        return Return.ok([CreditPackageDTO.from_package(package) for package in ordered])
