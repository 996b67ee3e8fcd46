"""Storefront: CreditService, advisory credit-limit evaluation for B2B customers."""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from storefront.services.pricing_service import to_money


class CreditLevel(str, Enum):
    NO_LIMIT_SET = "NO_LIMIT_SET"
    OVER_LIMIT = "OVER_LIMIT"
    WITHIN_LIMIT = "WITHIN_LIMIT"


_SEVERITY = {
    CreditLevel.NO_LIMIT_SET: "warning",
    CreditLevel.OVER_LIMIT: "danger",
    CreditLevel.WITHIN_LIMIT: "info",
}


@dataclass(frozen=True)
class CreditEvaluation:
    level: CreditLevel
    financial_limit: Decimal
    current_outstanding: Decimal
    anticipated_outstanding: Decimal
    over_amount: Decimal = Decimal("0.00")
    available_amount: Decimal = Decimal("0.00")

    @property
    def severity(self) -> str:
        return _SEVERITY[self.level]

    @property
    def is_warning(self) -> bool:
        return self.level is not CreditLevel.WITHIN_LIMIT

    @property
    def message(self) -> str:
        if self.level is CreditLevel.NO_LIMIT_SET:
            return "No credit limit set for this customer"
        if self.level is CreditLevel.OVER_LIMIT:
            return f"Credit limit exceeded by {self.over_amount}"
        return f"Within credit limit, {self.available_amount} available after this order"


class CreditService:
    """
    Decision aid for the approving admin. Never blocks an approval:
    admins may approve over the limit and get a warning back instead.
    """

    @staticmethod
    def anticipated_outstanding(current_outstanding: Decimal, total_amount: Decimal) -> Decimal:
        return to_money(current_outstanding) + to_money(total_amount)

    @staticmethod
    def evaluate(
        financial_limit: Decimal,
        current_outstanding: Decimal,
        total_amount: Decimal,
    ) -> CreditEvaluation:
        anticipated = CreditService.anticipated_outstanding(current_outstanding, total_amount)
        return CreditService.evaluate_frozen(financial_limit, current_outstanding, anticipated)

    @staticmethod
    def evaluate_frozen(
        financial_limit: Decimal,
        current_outstanding: Decimal,
        anticipated_outstanding: Decimal,
    ) -> CreditEvaluation:
        """Evaluate an anticipated figure that was already frozen on the quotation."""
        limit = to_money(financial_limit or 0)
        outstanding = to_money(current_outstanding or 0)
        anticipated = to_money(anticipated_outstanding)

        if limit == 0:
            return CreditEvaluation(CreditLevel.NO_LIMIT_SET, limit, outstanding, anticipated)
        if anticipated > limit:
            return CreditEvaluation(
                CreditLevel.OVER_LIMIT, limit, outstanding, anticipated,
                over_amount=anticipated - limit,
            )
        return CreditEvaluation(
            CreditLevel.WITHIN_LIMIT, limit, outstanding, anticipated,
            available_amount=limit - anticipated,
        )
