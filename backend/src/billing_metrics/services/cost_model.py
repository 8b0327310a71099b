"""Customer acquisition cost sources."""
from decimal import Decimal
from typing import Protocol

from billing_metrics.config import settings
from billing_metrics.utils.money import to_money


class CostModel(Protocol):
    """Anything that can price customer acquisition for a period."""

    async def customer_acquisition_cost(self, year: int, month: int) -> Decimal:
        ...


class FixedCostModel:
    """Returns the same configured CAC for every period."""

    def __init__(self, amount: Decimal | None = None):
        self.amount = to_money(settings.default_cac if amount is None else amount)

    async def customer_acquisition_cost(self, year: int, month: int) -> Decimal:
        return self.amount
