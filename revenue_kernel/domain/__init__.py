"""Domain value objects for the revenue kernel."""

from revenue_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from revenue_kernel.domain.values import Currency, Money, money_sum

__all__ = [
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "Money",
    "money_sum",
]
