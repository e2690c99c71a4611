"""Money arithmetic for quotes and orders. All amounts are integer minor units."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import NamedTuple


class PriceLine(NamedTuple):
    unit_price: int
    quantity: int


@dataclass(frozen=True)
class Totals:
    subtotal: int
    delivery_fee: int
    total: int


def line_total(unit_price: int, quantity: int) -> int:
    """Price of one cart line."""
    if unit_price < 0 or quantity < 0:
        raise ValueError("Prices and quantities must be non-negative")
    return unit_price * quantity


def compute_totals(lines: Iterable[PriceLine | tuple[int, int]], delivery_fee: int) -> Totals:
    """Compute subtotal, delivery fee and total for a set of lines.

    Args:
        lines: (unit_price, quantity) pairs.
        delivery_fee: Fee of the delivery zone.

    Returns:
        Totals: ``total == subtotal + delivery_fee``.
    """
    if delivery_fee < 0:
        raise ValueError("Delivery fee must be non-negative")
    subtotal = sum(line_total(unit_price, quantity) for unit_price, quantity in lines)
    return Totals(subtotal=subtotal, delivery_fee=delivery_fee, total=subtotal + delivery_fee)
