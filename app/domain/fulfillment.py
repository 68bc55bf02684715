# app/domain/fulfillment.py
"""
Maszyna stanow realizacji zamowienia.

Statusy to zamkniety enum, dozwolone przejscia sa w TRANSITIONS,
a skutki magazynowe liczy on_transition(prev, next, items):
  - wejscie w DELIVERED  -> stock - quantity
  - wyjscie z DELIVERED  -> stock + quantity
  - reszta               -> brak zmian
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List

from app.domain.errors import ValidationError


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
    ),
    OrderStatus.PROCESSING: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    # cofniecie dostawy (zwrot / anulowanie po dostawie)
    OrderStatus.DELIVERED: frozenset(
        {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.CANCELLED}
    ),
    OrderStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class StockAdjustment:
    product_id: int
    delta: int


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(str(value).lower())
    except ValueError:
        raise ValidationError(
            f"Unknown order status: {value}",
            {"status": [s.value for s in OrderStatus]},
        )


def parse_payment_status(value: str) -> PaymentStatus:
    try:
        return PaymentStatus(str(value).lower())
    except ValueError:
        raise ValidationError(
            f"Unknown payment status: {value}",
            {"payment_status": [s.value for s in PaymentStatus]},
        )


def is_allowed(prev: OrderStatus, new: OrderStatus) -> bool:
    return prev == new or new in TRANSITIONS[prev]


def check_transition(prev: OrderStatus, new: OrderStatus) -> None:
    if not is_allowed(prev, new):
        raise ValidationError(
            f"Cannot change order status from {prev.value} to {new.value}",
            {"status": sorted(s.value for s in TRANSITIONS[prev])},
        )


def stock_direction(prev: OrderStatus, new: OrderStatus) -> int:
    if new == OrderStatus.DELIVERED and prev != OrderStatus.DELIVERED:
        return -1
    if prev == OrderStatus.DELIVERED and new != OrderStatus.DELIVERED:
        return 1
    return 0


def on_transition(prev: OrderStatus, new: OrderStatus, items: Iterable) -> List[StockAdjustment]:
    direction = stock_direction(prev, new)
    if direction == 0:
        return []

    # kilka linii tego samego produktu (rozne opcje) -> jedna korekta
    deltas: Dict[int, int] = {}
    for item in items:
        deltas[item.product_id] = deltas.get(item.product_id, 0) + direction * item.quantity

    return [StockAdjustment(product_id=pid, delta=d) for pid, d in sorted(deltas.items())]
