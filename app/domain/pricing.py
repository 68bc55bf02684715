# app/domain/pricing.py
from decimal import Decimal
from typing import Any, NamedTuple

from app.domain.line_identity import normalize_mapping


class PricedLine(NamedTuple):
    unit_price: Decimal
    display_image: str


def _to_money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def resolve(line: Any, product: Any | None) -> PricedLine:
    """
    Cena i obrazek linii: wariant nadpisuje produkt.
    Brak produktu lub danych -> 0 i "" (bez wyjatkow).
    """
    variant = normalize_mapping(getattr(line, "selected_variant", None)) or {}

    price = variant.get("price")
    if price is None and product is not None:
        price = product.price
    unit_price = _to_money(price if price is not None else 0)

    image = variant.get("image")
    if image is None and product is not None and product.images:
        image = product.images[0]

    return PricedLine(unit_price=unit_price, display_image=image or "")
