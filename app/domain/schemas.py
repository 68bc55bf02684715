# app/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from pydantic import ValidationError as SchemaError
from typing import Any, Dict, List, Optional
from decimal import Decimal
from datetime import datetime

from app.domain.errors import ValidationError


class VariantRef(BaseModel):
    """Wybrany wariant produktu (snapshot z frontu)."""

    id: Optional[int] = None
    name: Optional[str] = None
    image: Optional[str] = None
    price: Optional[float] = None


class LineIn(BaseModel):
    """Schema dla linii koszyka / wishlisty (produkt + opcje)."""

    product_id: Optional[int] = Field(None, description="ID produktu")
    quantity: int = Field(1, description="Ilosc (>= 1)")
    selected_color: Optional[str] = None
    selected_size: Optional[str] = None
    selected_variant: Optional[VariantRef] = None
    custom_selections: Optional[Dict[str, str]] = None


class QuantityIn(BaseModel):
    quantity: int


class SyncIn(BaseModel):
    """Koszyk / wishlista goscia scalana po zalogowaniu. Pozycje walidowane pojedynczo (parse_line)."""

    items: List[Any]


def parse_line(candidate: Any) -> LineIn:
    if isinstance(candidate, LineIn):
        return candidate
    try:
        return LineIn.model_validate(candidate)
    except SchemaError as e:
        details = {".".join(str(p) for p in err["loc"]) or "item": err["msg"] for err in e.errors()}
        raise ValidationError("Invalid item", details)


class SyncFailure(BaseModel):
    index: int
    error: str


class SyncOut(BaseModel):
    merged: int
    failed: List[SyncFailure] = []


class CartLineOut(BaseModel):
    """Linia koszyka wyceniona na podstawie aktualnego katalogu."""

    id: int
    product_id: int
    quantity: int
    title: str
    slug: str
    price: Decimal
    image: str
    selected_color: Optional[str] = None
    selected_size: Optional[str] = None
    selected_variant: Optional[dict] = None
    custom_selections: Optional[Dict[str, str]] = None


class CartOut(BaseModel):
    items: List[CartLineOut]
    subtotal: Decimal


class LineRef(BaseModel):
    """Surowa linia po dodaniu / zmianie ilosci."""

    id: int
    product_id: int
    quantity: int
    selected_color: Optional[str] = None
    selected_size: Optional[str] = None
    selected_variant: Optional[dict] = None
    custom_selections: Optional[Dict[str, str]] = None

    model_config = ConfigDict(from_attributes=True)


class WishlistLineOut(BaseModel):
    id: int
    product_id: int
    title: str
    slug: str
    price: Decimal
    image: str
    in_stock: bool
    selected_color: Optional[str] = None
    selected_size: Optional[str] = None
    selected_variant: Optional[dict] = None
    custom_selections: Optional[Dict[str, str]] = None
    added_on: datetime


class ToggleOut(BaseModel):
    action: str  # added, removed


class ShippingIn(BaseModel):
    """Dane dostawy przy skladaniu zamowienia. Wymagane pola sprawdza OrderService."""

    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_area: Optional[str] = None
    payment_method: str = "cod"
    notes: Optional[str] = None


class OrderConfirmation(BaseModel):
    id: int
    order_number: str
    total: Decimal
    status: str


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    title: str
    price: Decimal
    quantity: int
    image: Optional[str] = None
    selected_color: Optional[str] = None
    selected_size: Optional[str] = None
    selected_variant: Optional[dict] = None
    custom_selections: Optional[Dict[str, str]] = None

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema dla zamowienia (response)."""

    id: int
    order_number: str
    user_id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    delivery_address: str
    delivery_area: str
    delivery_charge: Decimal
    subtotal: Decimal
    total: Decimal
    payment_method: str
    payment_status: str
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut]

    model_config = ConfigDict(from_attributes=True)


class OrderPage(BaseModel):
    orders: List[OrderOut]
    total: int
    page: int
    total_pages: int


class StatusUpdateIn(BaseModel):
    """Zmiana statusu przez admina. expected_status - opcjonalny guard."""

    status: Optional[str] = None
    payment_status: Optional[str] = None
    notes: Optional[str] = None
    expected_status: Optional[str] = None


class OrderStats(BaseModel):
    total_orders: int
    pending_orders: int
    processing_orders: int
    delivered_orders: int
    cancelled_orders: int
    total_revenue: Decimal
