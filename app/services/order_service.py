# app/services/order_service.py
import math
import secrets
import string
import time
from decimal import Decimal
from typing import Any, Dict
from sqlalchemy.orm import Session

from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel
from app.domain import pricing
from app.domain.errors import ValidationError, NotFoundError, EmptyCartError, ConflictError
from app.domain.fulfillment import (
    OrderStatus,
    PaymentStatus,
    check_transition,
    on_transition,
    parse_payment_status,
    parse_status,
)
from app.repos.cart_repo import CartRepo
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.services.lock_service import LockService
from app.utils.retry import unique_retry
from app.utils.settings import DELIVERY_CHARGE_INSIDE, DELIVERY_CHARGE_OUTSIDE, ORDER_NUMBER_PREFIX
from app.utils.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_PRODUCT_TITLE = "Unknown Product"
REQUIRED_SHIPPING_FIELDS = ("customer_name", "customer_phone", "delivery_address", "delivery_area")
DELIVERY_CHARGES = {
    "inside": DELIVERY_CHARGE_INSIDE,
    "outside": DELIVERY_CHARGE_OUTSIDE,
}

_BASE36 = string.digits + string.ascii_uppercase


def _base36(number: int) -> str:
    digits = ""
    while number:
        number, rem = divmod(number, 36)
        digits = _BASE36[rem] + digits
    return digits or "0"


def generate_order_number(prefix: str = ORDER_NUMBER_PREFIX) -> str:
    """KNX-<timestamp ms base36>-<4 losowe znaki>. Unikalnosc gwarantuje constraint w bazie."""
    timestamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{prefix}-{timestamp}-{suffix}"


def delivery_charge_for(area: str) -> Decimal:
    return DELIVERY_CHARGES[area]


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień:
    - skladanie zamowienia z koszyka (snapshot cen, czyszczenie koszyka - jedna transakcja)
    - zmiany statusu i korekty magazynu (dokladnie raz na przejscie)
    - zapytania dla uzytkownika i admina
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service

    def place_order(self, user_id: int, shipping: Any) -> Dict[str, Any]:
        """
        Use Case: Zlozenie zamowienia z koszyka.

        1. Walidacja danych dostawy
        2. Wycena linii koszyka (wariant nadpisuje produkt), zamrozony snapshot
        3. subtotal + delivery_charge = total
        4. Zapis zamowienia + wyczyszczenie koszyka w jednej transakcji
        """
        data = shipping.model_dump() if hasattr(shipping, "model_dump") else dict(shipping)
        data = self._validate_shipping(data)

        #pod lockiem koszyka - add_line nie moze wcisnac sie miedzy odczyt a czyszczenie
        with self.lock_service.hold_cart(user_id):
            return self._place_order(user_id, data)

    @unique_retry()
    def _place_order(self, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            lines = self.cart_repo.get_lines(user_id)
            if not lines:
                raise EmptyCartError("Cart is empty")

            products = self.products.get_products(line.product_id for line in lines)

            subtotal = Decimal("0.00")
            items = []
            for line in lines:
                product = products.get(line.product_id)
                if product is None:
                    logger.warning(f"Cart line {line.id} references unknown product {line.product_id}")

                priced = pricing.resolve(line, product)
                subtotal += priced.unit_price * line.quantity

                items.append(
                    OrderItemModel(
                        product_id=line.product_id,
                        title=product.title if product else UNKNOWN_PRODUCT_TITLE,
                        price=priced.unit_price,
                        quantity=line.quantity,
                        image=priced.display_image,
                        selected_color=line.selected_color,
                        selected_size=line.selected_size,
                        selected_variant=line.selected_variant,
                        custom_selections=line.custom_selections,
                    )
                )

            delivery_charge = delivery_charge_for(data["delivery_area"])

            order = OrderModel(
                order_number=generate_order_number(),
                user_id=user_id,
                customer_name=data["customer_name"],
                customer_email=data.get("customer_email") or "",
                customer_phone=data["customer_phone"],
                delivery_address=data["delivery_address"],
                delivery_area=data["delivery_area"],
                delivery_charge=delivery_charge,
                subtotal=subtotal,
                total=subtotal + delivery_charge,
                payment_method=data.get("payment_method") or "cod",
                payment_status=PaymentStatus.PENDING.value,
                status=OrderStatus.PENDING.value,
                notes=data.get("notes"),
                version=1,
                items=items,
            )

            created = self.repo.add_order(order)
            self.cart_repo.delete_all(user_id)

            #zamowienie i pusty koszyk widoczne razem albo wcale
            self.repo.commit()

        except Exception:
            self.repo.rollback()
            raise

        logger.info(
            f"Order {created.order_number} placed by user {user_id}: "
            f"{len(items)} items, total {created.total}"
        )

        return {
            "id": created.id,
            "order_number": created.order_number,
            "total": created.total,
            "status": created.status,
        }

    def set_status(
        self,
        order_id: int,
        status: str | None = None,
        payment_status: str | None = None,
        notes: str | None = None,
        expected_status: str | None = None,
    ) -> OrderModel:
        """
        Use Case: Zmiana statusu przez admina.

        Guard na POPRZEDNI status odczytany w tej samej transakcji co zapis:
        drugie "delivered" nie zdejmuje stanu drugi raz.
        """
        try:
            order = self.repo.get_order_for_update(order_id)
            if not order:
                raise NotFoundError("Order not found", {"order_id": order_id})

            prev = parse_status(order.status)

            if expected_status is not None and parse_status(expected_status) != prev:
                raise ConflictError(
                    f"Order status is {prev.value}, expected {expected_status}",
                    {"status": prev.value},
                )

            new = parse_status(status) if status else prev
            check_transition(prev, new)

            new_data: Dict[str, Any] = {"status": new.value, "version": order.version + 1}
            if payment_status:
                new_data["payment_status"] = parse_payment_status(payment_status).value
            elif new == OrderStatus.DELIVERED and prev != OrderStatus.DELIVERED:
                new_data["payment_status"] = PaymentStatus.PAID.value
            if notes is not None:
                new_data["notes"] = notes

            # Optimistic locking
            rowcount = self.repo.update_order_version(
                order_id=order.id,
                old_version=order.version,
                new_data=new_data,
            )
            if rowcount == 0:
                raise ConflictError(
                    "Order was modified by another request",
                    {"order_id": order_id},
                )

            for adjustment in on_transition(prev, new, order.items):
                stock = self.products.adjust_stock(adjustment.product_id, adjustment.delta)
                if stock is None:
                    logger.warning(f"Stock adjustment skipped, product {adjustment.product_id} not found")
                elif stock < 0:
                    logger.warning(f"Product {adjustment.product_id} stock is negative ({stock})")
                else:
                    logger.info(f"Product {adjustment.product_id} stock {adjustment.delta:+d} -> {stock}")

            self.repo.commit()

        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_number} status {prev.value} -> {new.value}")

        return self.repo.get_order(order_id)

    #query
    def get_user_order(self, order_id: int, user_id: int) -> OrderModel:
        order = self.repo.get_user_order(order_id, user_id)
        if not order:
            raise NotFoundError("Order not found", {"order_id": order_id})
        return order

    def list_user_orders(self, user_id: int):
        return self.repo.list_user_orders(user_id)

    def get_order(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found", {"order_id": order_id})
        return order

    def list_orders(self, status: str | None = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        if page < 1 or limit < 1 or limit > 100:
            raise ValidationError("Invalid pagination", {"page": ">= 1", "limit": "1..100"})

        status_filter = None
        if status and status.lower() != "all":
            status_filter = parse_status(status).value

        orders, total = self.repo.list_orders(status_filter, (page - 1) * limit, limit)
        return {
            "orders": orders,
            "total": total,
            "page": page,
            "total_pages": math.ceil(total / limit),
        }

    def delete_order(self, order_id: int) -> None:
        order = self.get_order(order_id)
        #pozycje usuwane kaskadowo, stan magazynu bez zmian
        self.repo.delete_order(order)
        self.repo.commit()
        logger.info(f"Order {order.order_number} deleted")

    def stats(self) -> Dict[str, Any]:
        counts = self.repo.count_by_status()
        return {
            "total_orders": sum(counts.values()),
            "pending_orders": counts.get(OrderStatus.PENDING.value, 0),
            "processing_orders": counts.get(OrderStatus.PROCESSING.value, 0),
            "delivered_orders": counts.get(OrderStatus.DELIVERED.value, 0),
            "cancelled_orders": counts.get(OrderStatus.CANCELLED.value, 0),
            "total_revenue": self.repo.revenue(exclude_status=OrderStatus.CANCELLED.value),
        }

    @staticmethod
    def _validate_shipping(data: Dict[str, Any]) -> Dict[str, Any]:
        missing = [
            field for field in REQUIRED_SHIPPING_FIELDS
            if not str(data.get(field) or "").strip()
        ]
        if missing:
            raise ValidationError(
                "Please fill in all required fields",
                {field: "required" for field in missing},
            )

        area = str(data["delivery_area"]).strip().lower()
        if area not in DELIVERY_CHARGES:
            raise ValidationError(
                f"Unknown delivery area: {data['delivery_area']}",
                {"delivery_area": sorted(DELIVERY_CHARGES)},
            )

        return {**data, "delivery_area": area}
