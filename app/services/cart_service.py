from decimal import Decimal
from typing import Any, Dict, List
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from app.data.models.cart_item import CartItemModel
from app.domain import pricing
from app.domain.errors import ValidationError, NotFoundError, StoreError
from app.domain.line_identity import same_line, line_options, product_id_of
from app.domain.schemas import parse_line
from app.repos.cart_repo import CartRepo
from app.repos.product_repo import ProductRepo
from app.services.lock_service import LockService
from app.utils.logging import get_logger

logger = get_logger(__name__)


def _quantity_of(candidate: Any) -> int:
    qty = candidate.get("quantity") if isinstance(candidate, dict) else getattr(candidate, "quantity", None)
    if qty is None:
        return 1
    try:
        return int(qty)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be at least 1", {"quantity": "must be an integer >= 1"})


class CartService:
    """
    Ledger koszyka: user -> lista linii
    commands (add, set_quantity, remove, merge, clear) modyfikuja stan
    query (list_lines) tylko odczyt
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service

    #query - odczyt
    def list_lines(self, user_id: int) -> Dict[str, Any]:
        lines = self.repo.get_lines(user_id)
        products = self.products.get_products(line.product_id for line in lines)

        items = []
        subtotal = Decimal("0.00")
        for line in lines:
            product = products.get(line.product_id)
            priced = pricing.resolve(line, product)
            subtotal += priced.unit_price * line.quantity

            items.append(
                {
                    "id": line.id,
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                    "title": product.title if product else "",
                    "slug": product.slug if product else "",
                    "price": priced.unit_price,
                    "image": priced.display_image,
                    "selected_color": line.selected_color,
                    "selected_size": line.selected_size,
                    "selected_variant": line.selected_variant,
                    "custom_selections": line.custom_selections,
                }
            )

        return {"items": items, "subtotal": subtotal}

    #commands
    def add_line(self, user_id: int, candidate: Any) -> CartItemModel:
        product_id = product_id_of(candidate)
        quantity = _quantity_of(candidate)

        # Walidacje
        if product_id is None:
            raise ValidationError("Product ID is required", {"product_id": "required"})
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", {"quantity": "must be >= 1"})

        #find-or-create pod lockiem koszyka - dwa rownolegle add tej samej linii
        #nie moga utworzyc dwoch wierszy
        with self.lock_service.hold_cart(user_id):
            try:
                existing = self._find_same(user_id, product_id, candidate)

                if existing:
                    logger.info(
                        f"Line {existing.id} already in cart of user {user_id}, "
                        f"quantity {existing.quantity} -> {existing.quantity + quantity}"
                    )
                    existing.quantity += quantity
                    line = existing
                else:
                    line = self.repo.add_line(
                        CartItemModel(
                            user_id=user_id,
                            product_id=product_id,
                            quantity=quantity,
                            **line_options(candidate),
                        )
                    )
                    logger.info(f"Added product {product_id} to cart of user {user_id}")

                self.repo.commit()
                return line

            except Exception as e:
                logger.error(f"Error adding product {product_id} to cart: {e}")
                self.repo.rollback()
                raise

    def set_quantity(self, user_id: int, line_id: int, quantity: int) -> CartItemModel:
        if quantity is None or quantity < 1:
            raise ValidationError("Quantity must be at least 1", {"quantity": "must be >= 1"})

        with self.lock_service.hold_cart(user_id):
            try:
                line = self.repo.get_line(user_id, line_id)
                if not line:
                    raise NotFoundError("Cart item not found", {"line_id": line_id})

                line.quantity = quantity
                self.repo.commit()

            except StaleDataError:
                #linia usunieta w innej sesji (np. checkout) miedzy odczytem a zapisem
                self.repo.rollback()
                raise NotFoundError("Cart item not found", {"line_id": line_id})
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Cart line {line_id} of user {user_id} set to quantity {quantity}")
        return line

    def remove_line(self, user_id: int, line_id: int) -> None:
        with self.lock_service.hold_cart(user_id):
            try:
                line = self.repo.get_line(user_id, line_id)
                if not line:
                    raise NotFoundError("Cart item not found", {"line_id": line_id})

                self.repo.delete_line(line)
                self.repo.commit()

            except StaleDataError:
                self.repo.rollback()
                raise NotFoundError("Cart item not found", {"line_id": line_id})
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Removed cart line {line_id} of user {user_id}")

    def remove_matching(self, user_id: int, candidate: Any) -> bool:
        """Usuwa linie o tym samym kluczu tozsamosci. Brak linii to nie blad."""
        product_id = product_id_of(candidate)
        if product_id is None:
            raise ValidationError("Product ID is required", {"product_id": "required"})

        with self.lock_service.hold_cart(user_id):
            try:
                line = self._find_same(user_id, product_id, candidate)
                if not line:
                    return False

                self.repo.delete_line(line)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Removed product {product_id} line from cart of user {user_id}")
        return True

    def merge_from_guest(self, user_id: int, candidates: List[Any]) -> Dict[str, Any]:
        """
        Scalenie koszyka goscia po zalogowaniu.
        Kazda linia osobno (add_line), blad jednej nie cofa poprzednich.
        """
        merged = 0
        failed = []

        for index, candidate in enumerate(candidates):
            try:
                self.add_line(user_id, parse_line(candidate))
                merged += 1
            except StoreError as e:
                logger.warning(f"Skipping guest cart item {index} for user {user_id}: {e.message}")
                failed.append({"index": index, "error": e.message})

        logger.info(f"Merged {merged}/{len(candidates)} guest cart items for user {user_id}")
        return {"merged": merged, "failed": failed}

    def clear(self, user_id: int) -> int:
        with self.lock_service.hold_cart(user_id):
            try:
                removed = self.repo.delete_all(user_id)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Cleared cart of user {user_id} ({removed} lines)")
        return removed

    def _find_same(self, user_id: int, product_id: int, candidate: Any) -> CartItemModel | None:
        for line in self.repo.get_lines_for_product(user_id, product_id):
            if same_line(line, candidate):
                return line
        return None
