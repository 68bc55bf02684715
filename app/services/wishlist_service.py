# app/services/wishlist_service.py
from typing import Any, Dict, List
from sqlalchemy.orm import Session

from app.data.models.wishlist_item import WishlistItemModel
from app.domain import pricing
from app.domain.errors import ValidationError, StoreError
from app.domain.line_identity import same_line, line_options, product_id_of
from app.domain.schemas import parse_line
from app.repos.wishlist_repo import WishlistRepo
from app.repos.product_repo import ProductRepo
from app.services.lock_service import LockService
from app.utils.logging import get_logger

logger = get_logger(__name__)


class WishlistService:
    """
    Wishlista - ten sam klucz tozsamosci co koszyk, ale bez ilosci:
    ponowne dodanie tej samej linii nic nie zmienia.
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.repo = WishlistRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service

    @staticmethod
    def _lock_key(user_id: int) -> str:
        return f"wishlist:{user_id}:lock"

    def list_lines(self, user_id: int) -> List[Dict[str, Any]]:
        lines = self.repo.get_lines(user_id)
        products = self.products.get_products(line.product_id for line in lines)

        items = []
        for line in lines:
            product = products.get(line.product_id)
            priced = pricing.resolve(line, product)
            items.append(
                {
                    "id": line.id,
                    "product_id": line.product_id,
                    "title": product.title if product else "",
                    "slug": product.slug if product else "",
                    "price": priced.unit_price,
                    "image": priced.display_image,
                    "in_stock": bool(product and product.stock > 0),
                    "selected_color": line.selected_color,
                    "selected_size": line.selected_size,
                    "selected_variant": line.selected_variant,
                    "custom_selections": line.custom_selections,
                    "added_on": line.created_at,
                }
            )
        return items

    def add_line(self, user_id: int, candidate: Any) -> WishlistItemModel:
        product_id = self._require_product(candidate)

        with self.lock_service.hold(self._lock_key(user_id)):
            try:
                existing = self._find_same(user_id, product_id, candidate)
                if existing:
                    logger.info(f"Product {product_id} already in wishlist of user {user_id}")
                    return existing

                line = self.repo.add_line(
                    WishlistItemModel(user_id=user_id, product_id=product_id, **line_options(candidate))
                )
                self.repo.commit()
            except Exception as e:
                logger.error(f"Error adding product {product_id} to wishlist: {e}")
                self.repo.rollback()
                raise

        logger.info(f"Added product {product_id} to wishlist of user {user_id}")
        return line

    def toggle(self, user_id: int, candidate: Any) -> str:
        product_id = self._require_product(candidate)

        with self.lock_service.hold(self._lock_key(user_id)):
            try:
                existing = self._find_same(user_id, product_id, candidate)
                if existing:
                    self.repo.delete_line(existing)
                    action = "removed"
                else:
                    self.repo.add_line(
                        WishlistItemModel(user_id=user_id, product_id=product_id, **line_options(candidate))
                    )
                    action = "added"
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Wishlist toggle for product {product_id}, user {user_id}: {action}")
        return action

    def contains(self, user_id: int, candidate: Any) -> bool:
        product_id = self._require_product(candidate)
        return self._find_same(user_id, product_id, candidate) is not None

    def remove_matching(self, user_id: int, candidate: Any) -> bool:
        product_id = self._require_product(candidate)

        with self.lock_service.hold(self._lock_key(user_id)):
            try:
                existing = self._find_same(user_id, product_id, candidate)
                if not existing:
                    return False
                self.repo.delete_line(existing)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise
        return True

    def merge_from_guest(self, user_id: int, candidates: List[Any]) -> Dict[str, Any]:
        merged = 0
        failed = []
        for index, candidate in enumerate(candidates):
            try:
                self.add_line(user_id, parse_line(candidate))
                merged += 1
            except StoreError as e:
                logger.warning(f"Skipping guest wishlist item {index} for user {user_id}: {e.message}")
                failed.append({"index": index, "error": e.message})
        return {"merged": merged, "failed": failed}

    def clear(self, user_id: int) -> int:
        with self.lock_service.hold(self._lock_key(user_id)):
            try:
                removed = self.repo.delete_all(user_id)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise
        return removed

    @staticmethod
    def _require_product(candidate: Any) -> int:
        product_id = product_id_of(candidate)
        if product_id is None:
            raise ValidationError("Product ID is required", {"product_id": "required"})
        return product_id

    def _find_same(self, user_id: int, product_id: int, candidate: Any) -> WishlistItemModel | None:
        for line in self.repo.get_lines_for_product(user_id, product_id):
            if same_line(line, candidate):
                return line
        return None
