# app/repos/product_repo.py
from typing import Dict, Iterable
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.data.models.product import ProductModel


class ProductRepo:
    """Odczyt katalogu + jedyny zapis rdzenia do katalogu: stock."""

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_products(self, product_ids: Iterable[int]) -> Dict[int, ProductModel]:
        ids = set(product_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(ProductModel).where(ProductModel.id.in_(ids))
        ).scalars()
        return {p.id: p for p in rows}

    def adjust_stock(self, product_id: int, delta: int) -> int | None:
        """
        UPDATE products SET stock = stock + delta - inkrementacja po stronie bazy,
        bez read-modify-write w Pythonie. Zwraca nowy stan lub None gdy brak produktu.
        """
        res = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + delta)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount == 0:
            return None

        return self.db.execute(
            select(ProductModel.stock).where(ProductModel.id == product_id)
        ).scalar_one()
