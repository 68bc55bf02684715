# app/repos/cart_repo.py
from typing import List
from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from app.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_lines(self, user_id: int) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.user_id == user_id)
                .order_by(CartItemModel.id)
            ).scalars()
        )

    def get_line(self, user_id: int, line_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.id == line_id,
                CartItemModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def get_lines_for_product(self, user_id: int, product_id: int) -> List[CartItemModel]:
        #kandydaci po (user_id, product_id), reszte klucza porownuje line_identity
        return list(
            self.db.execute(
                select(CartItemModel).where(
                    CartItemModel.user_id == user_id,
                    CartItemModel.product_id == product_id,
                )
            ).scalars()
        )

    def add_line(self, line: CartItemModel) -> CartItemModel:
        self.db.add(line)
        self.db.flush()
        return line

    def delete_line(self, line: CartItemModel) -> None:
        self.db.delete(line)
        self.db.flush()

    def delete_all(self, user_id: int) -> int:
        res = self.db.execute(
            delete(CartItemModel).where(CartItemModel.user_id == user_id)
        )
        return res.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
