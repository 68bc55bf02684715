# app/repos/wishlist_repo.py
from typing import List
from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from app.data.models.wishlist_item import WishlistItemModel


class WishlistRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_lines(self, user_id: int) -> List[WishlistItemModel]:
        return list(
            self.db.execute(
                select(WishlistItemModel)
                .where(WishlistItemModel.user_id == user_id)
                .order_by(WishlistItemModel.created_at.desc(), WishlistItemModel.id.desc())
            ).scalars()
        )

    def get_lines_for_product(self, user_id: int, product_id: int) -> List[WishlistItemModel]:
        return list(
            self.db.execute(
                select(WishlistItemModel).where(
                    WishlistItemModel.user_id == user_id,
                    WishlistItemModel.product_id == product_id,
                )
            ).scalars()
        )

    def add_line(self, line: WishlistItemModel) -> WishlistItemModel:
        self.db.add(line)
        self.db.flush()
        return line

    def delete_line(self, line: WishlistItemModel) -> None:
        self.db.delete(line)
        self.db.flush()

    def delete_all(self, user_id: int) -> int:
        res = self.db.execute(
            delete(WishlistItemModel).where(WishlistItemModel.user_id == user_id)
        )
        return res.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
