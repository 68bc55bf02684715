# app/repos/order_repo.py
from typing import Any, Dict, List, Tuple
from decimal import Decimal
from sqlalchemy import select, update, func
from sqlalchemy.orm import Session, selectinload

from app.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_order_for_update(self, order_id: int) -> OrderModel | None:
        #SELECT ... FOR UPDATE (postgres), w sqlite ignorowane
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_user_order(self, order_id: int, user_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id, OrderModel.user_id == user_id)
        ).scalar_one_or_none()

    def list_user_orders(self, user_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def list_orders(self, status: str | None, offset: int, limit: int) -> Tuple[List[OrderModel], int]:
        query = select(OrderModel).options(selectinload(OrderModel.items))
        count_query = select(func.count()).select_from(OrderModel)
        if status:
            query = query.where(OrderModel.status == status)
            count_query = count_query.where(OrderModel.status == status)

        orders = list(
            self.db.execute(
                query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .offset(offset)
                .limit(limit)
            ).scalars()
        )
        total = self.db.execute(count_query).scalar_one()
        return orders, total

    def count_by_status(self) -> Dict[str, int]:
        rows = self.db.execute(
            select(OrderModel.status, func.count()).group_by(OrderModel.status)
        ).all()
        return {status: count for status, count in rows}

    def revenue(self, exclude_status: str) -> Decimal:
        value = self.db.execute(
            select(func.coalesce(func.sum(OrderModel.total), 0))
            .where(OrderModel.status != exclude_status)
        ).scalar_one()
        return Decimal(str(value))

    def update_order_version(self, order_id: int, old_version: int, new_data: Dict[str, Any]) -> int:
        #UPDATE orders SET ... WHERE id = :id AND version = :old
        res = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def delete_order(self, order: OrderModel) -> None:
        self.db.delete(order)
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
