# app/api/routers/orders.py
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_lock_service, require_admin, to_http
from app.data.database import get_db
from app.domain.errors import StoreError
from app.domain.schemas import (
    OrderConfirmation,
    OrderOut,
    OrderPage,
    OrderStats,
    ShippingIn,
    StatusUpdateIn,
)
from app.services.lock_service import LockService
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    return OrderService(db, lock_service)


@router.post("/", response_model=OrderConfirmation, status_code=201)
def create_order(
    payload: ShippingIn,
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_service),
):
    """
    Tworzy zamówienie z koszyka użytkownika i czyści koszyk.
    """
    try:
        return svc.place_order(user_id, payload)
    except StoreError as e:
        raise to_http(e)


@router.get("/my-orders", response_model=List[OrderOut])
def my_orders(
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_service),
):
    return svc.list_user_orders(user_id)


@router.get("/my-orders/{order_id}", response_model=OrderOut)
def my_order(
    order_id: int,
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.get_user_order(order_id, user_id)
    except StoreError as e:
        raise to_http(e)


# ============ ADMIN ============

@router.get("/admin/all", response_model=OrderPage)
def all_orders(
    status: str | None = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    _admin: dict = Depends(require_admin),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.list_orders(status=status, page=page, limit=limit)
    except StoreError as e:
        raise to_http(e)


@router.get("/admin/stats/summary", response_model=OrderStats)
def stats_summary(
    _admin: dict = Depends(require_admin),
    svc: OrderService = Depends(get_service),
):
    return svc.stats()


@router.get("/admin/{order_id}", response_model=OrderOut)
def admin_order(
    order_id: int,
    _admin: dict = Depends(require_admin),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.get_order(order_id)
    except StoreError as e:
        raise to_http(e)


@router.put("/admin/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    payload: StatusUpdateIn,
    _admin: dict = Depends(require_admin),
    svc: OrderService = Depends(get_service),
):
    """
    Zmiana statusu zamówienia - korekty magazynu przy wejściu/wyjściu z delivered.
    """
    try:
        return svc.set_status(
            order_id,
            status=payload.status,
            payment_status=payload.payment_status,
            notes=payload.notes,
            expected_status=payload.expected_status,
        )
    except StoreError as e:
        raise to_http(e)


@router.delete("/admin/{order_id}")
def delete_order(
    order_id: int,
    _admin: dict = Depends(require_admin),
    svc: OrderService = Depends(get_service),
):
    try:
        svc.delete_order(order_id)
    except StoreError as e:
        raise to_http(e)
    return {"success": True, "message": "Order deleted"}
