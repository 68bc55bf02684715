#app/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_lock_service, to_http
from app.data.database import get_db
from app.domain.errors import StoreError
from app.domain.schemas import (
    CartOut,
    LineIn,
    LineRef,
    QuantityIn,
    SyncIn,
    SyncOut,
)
from app.services.cart_service import CartService
from app.services.lock_service import LockService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    return CartService(db=db, lock_service=lock_service)


@router.get("/", response_model=CartOut)
def get_cart(
    user_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_service),
):
    return svc.list_lines(user_id)


@router.post("/", response_model=LineRef)
def add_item(
    payload: LineIn,
    user_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.add_line(user_id, payload)
    except StoreError as e:
        raise to_http(e)


@router.post("/sync", response_model=SyncOut)
def sync_cart(
    payload: SyncIn,
    user_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_service),
):
    return svc.merge_from_guest(user_id, payload.items)


@router.post("/remove")
def remove_matching(
    payload: LineIn,
    user_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_service),
):
    try:
        return {"success": True, "removed": svc.remove_matching(user_id, payload)}
    except StoreError as e:
        raise to_http(e)


@router.put("/{line_id}", response_model=LineRef)
def update_quantity(
    line_id: int,
    payload: QuantityIn,
    user_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.set_quantity(user_id, line_id, payload.quantity)
    except StoreError as e:
        raise to_http(e)


@router.delete("/{line_id}")
def remove_item(
    line_id: int,
    user_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_service),
):
    try:
        svc.remove_line(user_id, line_id)
    except StoreError as e:
        raise to_http(e)
    return {"success": True}


@router.delete("/")
def clear_cart(
    user_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_service),
):
    try:
        svc.clear(user_id)
    except StoreError as e:
        raise to_http(e)
    return {"success": True}
