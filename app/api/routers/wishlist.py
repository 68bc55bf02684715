# app/api/routers/wishlist.py
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_lock_service, to_http
from app.data.database import get_db
from app.domain.errors import StoreError
from app.domain.schemas import LineIn, LineRef, SyncIn, SyncOut, ToggleOut, WishlistLineOut
from app.services.lock_service import LockService
from app.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    return WishlistService(db=db, lock_service=lock_service)


@router.get("/", response_model=List[WishlistLineOut])
def get_wishlist(
    user_id: int = Depends(get_current_user_id),
    svc: WishlistService = Depends(get_service),
):
    return svc.list_lines(user_id)


@router.post("/", response_model=LineRef)
def add_item(
    payload: LineIn,
    user_id: int = Depends(get_current_user_id),
    svc: WishlistService = Depends(get_service),
):
    try:
        line = svc.add_line(user_id, payload)
    except StoreError as e:
        raise to_http(e)
    return LineRef(
        id=line.id,
        product_id=line.product_id,
        quantity=1,
        selected_color=line.selected_color,
        selected_size=line.selected_size,
        selected_variant=line.selected_variant,
        custom_selections=line.custom_selections,
    )


@router.post("/toggle", response_model=ToggleOut)
def toggle_item(
    payload: LineIn,
    user_id: int = Depends(get_current_user_id),
    svc: WishlistService = Depends(get_service),
):
    try:
        return {"action": svc.toggle(user_id, payload)}
    except StoreError as e:
        raise to_http(e)


@router.post("/check")
def check_item(
    payload: LineIn,
    user_id: int = Depends(get_current_user_id),
    svc: WishlistService = Depends(get_service),
):
    try:
        return {"in_wishlist": svc.contains(user_id, payload)}
    except StoreError as e:
        raise to_http(e)


@router.post("/remove")
def remove_item(
    payload: LineIn,
    user_id: int = Depends(get_current_user_id),
    svc: WishlistService = Depends(get_service),
):
    try:
        return {"success": True, "removed": svc.remove_matching(user_id, payload)}
    except StoreError as e:
        raise to_http(e)


@router.post("/sync", response_model=SyncOut)
def sync_wishlist(
    payload: SyncIn,
    user_id: int = Depends(get_current_user_id),
    svc: WishlistService = Depends(get_service),
):
    return svc.merge_from_guest(user_id, payload.items)


@router.delete("/")
def clear_wishlist(
    user_id: int = Depends(get_current_user_id),
    svc: WishlistService = Depends(get_service),
):
    svc.clear(user_id)
    return {"success": True}
