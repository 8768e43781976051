from beanie import PydanticObjectId
from fastapi import APIRouter, Depends, Query

from vynn.deps import get_current_user, get_optional_user
from vynn.models.user import User
from vynn.services import store as store_service

router = APIRouter()


@router.get("")
async def store_list(
    type: str | None = Query(None, description="Filter by item type, e.g. frame"),
    user: User | None = Depends(get_optional_user),
):
    """Active store items; `owned` is filled in when logged in."""
    return await store_service.list_items(user, type)


@router.get("/owned")
async def store_owned(
    type: str | None = Query(None),
    user: User = Depends(get_current_user),
):
    return await store_service.list_owned(user, type)


@router.post("/{item_id}/buy")
async def store_buy(item_id: PydanticObjectId, user: User = Depends(get_current_user)):
    """Buy or claim an item. Credit-priced items fail with INSUFFICIENT_CREDITS when underfunded."""
    out = await store_service.buy_item(user, item_id)
    return {"message": "Item acquired!", **out}
