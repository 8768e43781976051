"""Store catalog, purchases paid in credits, and admin catalog management."""

from datetime import datetime
from typing import Any

from beanie import PydanticObjectId

from vynn.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from vynn.core.logging import get_logger
from vynn.models.store_item import StoreItem
from vynn.models.user import User
from vynn.services import badges as badge_service
from vynn.services import ledger
from vynn.services.accounts import save_user

log = get_logger(__name__)

EDITABLE_ITEM_FIELDS = ("name", "description", "image_url", "item_type", "rarity", "type", "price", "metadata", "is_active")


def _item_out(item: StoreItem, owned: bool) -> dict:
    return {
        "id": str(item.id),
        "name": item.name,
        "description": item.description,
        "image_url": item.image_url,
        "item_type": item.item_type,
        "rarity": item.rarity,
        "type": item.type,
        "price": item.price,
        "currency": item.currency,
        "metadata": item.metadata,
        "owned": owned,
    }


def serialize_item_admin(item: StoreItem) -> dict:
    return {
        **_item_out(item, False),
        "is_active": item.is_active,
        "created_at": item.created_at.isoformat(),
        "updated_at": item.updated_at.isoformat(),
    }


async def list_items(user: User | None = None, item_type: str | None = None) -> list[dict]:
    """Active items, cheapest first within rarity; `owned` is set for a logged-in user."""
    query = StoreItem.find(StoreItem.is_active == True)  # noqa: E712
    if item_type:
        query = query.find(StoreItem.item_type == item_type)
    items = await query.sort(+StoreItem.rarity, +StoreItem.price).to_list()
    inventory = set(user.inventory) if user else set()
    return [_item_out(i, bool(user) and (i.id in inventory or i.type == "free")) for i in items]


async def list_owned(user: User, item_type: str | None = None) -> list[dict]:
    """Purchased items plus every active free item, de-duplicated."""
    free_query = StoreItem.find(StoreItem.type == "free", StoreItem.is_active == True)  # noqa: E712
    free_items = await free_query.to_list()
    owned_items = await StoreItem.find({"_id": {"$in": user.inventory}}).to_list() if user.inventory else []
    seen: set[PydanticObjectId] = set()
    out = []
    for item in [*free_items, *owned_items]:
        if item.id in seen or (item_type and item.item_type != item_type):
            continue
        seen.add(item.id)
        out.append(_item_out(item, True))
    return out


async def buy_item(user: User, item_id: PydanticObjectId) -> dict:
    """
    Claim or buy an item. Priced items are paid with spend_credits, which rejects
    an underfunded purchase before anything is written.
    """
    item = await StoreItem.get(item_id)
    if not item:
        raise NotFoundError("Item not found")
    if not item.is_active:
        raise BadRequestError("Item not active")
    if item.id in user.inventory:
        raise BadRequestError("You already own this item")
    if item.type == "premium" and not user.is_premium:
        raise ForbiddenError("Requires Premium")

    if item.price > 0:
        await ledger.spend_credits(user, item.price, item.id, f"Purchased {item.name}")

    user.inventory.append(item.id)
    if item.type in ("purchase", "premium"):
        user.is_early_supporter = True
    await save_user(user)
    log.info("store_item_acquired", user_id=str(user.id), item_id=str(item.id), price=item.price)

    await badge_service.check_automatic_badges(user.id)
    return {"item": _item_out(item, True), "new_balance": user.credits}


# --- Admin catalog management ---

async def list_all_items(item_type: str | None = None) -> list[StoreItem]:
    """Every item, active or not, newest first. `all` means no type filter."""
    query = StoreItem.find_all()
    if item_type and item_type != "all":
        query = StoreItem.find(StoreItem.item_type == item_type)
    return await query.sort(-StoreItem.created_at).to_list()


async def create_item(fields: dict[str, Any]) -> StoreItem:
    if await StoreItem.find_one(StoreItem.name == fields["name"]):
        raise ConflictError("Item name exists")
    item = StoreItem(**fields)
    await item.insert()
    log.info("store_item_created", item_id=str(item.id), name=item.name)
    return item


async def update_item(item_id: PydanticObjectId, changes: dict[str, Any]) -> StoreItem:
    item = await StoreItem.get(item_id)
    if not item:
        raise NotFoundError("Item not found")
    name = changes.get("name")
    if name and name != item.name and await StoreItem.find_one(StoreItem.name == name):
        raise ConflictError("Item name exists")
    for field in EDITABLE_ITEM_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(item, field, changes[field])
    item.updated_at = datetime.utcnow()
    await item.save()
    return item


async def delete_item(item_id: PydanticObjectId) -> None:
    """Remove from the catalog; copies already in inventories stay there."""
    item = await StoreItem.get(item_id)
    if not item:
        raise NotFoundError("Item not found")
    await item.delete()
    log.info("store_item_deleted", item_id=str(item_id))
