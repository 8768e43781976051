from typing import Any

from beanie import PydanticObjectId
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from vynn.core.audit import log_event
from vynn.core.pagination import total_pages
from vynn.deps import require_admin, require_super_admin
from vynn.models.badge import BadgeCategory, BadgeRarity
from vynn.models.store_item import ItemAccess, ItemRarity, ItemType
from vynn.models.user import Role, User
from vynn.routers.badges import serialize_badge
from vynn.services import admin_users as admin_service
from vynn.services import analytics as analytics_service
from vynn.services import badges as badge_service
from vynn.services import store as store_service
from vynn.services.users import serialize_user

router = APIRouter()


class PremiumRequest(BaseModel):
    type: admin_service.PremiumType
    months: int = Field(1, ge=1, le=120)


class RoleRequest(BaseModel):
    role: Role


class GrantCreditsRequest(BaseModel):
    amount: int = Field(..., gt=0)
    description: str = ""


class CreateBadgeRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str
    icon: str
    color: str | None = None
    rarity: BadgeRarity | None = None
    category: BadgeCategory | None = None


class UpdateBadgeRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    rarity: BadgeRarity | None = None
    category: BadgeCategory | None = None


class AssignBadgeRequest(BaseModel):
    user_id: PydanticObjectId
    badge_id: PydanticObjectId


class CreateItemRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    image_url: str = ""
    item_type: ItemType
    rarity: ItemRarity = "common"
    type: ItemAccess = "free"
    price: int = Field(0, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class UpdateItemRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    image_url: str | None = None
    item_type: ItemType | None = None
    rarity: ItemRarity | None = None
    type: ItemAccess | None = None
    price: int | None = Field(None, ge=0)
    metadata: dict[str, Any] | None = None
    is_active: bool | None = None


@router.get("/users")
async def admin_users_list(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = "",
    admin: User = Depends(require_admin),
):
    """Admin: users, newest first, searchable by email or username."""
    out = await admin_service.list_users(page, limit, search)
    return {
        "users": [serialize_user(u) for u in out["users"]],
        "current_page": out["page"],
        "total_pages": total_pages(out["total"], out["limit"]),
        "total_users": out["total"],
    }


@router.put("/users/{user_id}/premium")
async def admin_set_premium(user_id: PydanticObjectId, body: PremiumRequest, admin: User = Depends(require_super_admin)):
    """Super admin: none | limited (months) | lifetime."""
    user = await admin_service.set_premium(admin, user_id, body.type, body.months)
    return {
        "message": "Premium status updated",
        "is_premium": user.is_premium,
        "is_lifetime": user.is_lifetime_premium,
        "premium_until": user.premium_until.isoformat() if user.premium_until else None,
        "premium_referral_code": user.premium_referral_code,
    }


@router.put("/users/{user_id}/role")
async def admin_set_role(user_id: PydanticObjectId, body: RoleRequest, admin: User = Depends(require_super_admin)):
    user = await admin_service.set_role(admin, user_id, body.role)
    return {"message": "User role updated", "user": {"id": str(user.id), "role": user.role}}


@router.put("/users/{user_id}/verify")
async def admin_toggle_verify(user_id: PydanticObjectId, admin: User = Depends(require_admin)):
    user = await admin_service.toggle_verified(admin, user_id)
    return {"message": f"User {'verified' if user.is_verified else 'unverified'}", "is_verified": user.is_verified}


@router.post("/users/{user_id}/credits")
async def admin_grant_credits(user_id: PydanticObjectId, body: GrantCreditsRequest, admin: User = Depends(require_super_admin)):
    balance = await admin_service.grant_credits(admin, user_id, body.amount, body.description)
    return {"credits": balance}


@router.get("/badges")
async def admin_badges_list(admin: User = Depends(require_admin)):
    return [serialize_badge(b) for b in await badge_service.list_all_badges()]


@router.post("/badges", status_code=201)
async def admin_badge_create(body: CreateBadgeRequest, admin: User = Depends(require_super_admin)):
    badge = await badge_service.create_badge(body.name, body.description, body.icon, body.color, body.rarity, body.category)
    await log_event(str(admin.id), "badge_created", "badge", str(badge.id), {"slug": badge.slug})
    return serialize_badge(badge)


@router.put("/badges/{badge_id}")
async def admin_badge_update(badge_id: PydanticObjectId, body: UpdateBadgeRequest, admin: User = Depends(require_super_admin)):
    """System badges only take icon, color and description."""
    badge = await badge_service.update_badge(badge_id, body.model_dump(exclude_none=True))
    await log_event(str(admin.id), "badge_updated", "badge", str(badge.id))
    return serialize_badge(badge)


@router.delete("/badges/{badge_id}")
async def admin_badge_delete(badge_id: PydanticObjectId, admin: User = Depends(require_super_admin)):
    await badge_service.delete_badge(badge_id)
    await log_event(str(admin.id), "badge_deleted", "badge", str(badge_id))
    return {"message": "Badge removed"}


@router.post("/badges/assign")
async def admin_badge_assign(body: AssignBadgeRequest, admin: User = Depends(require_admin)):
    user = await badge_service.assign_badge(body.user_id, body.badge_id)
    await log_event(str(admin.id), "badge_assigned", "user", str(user.id), {"badge_id": str(body.badge_id)})
    return {"message": "Badge assigned successfully", "user_badges": [str(b) for b in user.badges]}


@router.get("/stats")
async def admin_stats(admin: User = Depends(require_admin)):
    out = await analytics_service.admin_overview()
    return {**out["counts"], "recent_users": [serialize_user(u) for u in out["recent_users"]]}


@router.get("/analytics")
async def admin_analytics(admin: User = Depends(require_admin)):
    """Sign-ups and recorded visits per day, last 7 days."""
    return await analytics_service.admin_activity()


@router.get("/users/{user_id}/metrics")
async def admin_user_metrics(user_id: PydanticObjectId, admin: User = Depends(require_admin)):
    return await analytics_service.user_metrics(user_id)


@router.get("/store-items")
async def admin_store_items(type: str | None = Query(None), admin: User = Depends(require_admin)):
    """Every item including inactive ones. `type=all` or no type lists everything."""
    return [store_service.serialize_item_admin(i) for i in await store_service.list_all_items(type)]


@router.post("/store-items", status_code=201)
async def admin_store_item_create(body: CreateItemRequest, admin: User = Depends(require_super_admin)):
    item = await store_service.create_item(body.model_dump())
    await log_event(str(admin.id), "store_item_created", "store_item", str(item.id), {"name": item.name})
    return store_service.serialize_item_admin(item)


@router.put("/store-items/{item_id}")
async def admin_store_item_update(item_id: PydanticObjectId, body: UpdateItemRequest, admin: User = Depends(require_super_admin)):
    item = await store_service.update_item(item_id, body.model_dump(exclude_none=True))
    await log_event(str(admin.id), "store_item_updated", "store_item", str(item.id))
    return store_service.serialize_item_admin(item)


@router.delete("/store-items/{item_id}")
async def admin_store_item_delete(item_id: PydanticObjectId, admin: User = Depends(require_super_admin)):
    await store_service.delete_item(item_id)
    await log_event(str(admin.id), "store_item_deleted", "store_item", str(item_id))
    return {"message": "Item deleted"}
