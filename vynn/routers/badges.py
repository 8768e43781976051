from fastapi import APIRouter

from vynn.services import badges as badge_service

router = APIRouter()


def serialize_badge(badge) -> dict:
    return {
        "id": str(badge.id),
        "name": badge.name,
        "slug": badge.slug,
        "description": badge.description,
        "icon": badge.icon,
        "color": badge.color,
        "category": badge.category,
        "rarity": badge.rarity,
        "is_system": badge.is_system,
        "system_key": badge.system_key,
        "is_active": badge.is_active,
    }


@router.get("")
async def badges_list():
    """All active badges."""
    return [serialize_badge(b) for b in await badge_service.list_active_badges()]
