from typing import Any

from beanie import PydanticObjectId
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from vynn.deps import get_current_user, get_optional_user
from vynn.models.profile import SocialPlatform
from vynn.models.user import User
from vynn.services import profiles as profile_service
from vynn.services.users import ensure_profile

router = APIRouter()


class SocialIn(BaseModel):
    platform: SocialPlatform
    username: str = ""
    url: str = Field(..., min_length=1)
    order: int = 0
    is_visible: bool = True


class UpdateProfileRequest(BaseModel):
    bio: str | None = Field(None, max_length=500)
    avatar: str | None = None
    banner: str | None = None
    theme_config: dict[str, Any] | None = None
    socials: list[SocialIn] | None = None
    is_nsfw: bool | None = None
    show_view_count: bool | None = None
    is_public: bool | None = None


class AddLinkRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1)
    icon: str = "link"


class SaveTemplateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    config: dict[str, Any]


@router.get("/@me")
async def profile_me(user: User = Depends(get_current_user)):
    profile = await ensure_profile(user)
    return profile_service.serialize_profile(profile)


@router.put("/@me")
async def profile_update(body: UpdateProfileRequest, user: User = Depends(get_current_user)):
    profile = await profile_service.update_profile(user, body.model_dump(exclude_none=True))
    return profile_service.serialize_profile(profile)


@router.post("/@me/links", status_code=201)
async def profile_link_add(body: AddLinkRequest, user: User = Depends(get_current_user)):
    """Free accounts hold one custom link, premium accounts three."""
    profile = await profile_service.add_link(user, body.title, body.url, body.icon)
    return profile_service.serialize_profile(profile)


@router.delete("/@me/links/{link_id}")
async def profile_link_delete(link_id: PydanticObjectId, user: User = Depends(get_current_user)):
    profile = await profile_service.delete_link(user, link_id)
    return profile_service.serialize_profile(profile)


@router.get("/@me/templates")
async def profile_templates(user: User = Depends(get_current_user)):
    profile = await ensure_profile(user)
    return {"templates": [t.model_dump(mode="json") for t in profile.templates]}


@router.post("/@me/templates", status_code=201)
async def profile_template_save(body: SaveTemplateRequest, user: User = Depends(get_current_user)):
    template = await profile_service.save_template(user, body.name, body.config)
    return {"message": "Template saved", "template": template.model_dump(mode="json")}


@router.delete("/@me/templates/{template_id}")
async def profile_template_delete(template_id: str, user: User = Depends(get_current_user)):
    await profile_service.delete_template(user, template_id)
    return {"message": "Template deleted"}


@router.get("/{username}")
async def profile_public(username: str, viewer: User | None = Depends(get_optional_user)):
    """Public profile; counts a view unless the viewer is the owner."""
    return await profile_service.view_profile(username, viewer)
