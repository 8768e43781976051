from datetime import datetime
from typing import Any, Literal

from beanie import Document
from pydantic import Field

ItemType = Literal["frame", "cursor", "background", "audio", "avatar", "banner", "badge", "sticker", "effect"]
ItemRarity = Literal["common", "rare", "epic", "legendary", "event", "mythic"]
ItemAccess = Literal["free", "premium", "purchase", "exclusive"]


class StoreItem(Document):
    name: str
    description: str = ""
    image_url: str
    item_type: ItemType
    rarity: ItemRarity = "common"
    type: ItemAccess = "free"
    price: int = Field(default=0, ge=0)
    currency: Literal["credits"] = "credits"  # the only currency the ledger can charge
    metadata: dict[str, Any] = Field(default_factory=dict)  # e.g. cursor hotspot {"x": 0, "y": 0}
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "store_items"
        indexes = [[("item_type", 1)], [("name", 1)]]
