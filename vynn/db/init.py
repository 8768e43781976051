import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from vynn.core.config import get_settings
from vynn.models.audit_log import AuditLog
from vynn.models.badge import Badge
from vynn.models.profile import Profile
from vynn.models.store_item import StoreItem
from vynn.models.user import User
from vynn.models.visit_session import VisitSession

DOCUMENT_MODELS = [
    User,
    Badge,
    Profile,
    StoreItem,
    AuditLog,
    VisitSession,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


async def init_db(database=None) -> None:
    """Bind document models to MongoDB. Pass `database` to use an already-open handle."""
    if database is None:
        settings = get_settings()
        kwargs = {}
        if _use_tls(settings.mongodb_uri):
            kwargs["tlsCAFile"] = certifi.where()
            kwargs["tlsDisableOCSPEndpointCheck"] = True
        client = AsyncIOMotorClient(settings.mongodb_uri, **kwargs)
        database = client[settings.mongodb_db_name]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
