from vynn.models.user import User
from vynn.models.badge import Badge
from vynn.models.profile import Profile
from vynn.models.store_item import StoreItem
from vynn.models.audit_log import AuditLog
from vynn.models.visit_session import VisitSession

__all__ = [
    "User",
    "Badge",
    "Profile",
    "StoreItem",
    "AuditLog",
    "VisitSession",
]
