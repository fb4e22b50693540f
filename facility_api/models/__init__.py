"""
ORM models. Importing this package registers every table on `Base.metadata`
(Alembic autogenerate and `create_all` in tests rely on that) and lets the
string-based relationships between them resolve.
"""

from facility_api.models.user import User, RoleName
from facility_api.models.asset import Asset, AssetStatus
from facility_api.models.maintenance_request import (
    MaintenanceRequest,
    MaintenanceStatus,
    MaintenancePriority,
)
from facility_api.models.audit_log import AuditLog

__all__ = [
    "User", "RoleName",
    "Asset", "AssetStatus",
    "MaintenanceRequest", "MaintenanceStatus", "MaintenancePriority",
    "AuditLog",
]
