# Import every model so Base.metadata is complete for create_all / Alembic
from db_models.user import User, UserRole, Permission, ROLE_PERMISSIONS
from db_models.permission_request import PermissionRequest, RequestStatus
from db_models.audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Permission",
    "ROLE_PERMISSIONS",
    "PermissionRequest",
    "RequestStatus",
    "AuditLog",
]
