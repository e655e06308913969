# Overview: Permission system package.
# Role-to-permission mapping for the SIMLOK workflow; re-exports the public API.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    SUBMISSION_PERMISSIONS,
    WORKFLOW_PERMISSIONS,
    SCAN_PERMISSIONS,
    USER_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    get_role_permissions,
    get_roles_with_permission,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "SUBMISSION_PERMISSIONS",
    "WORKFLOW_PERMISSIONS",
    "SCAN_PERMISSIONS",
    "USER_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "get_role_permissions",
    "get_roles_with_permission",
    "validate_permission_code",
]
