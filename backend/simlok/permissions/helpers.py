# Overview: Lookups over the permission table and the role mapping.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


_BY_CODE = {perm[0]: perm for perm in PERMISSION_DEFINITIONS}


def get_all_permission_codes():
    """Every permission code, in definition order."""
    return list(_BY_CODE)


def get_permissions_by_category(category):
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code):
    """Definition of `code` as a dict, or None if unknown."""
    perm = _BY_CODE.get(code)
    if perm is None:
        return None
    code, name, description, category = perm
    return {"code": code, "name": name, "description": description, "category": category}


def validate_permission_code(code):
    return code in _BY_CODE


def get_role_permissions(role):
    """Permission codes granted to a role (empty for unknown roles)."""
    return set(DEFAULT_ROLE_PERMISSIONS.get(role, ()))


def get_roles_with_permission(code):
    """Roles whose default set includes `code`."""
    return sorted(role for role, codes in DEFAULT_ROLE_PERMISSIONS.items() if code in codes)
