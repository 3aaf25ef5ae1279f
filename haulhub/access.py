"""Role-based page and action gating."""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from .errors import AccessDenied


class Role(str, Enum):
    ADMIN = "admin"
    DRIVER = "driver"
    DISPATCHER = "dispatcher"


class Resource(str, Enum):
    DASHBOARD = "dashboard"
    HAULS = "hauls"
    ORDERS = "orders"
    REPORTS = "reports"
    SETTINGS = "settings"
    TRUCKS = "trucks"


ALL_ROLES: FrozenSet[Role] = frozenset(Role)

# Resources missing from this table are open to every authenticated role.
RESTRICTED: Dict[Resource, FrozenSet[Role]] = {
    Resource.REPORTS: frozenset({Role.ADMIN}),
    Resource.TRUCKS: frozenset({Role.ADMIN, Role.DISPATCHER}),
}


def can_access(role: Optional[Union[Role, str]], resource: Union[Resource, str]) -> bool:
    if role is None:
        return False
    try:
        role = Role(role)
    except ValueError:
        return False
    try:
        resource = Resource(resource)
    except ValueError:
        return True
    return role in RESTRICTED.get(resource, ALL_ROLES)


def require_access(role: Optional[Union[Role, str]], resource: Union[Resource, str]) -> None:
    if not can_access(role, resource):
        role_value = role.value if isinstance(role, Role) else role
        resource_value = resource.value if isinstance(resource, Resource) else str(resource)
        raise AccessDenied(role_value, resource_value)


__all__ = ["ALL_ROLES", "RESTRICTED", "Resource", "Role", "can_access", "require_access"]
