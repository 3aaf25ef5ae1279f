from __future__ import annotations

import pytest

from haulhub.access import Resource, Role, can_access, require_access
from haulhub.errors import AccessDenied


def test_reports_are_admin_only() -> None:
    assert can_access("admin", "reports")
    assert not can_access("driver", "reports")
    assert not can_access(Role.DISPATCHER, Resource.REPORTS)


def test_trucks_for_admin_and_dispatcher() -> None:
    assert can_access("dispatcher", "trucks")
    assert can_access(Role.ADMIN, Resource.TRUCKS)
    assert not can_access(Role.DRIVER, Resource.TRUCKS)


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("resource", [Resource.DASHBOARD, Resource.HAULS, Resource.ORDERS, Resource.SETTINGS])
def test_open_pages_for_every_role(role: Role, resource: Resource) -> None:
    assert can_access(role, resource)


@pytest.mark.parametrize("resource", list(Resource))
def test_anonymous_is_always_denied(resource: Resource) -> None:
    assert not can_access(None, resource)


def test_unknown_role_is_denied() -> None:
    assert not can_access("superuser", "dashboard")


def test_require_access_raises() -> None:
    require_access("admin", Resource.REPORTS)
    with pytest.raises(AccessDenied) as excinfo:
        require_access(Role.DRIVER, Resource.REPORTS)
    assert excinfo.value.role == "driver"
    assert excinfo.value.resource == "reports"

    with pytest.raises(AccessDenied) as excinfo:
        require_access(None, "trucks")
    assert excinfo.value.role is None
