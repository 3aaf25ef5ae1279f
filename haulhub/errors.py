"""Domain errors raised by the haul lifecycle, pricing and access helpers."""

from __future__ import annotations

from typing import Optional


class HaulHubError(Exception):
    """Base class for recoverable domain errors."""


class LifecycleError(HaulHubError):
    pass


class InvalidTransition(LifecycleError):
    def __init__(self, current_status: str, action: str) -> None:
        self.current_status = current_status
        self.action = action
        super().__init__(f"Cannot {action} a haul that is {current_status}")


class InvalidAssignment(LifecycleError):
    def __init__(self, current_status: str, message: str = "A driver is required to assign a haul") -> None:
        self.current_status = current_status
        super().__init__(message)


class AccessDenied(HaulHubError):
    def __init__(self, role: Optional[str], resource: str) -> None:
        self.role = role
        self.resource = resource
        who = role or "anonymous"
        super().__init__(f"Role '{who}' may not access {resource}")


class UnknownCatalogItem(HaulHubError):
    def __init__(self, kind: str, item_id: str) -> None:
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"Unknown {kind} '{item_id}'")


__all__ = [
    "AccessDenied",
    "HaulHubError",
    "InvalidAssignment",
    "InvalidTransition",
    "LifecycleError",
    "UnknownCatalogItem",
]
