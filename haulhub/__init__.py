"""
HaulHub backend.

Core modules:
- lifecycle: haul status state machine
- pricing: material order quote calculator and catalogs
- access: role-based page gating
"""

from .access import can_access
from .lifecycle import HaulAction, HaulStatus, transition
from .pricing import compute_quote

__all__ = ["HaulAction", "HaulStatus", "can_access", "compute_quote", "transition"]
