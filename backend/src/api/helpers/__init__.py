"""API helper utilities."""
from api.helpers.conflict_check import check_optimistic_lock

__all__ = [
    "check_optimistic_lock",
]
