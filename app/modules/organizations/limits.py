"""
Plan limit arithmetic for organizations.

A limit of None (or the legacy -1) means unlimited. Everything here is pure so
routes can decide before issuing any write.
"""

from typing import Optional

from app.modules.organizations.schemas import LimitCheck

UNLIMITED = -1


def _is_unlimited(limit: Optional[int]) -> bool:
    return limit is None or limit == UNLIMITED


def check_limit(limit_type: str, limit: Optional[int], current: int, attempted: int = 1) -> LimitCheck:
    """Allowed when at least `attempted` slots remain under the limit."""
    if _is_unlimited(limit):
        return LimitCheck(limit_type=limit_type, allowed=True, limit=None, current=current)

    remaining = limit - current
    if remaining < attempted:
        return LimitCheck(
            limit_type=limit_type,
            allowed=False,
            limit=limit,
            current=current,
            remaining=max(0, remaining),
            message=f"You've reached your {limit_type} limit ({limit}). Please upgrade your plan to add more.",
        )
    return LimitCheck(limit_type=limit_type, allowed=True, limit=limit, current=current, remaining=remaining)


def usage_percentage(limit: Optional[int], current: int) -> int:
    if _is_unlimited(limit) or not limit:
        return 0
    return min(100, round(current / limit * 100))


def is_near_limit(limit: Optional[int], current: int, threshold: int = 80) -> bool:
    return usage_percentage(limit, current) >= threshold


def is_at_limit(limit: Optional[int], current: int) -> bool:
    return usage_percentage(limit, current) >= 100
