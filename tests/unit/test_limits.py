"""Organization plan limit arithmetic."""

import pytest

from app.modules.organizations.limits import check_limit, is_at_limit, is_near_limit, usage_percentage


def test_limit_reached_rejects_next_facility():
    result = check_limit("facilities", limit=2, current=2)

    assert not result.allowed
    assert result.remaining == 0
    assert "facilities limit (2)" in result.message


@pytest.mark.parametrize("limit", [None, -1])
def test_unlimited(limit):
    result = check_limit("users", limit=limit, current=10_000, attempted=50)
    assert result.allowed
    assert result.limit is None


def test_attempting_more_than_remaining_is_rejected():
    assert check_limit("users", limit=10, current=8, attempted=2).allowed
    assert not check_limit("users", limit=10, current=8, attempted=3).allowed


def test_usage_thresholds():
    assert usage_percentage(10, 8) == 80
    assert usage_percentage(None, 8) == 0
    assert is_near_limit(10, 8)
    assert not is_at_limit(10, 9)
    assert is_at_limit(10, 12)
