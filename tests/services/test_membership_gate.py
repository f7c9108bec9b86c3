"""
Unit tests for MembershipGate.
"""
import pytest

from bruinsplit.core.exceptions import Forbidden, RideNotFound
from bruinsplit.services.membership_gate import MembershipGate


class TestMembershipGate:
    """Gate decisions against the membership oracle."""

    async def test_member_passes(self, oracle):
        gate = MembershipGate(oracle)

        await gate.require_member("r1", "b")

    async def test_non_member_forbidden_with_message(self, oracle):
        gate = MembershipGate(oracle)

        with pytest.raises(Forbidden) as exc_info:
            await gate.require_member("r1", "z", "Target user is not a confirmed member of this ride")

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Target user is not a confirmed member of this ride"

    async def test_missing_ride_propagates(self, oracle):
        gate = MembershipGate(oracle)

        with pytest.raises(RideNotFound) as exc_info:
            await gate.require_member("nope", "a")

        assert exc_info.value.status_code == 404

    async def test_oracle_failure_propagates(self, mocker):
        oracle = mocker.AsyncMock()
        oracle.verify_ride_membership.side_effect = ConnectionError("db down")
        gate = MembershipGate(oracle)

        with pytest.raises(ConnectionError):
            await gate.require_member("r1", "a")

    async def test_confirmed_members(self, oracle):
        gate = MembershipGate(oracle)

        assert await gate.confirmed_members("r2") == ["z"]
