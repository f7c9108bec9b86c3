"""
Service layer exports.
Provides business logic for the application.
"""
from bruinsplit.services.call_service import SignalingService
from bruinsplit.services.membership_gate import MembershipGate, MembershipOracle

__all__ = [
    "SignalingService",
    "MembershipGate",
    "MembershipOracle",
]
