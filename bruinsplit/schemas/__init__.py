"""
Pydantic schema exports.
Provides request/response models for API endpoints.
"""
from bruinsplit.schemas.call import (
    OfferRequest,
    AnswerRequest,
    IceCandidateRequest,
    SuccessResponse,
    JoinCallResponse,
    CallStatusResponse,
    CallInfoResponse,
)

__all__ = [
    "OfferRequest",
    "AnswerRequest",
    "IceCandidateRequest",
    "SuccessResponse",
    "JoinCallResponse",
    "CallStatusResponse",
    "CallInfoResponse",
]
