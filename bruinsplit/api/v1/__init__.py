"""
API v1 router exports.
Provides API endpoint routers.
"""
from bruinsplit.api.v1 import calls

__all__ = [
    "calls",
]
