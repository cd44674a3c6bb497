"""
Adapters layer - External integrations (record store, rate limiting).
"""

from .mock_record_store import MockRecordStore
from .rate_limiter import RateLimitDecision, RateLimiter
from .record_store import RecordStoreProtocol, RestRecordStore

__all__ = [
    "MockRecordStore",
    "RateLimitDecision",
    "RateLimiter",
    "RecordStoreProtocol",
    "RestRecordStore",
]
