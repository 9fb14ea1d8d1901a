"""Feed interfaces and data structures for the upstream reference-rate source."""

from .base import BaseRateFeed, FeedError, FeedParseError, FeedUnavailable
from .ecb_client import EcbAPIError, EcbClient, EcbClientConfig
from .ecb_provider import EcbRateFeed, parse_envelope
from .mock import MockRateFeed
from .schemas import RateRecord, normalize_code, normalize_symbols

__all__ = [
    "BaseRateFeed",
    "FeedError",
    "FeedParseError",
    "FeedUnavailable",
    "RateRecord",
    "normalize_code",
    "normalize_symbols",
    "EcbAPIError",
    "EcbClient",
    "EcbClientConfig",
    "EcbRateFeed",
    "MockRateFeed",
    "parse_envelope",
]
