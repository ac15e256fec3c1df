"""
Ingestion layer for the OVAL dictionary.

Downloads per-family OVAL feed files and parses them into Root documents:
- HttpClient: retries, backoff and circuit breaking over requests
- parse_oval: OVAL XML -> generator timestamp + Definitions
- build_targets / fetch_target: feed URLs per family and version
"""
from .feeds import FeedTarget, FetchResult, build_target, build_targets, fetch_target
from .http_client import CircuitBreaker, CircuitOpenError, HttpClient, RetryConfig
from .oval_parser import OvalDocument, parse_oval, parse_package_comment, parse_timestamp

__all__ = [
    "FeedTarget",
    "FetchResult",
    "build_target",
    "build_targets",
    "fetch_target",
    "CircuitBreaker",
    "CircuitOpenError",
    "HttpClient",
    "RetryConfig",
    "OvalDocument",
    "parse_oval",
    "parse_package_comment",
    "parse_timestamp",
]
