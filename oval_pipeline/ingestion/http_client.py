"""
HTTP utilities for OVAL feed downloads.

Provides retries with exponential backoff, Retry-After handling and a
circuit breaker. Responses are never cached; every run re-downloads and
lets the fetch_meta timestamp decide whether anything changed.
"""
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, Optional

import requests

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class CircuitOpenError(RuntimeError):
    """Raised when the circuit breaker is open."""


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0
    jitter_ratio: float = 0.3
    timeout_seconds: float = 120.0


class CircuitBreaker:
    """Stops calling a feed host after repeated failures."""

    def __init__(self, failure_threshold: int = 5, open_seconds: int = 300):
        self.failure_threshold = failure_threshold
        self.open_seconds = open_seconds
        self._failure_count = 0
        self._opened_at: Optional[float] = None

    def can_attempt(self) -> bool:
        if self._opened_at is None:
            return True
        return time.monotonic() - self._opened_at >= self.open_seconds

    def record_success(self) -> None:
        self._failure_count = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._failure_count += 1
        if self._failure_count >= self.failure_threshold:
            self._opened_at = time.monotonic()


class HttpClient:
    """HTTP client with retries and circuit breaking."""

    def __init__(
        self,
        source_id: str = "oval",
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        proxy: Optional[str] = None,
    ):
        self.source_id = source_id
        self.session = requests.Session()
        if proxy:
            self.session.proxies.update({"http": proxy, "https": proxy})
        self.retry_config = retry_config or RetryConfig()
        self.circuit_breaker = circuit_breaker or CircuitBreaker()

    def get_bytes(self, url: str, headers: Optional[Dict[str, str]] = None) -> bytes:
        """Download a URL and return the raw body."""
        response = self._request("GET", url, headers=headers)
        return response.content

    def _request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        if not self.circuit_breaker.can_attempt():
            raise CircuitOpenError(f"{self.source_id} circuit open")

        last_error: Optional[Exception] = None

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                response = self.session.request(
                    method,
                    url,
                    headers=headers,
                    timeout=self.retry_config.timeout_seconds,
                )
            except requests.RequestException as exc:
                last_error = exc
                if attempt < self.retry_config.max_retries:
                    logger.warning(f"Request to {url} failed ({exc}), retrying")
                    self._sleep_with_backoff(attempt, None)
                    continue
                self.circuit_breaker.record_failure()
                raise

            if response.status_code in RETRYABLE_STATUS_CODES:
                last_error = requests.HTTPError(f"HTTP {response.status_code}")
                if attempt < self.retry_config.max_retries:
                    self._sleep_with_backoff(attempt, self._retry_after_seconds(response))
                    continue
                self.circuit_breaker.record_failure()
                response.raise_for_status()

            if response.status_code >= 400:
                self.circuit_breaker.record_failure()
                response.raise_for_status()

            self.circuit_breaker.record_success()
            return response

        self.circuit_breaker.record_failure()
        raise last_error if last_error else RuntimeError("HTTP request failed")

    def _retry_after_seconds(self, response: requests.Response) -> Optional[float]:
        value = response.headers.get("Retry-After")
        if not value:
            return None

        try:
            return float(value)
        except ValueError:
            try:
                dt = parsedate_to_datetime(value)
                if dt.tzinfo is None:
                    dt = dt.replace(tzinfo=timezone.utc)
                return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())
            except (TypeError, ValueError):
                logger.debug("Unable to parse Retry-After header: %s", value)
                return None

    def _sleep_with_backoff(self, attempt: int, retry_after: Optional[float]) -> None:
        base = min(
            self.retry_config.max_delay_seconds,
            self.retry_config.base_delay_seconds * (2 ** attempt),
        )
        delay = base + base * random.uniform(0, self.retry_config.jitter_ratio)
        if retry_after is not None:
            delay = max(delay, retry_after)
        time.sleep(delay)
