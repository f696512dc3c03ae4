"""HTTP strategy adapter.

Delegates the target-position decision to a remote service so strategies
written outside Python can be validated with the same harness. Handles
retries, timeouts and request statistics.

Endpoint contract::

    POST {base_url}/target_position
    {"symbol": ..., "bars": [{"time", "price", "volume"}, ...],
     "parameters": {...}, "position": 0.0}
    -> {"target_position": 100.0, "reason": "optional"}
"""

from dataclasses import dataclass
from typing import Optional
import logging
import time

import requests

from .strategy import ParameterSet, Strategy


@dataclass
class TargetResponse:
    """Response from /target_position endpoint."""

    target_position: float
    reason: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "TargetResponse":
        """Create TargetResponse from API response dictionary."""
        return cls(
            target_position=data["target_position"],
            reason=data.get("reason", "")
        )


class HttpStrategy(Strategy):
    """Strategy whose decisions come from an HTTP endpoint.

    Request failures after all retries propagate as requests exceptions;
    the strategy runner reports them as StrategyError.
    """

    name = "http"

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        symbol: str = "",
        lookback_bars: int = 200,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        logger: Optional[logging.Logger] = None
    ):
        """Initialize HTTP strategy.

        Args:
            base_url: Base URL of the API (e.g., "http://localhost:8000")
            symbol: Symbol label sent with every request
            lookback_bars: Number of most recent bars sent per request
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per request
            retry_delay: Base delay between retries in seconds (doubles each retry)
            logger: Optional logger for request/response logging
        """
        self.base_url = base_url.rstrip("/")
        self.symbol = symbol
        self.lookback_bars = lookback_bars
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.logger = logger or logging.getLogger(__name__)

        # Reuse connections across bars
        self.session = requests.Session()

        # Stats tracking
        self.total_requests = 0
        self.failed_requests = 0
        self.total_retry_count = 0

    def target_position(self, history, parameters: ParameterSet, position: float) -> float:
        payload = {
            "symbol": self.symbol,
            "bars": [bar.to_dict() for bar in history[-self.lookback_bars:]],
            "parameters": parameters.to_dict(),
            "position": position
        }
        return self._request(payload).target_position

    def _request(self, payload: dict) -> TargetResponse:
        """Make POST request to /target_position with retries.

        Raises:
            requests.RequestException: If request fails after retries
        """
        url = f"{self.base_url}/target_position"
        self.total_requests += 1

        for attempt in range(self.max_retries):
            try:
                self.logger.debug(f"POST /target_position (attempt {attempt + 1}/{self.max_retries})")

                response = self.session.post(url, json=payload, timeout=self.timeout)
                response.raise_for_status()

                target = TargetResponse.from_dict(response.json())
                self.logger.debug(f"Target: {target.target_position} {target.reason}")
                return target

            except requests.exceptions.RequestException as e:
                self.logger.warning(f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}")

                if attempt < self.max_retries - 1:
                    # Retry with exponential backoff
                    delay = self.retry_delay * (2 ** attempt)
                    self.logger.debug(f"Retrying in {delay:.1f}s...")
                    time.sleep(delay)
                    self.total_retry_count += 1
                else:
                    self.failed_requests += 1
                    self.logger.error(f"Request failed after {self.max_retries} attempts")
                    raise

        raise RuntimeError("max_retries must be >= 1")

    def get_stats(self) -> dict:
        """Get client statistics."""
        return {
            "total_requests": self.total_requests,
            "failed_requests": self.failed_requests,
            "total_retry_count": self.total_retry_count,
            "success_rate": (self.total_requests - self.failed_requests) / max(self.total_requests, 1)
        }

    def close(self):
        """Close the HTTP session and release resources."""
        self.session.close()
