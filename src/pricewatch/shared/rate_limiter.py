# src/pricewatch/shared/rate_limiter.py
"""
Rate Limiting - Upstream Politeness and Abuse Prevention

This module provides two limiters:
- HostThrottle spaces out consecutive requests to the same upstream host so
  scraped sites and free APIs do not throttle or block the service.
- RateLimiter applies per-user sliding-window limits to bot commands, with
  temporary blocking for excessive usage.

Files that USE this module:
- pricewatch.adapters.providers.base (HostThrottle around every API request)
- pricewatch.adapters.crawlers.base (HostThrottle around every page fetch)
- pricewatch.adapters.telegram.handlers (RateLimiter and RATE_LIMITS for commands)
- pricewatch.app (constructs one HostThrottle and one RateLimiter)

Files that this module USES:
- None (pure utility implementation)
"""
import threading
import time
from typing import Callable, Dict, Optional
from collections import defaultdict, deque
from dataclasses import dataclass
from urllib.parse import urlparse


class HostThrottle:
    """
    Enforce a minimum delay between requests to the same host.

    Source adapters run in worker threads, so waiting is blocking and guarded
    by a lock per host; requests to different hosts never wait on each other.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            min_interval: Minimum seconds between two requests to one host
            clock: Monotonic clock (injectable for tests)
            sleep: Sleep function (injectable for tests)
        """
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request: Dict[str, float] = {}
        self._host_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._registry_lock = threading.Lock()

    def _lock_for(self, host: str) -> threading.Lock:
        with self._registry_lock:
            return self._host_locks[host]

    def wait(self, url: str) -> float:
        """
        Block until a request to the URL's host is allowed, then claim the slot.

        Args:
            url: Full request URL

        Returns:
            Seconds spent waiting
        """
        host = urlparse(url).netloc.lower() or url
        with self._lock_for(host):
            waited = 0.0
            last = self._last_request.get(host)
            if last is not None and self.min_interval > 0:
                remaining = self.min_interval - (self._clock() - last)
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
            self._last_request[host] = self._clock()
            return waited


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""
    max_requests: int
    time_window: int  # in seconds
    block_duration: int = 300  # 5 minutes default


class RateLimiter:
    """Simple in-memory rate limiter."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._requests: Dict[str, deque] = defaultdict(deque)
        self._blocked: Dict[str, float] = {}

    def is_allowed(self, identifier: str, config: RateLimitConfig) -> bool:
        """
        Check if a request is allowed for the given identifier.

        Args:
            identifier: Unique identifier (e.g., user_id)
            config: Rate limit configuration

        Returns:
            True if request is allowed, False if rate limited
        """
        now = self._clock()

        if identifier in self._blocked:
            if now < self._blocked[identifier]:
                return False
            del self._blocked[identifier]

        cutoff = now - config.time_window
        requests = self._requests[identifier]
        while requests and requests[0] < cutoff:
            requests.popleft()

        if len(requests) >= config.max_requests:
            self._blocked[identifier] = now + config.block_duration
            return False

        requests.append(now)
        return True

    def get_reset_time(self, identifier: str, config: RateLimitConfig) -> Optional[float]:
        """
        Get when the rate limit window resets for an identifier.

        Returns:
            Unix timestamp when rate limit resets, or None if not currently limited
        """
        if identifier in self._blocked:
            return self._blocked[identifier]

        requests = self._requests[identifier]
        if not requests:
            return None
        return requests[0] + config.time_window


# Predefined rate limit configurations
RATE_LIMITS = {
    "user_command": RateLimitConfig(max_requests=10, time_window=60),  # 10 requests per minute
    "admin_command": RateLimitConfig(max_requests=30, time_window=60),  # 30 requests per minute
}
