"""
Rate limiting utilities.
In-memory sliding window, keyed by client identifier (IP address).
"""

import threading
import time
from collections import defaultdict, deque
from typing import Callable


class SlidingWindowRateLimiter:
    """
    Allows at most `limit` requests per client within the trailing `window` seconds.
    Thread-safe; Flask may serve requests from several threads.
    """

    def __init__(self, limit: int, window: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self.clock = clock
        self.requests: dict[str, deque] = defaultdict(deque)
        self.lock = threading.Lock()

    def _evict(self, client_requests: deque, now: float):
        while client_requests and client_requests[0] <= now - self.window:
            client_requests.popleft()

    def is_allowed(self, client_id: str) -> bool:
        """Record the request and return True, or return False if over the cap."""
        with self.lock:
            now = self.clock()
            client_requests = self.requests[client_id]
            self._evict(client_requests, now)

            if len(client_requests) >= self.limit:
                return False

            client_requests.append(now)
            return True

    def get_remaining(self, client_id: str) -> int:
        with self.lock:
            client_requests = self.requests.get(client_id)
            if not client_requests:
                return self.limit
            self._evict(client_requests, self.clock())
            return max(0, self.limit - len(client_requests))

    def retry_after(self, client_id: str) -> int:
        """Seconds until the oldest request in the window expires."""
        with self.lock:
            client_requests = self.requests.get(client_id)
            if not client_requests:
                return 0
            remaining = client_requests[0] + self.window - self.clock()
            return max(0, int(remaining + 0.999))

    def reset_client(self, client_id: str | None = None):
        """Forget one client, or every client when no id is given."""
        with self.lock:
            if client_id is None:
                self.requests.clear()
            else:
                self.requests.pop(client_id, None)
