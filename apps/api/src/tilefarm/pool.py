"""Round-robin pool of rendering endpoints."""

import logging
import threading
from typing import Iterable, List

from .errors import ConfigurationError

log = logging.getLogger(__name__)


class EndpointPool:
    """
    Fixed, ordered list of endpoint addresses with a rotation cursor.

    One pool is shared by every dispatch in a render pass so rotation is
    global: each call to next() returns the endpoint after the previous one,
    wrapping around at the end.
    """

    def __init__(self, endpoints: Iterable[str]):
        cleaned: List[str] = []
        for endpoint in endpoints:
            address = (endpoint or "").strip().rstrip("/")
            if not address:
                raise ConfigurationError("Endpoint addresses must not be blank")
            cleaned.append(address)
        if not cleaned:
            raise ConfigurationError("Endpoint pool must contain at least one endpoint")

        self._endpoints = tuple(cleaned)
        self._cursor = 0
        self._lock = threading.Lock()
        log.debug(f"Endpoint pool ready with {len(self._endpoints)} endpoint(s)")

    @property
    def endpoints(self) -> tuple:
        return self._endpoints

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._endpoints)

    def next(self) -> str:
        """Return the endpoint under the cursor and advance it."""
        with self._lock:
            endpoint = self._endpoints[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._endpoints)
        return endpoint
