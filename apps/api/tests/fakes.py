"""Scriptable tile transports shared by the tests."""

import threading
import time

from tilefarm.errors import TileTransportError
from tilefarm.transport import gradient_tile


class ScriptedTransport:
    """
    Returns gradient tiles, except for tiles listed as failing or short.

    Records every (endpoint, body) it is asked for.
    """

    def __init__(self, failures=(), short=(), errors=(), delay=0.0, gate=None):
        self.failures = set(failures)
        self.short = set(short)
        self.errors = set(errors)
        self.delay = delay
        self.gate = gate
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def fetch_tile(self, endpoint, body):
        key = (body["x"], body["y"])
        with self._lock:
            self.calls.append((endpoint, body))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                self.gate.wait(5)
            if self.delay:
                time.sleep(self.delay)
            if key in self.failures:
                raise TileTransportError(f"{endpoint} → HTTP 503", status_code=503)
            if key in self.errors:
                raise ConnectionResetError("connection reset by peer")
            if key in self.short:
                return b"\x00" * 5
            return gradient_tile(body["x"], body["y"], body["tile_size"])
        finally:
            with self._lock:
                self.in_flight -= 1
