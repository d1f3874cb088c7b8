"""Single-flight coordinator for manifest publication.

Publishing the manifest means an IPFS add followed by an IPNS publish,
which can take far longer than a segment upload.  ``SyncGuard`` makes
sure only one publication runs at a time.  A request that arrives while
another is running is dropped rather than queued: every publication is a
snapshot of the current manifest, so the next one supersedes it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class SyncGuard:
    """At-most-one-in-flight, drop-on-busy publication gate."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight_cursor: int | None = None
        self._last_requested_cursor = 0
        self._published = 0
        self._dropped = 0

    def try_publish(self, cursor: int, publish_fn: Callable[[], None]) -> bool:
        """
        Run *publish_fn* unless another publication is already in flight.

        Returns True when *publish_fn* ran (whether or not it raised),
        False when the request was dropped.  The in-flight marker is
        released on every exit path and exceptions propagate to the caller.
        """
        with self._lock:
            if self._in_flight_cursor is not None:
                self._last_requested_cursor = cursor
                self._dropped += 1
                logger.info(
                    "Publication for cursor %d dropped; cursor %d still in flight.",
                    cursor,
                    self._in_flight_cursor,
                )
                return False
            self._in_flight_cursor = cursor

        try:
            publish_fn()
        finally:
            with self._lock:
                self._in_flight_cursor = None
                self._published += 1
        return True

    def has_pending_work(self, current_cursor: int) -> bool:
        """Return True if the last deferred request differs from *current_cursor*."""
        with self._lock:
            return self._last_requested_cursor != current_cursor

    # ---- status ----

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight_cursor is not None

    @property
    def in_flight_cursor(self) -> int | None:
        with self._lock:
            return self._in_flight_cursor

    @property
    def last_requested_cursor(self) -> int:
        with self._lock:
            return self._last_requested_cursor

    @property
    def published_count(self) -> int:
        """Return how many publications have run (successful or not)."""
        with self._lock:
            return self._published

    @property
    def dropped_count(self) -> int:
        with self._lock:
            return self._dropped
