"""
Transfer Tracker

Completion hook between the HTTP layer and the retirement protocol.
"""

import logging
import threading
from typing import Any, BinaryIO, Callable, Iterator

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class TransferTracker:
    """
    Iterable wrapper around an open payload stream.

    Handed to the WSGI server as the response body. The server closes it
    when the response ends, successfully or not, and that close runs the
    completion callback once if the transfer counts:

    - at least one chunk was handed to the server, or
    - the payload was empty and iteration ran to the end.

    A tracker closed before producing anything (HEAD requests, clients
    that vanish before the first byte) never runs the callback.
    """

    def __init__(
        self,
        stream: BinaryIO,
        on_complete: Callable[[], Any],
        chunk_size: int = CHUNK_SIZE,
    ):
        self._stream = stream
        self._on_complete = on_complete
        self.chunk_size = chunk_size
        self._started = False
        self._exhausted = False
        self._closed = False
        self._lock = threading.Lock()

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self._stream.read(self.chunk_size)
            if not chunk:
                self._exhausted = True
                return
            self._started = True
            yield chunk

    @property
    def counts(self) -> bool:
        """Whether closing now would count the transfer."""
        return self._started or self._exhausted

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the stream and run the completion callback. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        try:
            self._stream.close()
        finally:
            if self.counts:
                try:
                    self._on_complete()
                except Exception as e:
                    logger.error(f"Completion hook failed after transfer: {e}", exc_info=True)
                    raise
            else:
                logger.info("Transfer closed before any data was sent, not counted")
