import logging
import threading
from typing import BinaryIO, Callable, List, Optional

from Application.helpers.exceptions import UploadCancelled

logger = logging.getLogger(__name__)


class CancelToken:
    """Set once when the caller is gone; shared between the event loop and worker threads."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.debug("Cancel callback %r failed", callback, exc_info=True)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise UploadCancelled("Upload cancelled by client")


class CancellableReader:
    """
    File-like request body that stops yielding bytes once ``token`` is cancelled.

    requests hands the object to http.client, which pulls it block by block, so
    a cancelled upload aborts at the next block instead of finishing the send.
    """

    def __init__(self, raw: BinaryIO, token: Optional[CancelToken], length: int):
        self._raw = raw
        self._token = token
        self._length = length
        self.name = getattr(raw, "name", None)

    def __len__(self) -> int:
        return self._length

    def read(self, size: int = -1) -> bytes:
        if self._token is not None:
            self._token.raise_if_cancelled()
        return self._raw.read(size)
