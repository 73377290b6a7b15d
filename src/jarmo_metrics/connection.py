"""Connection interface consumed by the interceptor."""

from abc import ABC, abstractmethod
from typing import Callable


class Connection(ABC):
    """
    A client connection as seen by the interceptor.

    Host adapters implement this for their server library. The interceptor
    never owns the underlying connection; it only reads the live connection
    count and listens for the disconnect signal.
    """

    @abstractmethod
    def live_count(self) -> int:
        """Number of clients currently connected to the host server."""

    @abstractmethod
    def on_disconnect(self, handler: Callable[[], None]) -> None:
        """Call ``handler`` when this connection goes away."""
