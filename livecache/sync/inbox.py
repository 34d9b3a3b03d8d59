"""Sequential delivery boundary between a change source and a manager."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from livecache.models.changes import Snapshot


@dataclass(frozen=True)
class Delivery:
    """A snapshot or an error, tagged with the attachment generation it came from."""

    generation: int
    snapshot: Snapshot | None = None
    error: BaseException | None = None


class Inbox:
    """Serialises deliveries to a single handler.

    A delivery posted while the handler is running (a source calling back
    from inside a listener, say) is queued and handled after the current one
    returns, so two deliveries never overlap.
    """

    def __init__(self, handler: Callable[[Delivery], None]) -> None:
        self._handler = handler
        self._pending: deque[Delivery] = deque()
        self._draining = False

    def post(self, delivery: Delivery) -> None:
        self._pending.append(delivery)
        if self._draining:
            return
        self._draining = True
        try:
            while self._pending:
                self._handler(self._pending.popleft())
        finally:
            self._draining = False

    def __len__(self) -> int:
        return len(self._pending)
