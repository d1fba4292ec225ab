"""
Read caches and request sequencing for the dashboard controller.

Server data is never owned here: a ``ReadThroughCache`` only remembers the
last response until someone calls ``invalidate()``, and ``RequestSequencer``
lets a loader tell whether a newer load has started since it began.
"""
import itertools
import logging
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReadThroughCache(Generic[T]):
    def __init__(self, name: str, loader: Callable[[], Awaitable[T]]):
        self.name = name
        self._loader = loader
        self._value: Optional[T] = None
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def get(self, refresh: bool = False) -> T:
        if self._loaded and not refresh:
            return self._value

        value = await self._loader()
        self._value = value
        self._loaded = True
        return value

    def peek(self) -> Optional[T]:
        """Cached value without triggering a load."""
        return self._value if self._loaded else None

    def invalidate(self) -> None:
        logger.debug("Invalidating %s cache", self.name)
        self._value = None
        self._loaded = False


class RequestSequencer:
    """Monotonic tickets per channel; only the newest ticket may render."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: Dict[str, int] = {}

    def issue(self, channel: str) -> int:
        ticket = next(self._counter)
        self._latest[channel] = ticket
        return ticket

    def is_current(self, channel: str, ticket: int) -> bool:
        return self._latest.get(channel) == ticket

    def latest(self, channel: str) -> Optional[int]:
        return self._latest.get(channel)
