"""Single-flight cache for an expensive, process-lifetime model handle.

The first caller starts the load in a worker thread and publishes the
pending future; concurrent callers await that same future instead of
starting their own load. A failed load is not cached, so the next call
retries.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlightCache(Generic[T]):
    """Lazily builds one value with *loader* and shares it across callers.

    Args:
        loader: Blocking factory; runs once via ``asyncio.to_thread``.
        name: Label used in log messages.
    """

    def __init__(self, loader: Callable[[], T], name: str = "model") -> None:
        self._loader = loader
        self._name = name
        self._value: T | None = None
        self._pending: asyncio.Future[T] | None = None

    @property
    def loaded(self) -> bool:
        return self._value is not None

    async def get(self) -> T:
        """Return the cached value, loading it on first demand."""
        if self._value is not None:
            return self._value

        if self._pending is None:
            logger.info("Loading %s", self._name)
            self._pending = asyncio.ensure_future(asyncio.to_thread(self._loader))
            self._pending.add_done_callback(self._on_done)

        # shield: one cancelled waiter must not cancel the shared load
        return await asyncio.shield(self._pending)

    def _on_done(self, future: "asyncio.Future[T]") -> None:
        if future.cancelled():
            self._pending = None
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Failed to load %s: %s", self._name, exc)
            self._pending = None
            return
        self._value = future.result()
        logger.info("%s ready", self._name)

    def clear(self) -> None:
        """Drop the cached value; the next ``get()`` loads again."""
        self._value = None
        self._pending = None
