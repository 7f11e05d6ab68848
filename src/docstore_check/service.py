from __future__ import annotations
import logging
from typing import Awaitable, Callable, Optional

from .adapters.base import DocumentAdapter

log = logging.getLogger("docstore.service")


class StoreService:
    """Hosts a document adapter with an asynchronous start/stop lifecycle."""

    def __init__(
        self,
        name: str,
        adapter: DocumentAdapter,
        collection: str = "posts",
        after_connected: Optional[Callable[["StoreService"], Awaitable[None]]] = None,
    ) -> None:
        self.name = name
        self.adapter = adapter
        self.collection = collection
        self._after_connected = after_connected
        self.started = False

    async def start(self) -> None:
        log.info("Starting service %s (collection %s)", self.name, self.collection)
        await self.adapter.connect()
        if self._after_connected is not None:
            try:
                await self._after_connected(self)
            except Exception:
                log.error("An error occurred in after_connected() of service %s", self.name)
                await self.adapter.disconnect()
                raise
        self.started = True
        log.info("Service %s started", self.name)

    async def stop(self) -> None:
        if not self.started:
            return
        await self.adapter.disconnect()
        self.started = False
        log.info("Service %s stopped", self.name)

    async def __aenter__(self) -> "StoreService":
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()
