from __future__ import annotations
import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from ..adapters.base import DocumentAdapter
from ..checker import ModuleChecker
from ..config import Settings
from ..models import Outcome, multi, single
from ..reporter import Reporter
from ..service import StoreService

BASIC_TOTAL = 11
EXTENDED_TOTAL = 14


@dataclass
class CrudContext:
    """State handed from one check to the next during a run."""

    ids: List[Optional[str]] = field(default_factory=lambda: [None, None, None])
    created_at: int = field(default_factory=lambda: int(time.time() * 1000))


def _now_ms() -> int:
    return int(time.time() * 1000)


def register_basic(checker: ModuleChecker, service: StoreService, ctx: CrudContext) -> None:
    """Count, insert, find, get by id, insert many and remove by id."""

    def adapter() -> DocumentAdapter:
        return service.adapter

    checker.register("COUNT", lambda: adapter().count(), lambda res: single(res == 0))

    def check_insert(doc: Any) -> Outcome:
        ctx.ids[0] = doc["_id"]
        return single(
            doc["_id"]
            and doc["title"] == "Hello"
            and doc["content"] == "Post content"
            and doc["votes"] == 3
            and doc["status"] is True
            and doc["createdAt"] == ctx.created_at
        )

    checker.register(
        "INSERT",
        lambda: adapter().insert({
            "title": "Hello",
            "content": "Post content",
            "votes": 3,
            "status": True,
            "createdAt": ctx.created_at,
        }),
        check_insert,
    )

    checker.register(
        "FIND",
        lambda: adapter().find(),
        lambda res: single(len(res) == 1 and res[0]["_id"] == ctx.ids[0]),
    )

    checker.register(
        "GET BY ID",
        lambda: adapter().find_by_id(ctx.ids[0]),
        lambda res: single(res is not None and res["_id"] == ctx.ids[0]),
    )

    checker.register("COUNT", lambda: adapter().count(), lambda res: single(res == 1))

    def check_insert_many(docs: Any) -> Outcome:
        first = docs[0] if len(docs) > 0 else {}
        last = docs[1] if len(docs) > 1 else {}
        ctx.ids[1] = first.get("_id")
        ctx.ids[2] = last.get("_id")
        return multi(
            len(docs) == 2,
            ctx.ids[1] and first.get("title") == "Second" and first.get("votes") == 8,
            ctx.ids[2] and last.get("title") == "Last" and last.get("votes") == 1 and last.get("status") is False,
        )

    checker.register(
        "INSERT MANY",
        lambda: adapter().insert_many([
            {"title": "Second", "content": "Second post content", "votes": 8, "status": True, "createdAt": _now_ms()},
            {"title": "Last", "content": "Last document", "votes": 1, "status": False, "createdAt": _now_ms()},
        ]),
        check_insert_many,
    )

    checker.register("COUNT", lambda: adapter().count(), lambda res: single(res == 3))

    checker.register(
        "REMOVE BY ID",
        lambda: adapter().remove_by_id(ctx.ids[0]),
        lambda res: single(res is not None and res["_id"] == ctx.ids[0]),
    )

    checker.register("COUNT", lambda: adapter().count(), lambda res: single(res == 2))


def register_extended(checker: ModuleChecker, service: StoreService, ctx: CrudContext) -> None:
    """Queries, paging, text search, updates and bulk removal.

    Expects the store as :func:`register_basic` leaves it: "Second" (8 votes)
    and "Last" (1 vote).
    """

    def adapter() -> DocumentAdapter:
        return service.adapter

    checker.register(
        "FIND by query",
        lambda: adapter().find({"query": {"title": "Last"}}),
        lambda res: single(len(res) == 1 and res[0]["_id"] == ctx.ids[2]),
    )

    checker.register(
        "FIND by limit, sort, query",
        lambda: adapter().find({"limit": 1, "sort": ["votes", "-title"], "offset": 1}),
        lambda res: single(len(res) == 1 and res[0]["_id"] == ctx.ids[1]),
    )

    checker.register(
        "FIND by query ($gt)",
        lambda: adapter().find({"query": {"votes": {"$gt": 2}}}),
        lambda res: single(len(res) == 1),
    )

    checker.register(
        "COUNT by query ($gt)",
        lambda: adapter().count({"query": {"votes": {"$gt": 2}}}),
        lambda res: single(res == 1),
    )

    checker.register(
        "FIND by text search",
        lambda: adapter().find({"search": "content"}),
        lambda res: multi(len(res) == 1, len(res) > 0 and res[0]["title"] == "Second"),
    )

    checker.register(
        "GET BY IDS",
        lambda: adapter().find_by_ids([ctx.ids[2], ctx.ids[1]]),
        lambda res: single(len(res) == 2),
    )

    def check_update(doc: Any) -> Outcome:
        return single(
            doc is not None
            and doc["_id"]
            and doc["title"] == "Last 2"
            and doc["content"] == "Last document"
            and doc["votes"] == 1
            and doc["status"] is True
            and doc.get("updatedAt")
        )

    checker.register(
        "UPDATE",
        lambda: adapter().update_by_id(ctx.ids[2], {"$set": {
            "title": "Last 2",
            "updatedAt": datetime.now(timezone.utc).isoformat(),
            "status": True,
        }}),
        check_update,
    )

    checker.register(
        "UPDATE BY QUERY",
        lambda: adapter().update_many({"votes": {"$lt": 5}}, {"$set": {"status": False}}),
        lambda count: single(count == 1),
    )

    checker.register(
        "REMOVE BY QUERY",
        lambda: adapter().remove_many({"votes": {"$lt": 5}}),
        lambda count: single(count == 1),
    )

    checker.register("COUNT", lambda: adapter().count(), lambda res: single(res == 1))

    checker.register(
        "REMOVE BY ID",
        lambda: adapter().remove_by_id(ctx.ids[1]),
        lambda doc: single(doc is not None and doc["_id"] == ctx.ids[1]),
    )

    checker.register("COUNT", lambda: adapter().count(), lambda res: single(res == 0))

    checker.register("CLEAR", lambda: adapter().clear(), lambda res: single(res == 0))


async def prepare_collection(service: StoreService) -> None:
    await service.adapter.clear()
    # Compound fulltext indexes are rejected by the hosted store.
    await service.adapter.create_fulltext_index(["title"])


class CrudSuite:
    """
    End-to-end CRUD checklist:
      - start the service (clear collection, fulltext index on title)
      - wait for post-connection setup
      - basic checks, then extended checks when enabled
      - stop the service
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def expected_total(self) -> int:
        if self.settings.expected_total is not None:
            return self.settings.expected_total
        return BASIC_TOTAL + (EXTENDED_TOTAL if self.settings.extended else 0)

    def service(self, adapter: DocumentAdapter) -> StoreService:
        return StoreService(
            name="posts",
            adapter=adapter,
            collection=self.settings.collection,
            after_connected=prepare_collection,
        )

    def build(
        self,
        service: StoreService,
        ctx: Optional[CrudContext] = None,
        reporter: Optional[Reporter] = None,
    ) -> ModuleChecker:
        ctx = ctx or CrudContext()
        checker = ModuleChecker(
            self.expected_total(),
            timeout_s=self.settings.check_timeout_s,
            reporter=reporter,
        )
        register_basic(checker, service, ctx)
        if self.settings.extended:
            register_extended(checker, service, ctx)
        return checker

    async def run(self, adapter: DocumentAdapter, reporter: Optional[Reporter] = None) -> ModuleChecker:
        service = self.service(adapter)
        checker = self.build(service, reporter=reporter)
        await service.start()
        try:
            await asyncio.sleep(self.settings.startup_delay_s)
            await checker.run()
        finally:
            await service.stop()
        return checker
