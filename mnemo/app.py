"""Workspace: wires the store, scheduler, reading pipeline and topics together."""

from __future__ import annotations

from dataclasses import dataclass

from mnemo.config import Settings, get_settings
from mnemo.core.maturity import MaturityModel
from mnemo.db.item_store import SqlItemStore
from mnemo.delivery.reading import ReadingPipeline
from mnemo.delivery.scheduler import Scheduler
from mnemo.delivery.topics import TopicService


@dataclass
class Workspace:
    """
    Everything one study session needs.

    Usage:
        ws = open_workspace()
        item = ws.scheduler.next_due_item(now)
        ...
        ws.close()
    """

    settings: Settings
    store: SqlItemStore
    scheduler: Scheduler
    reading: ReadingPipeline
    topics: TopicService

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> Workspace:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_workspace(settings: Settings | None = None, store: SqlItemStore | None = None) -> Workspace:
    """Open the store and rebuild the in-memory graph and topic tree from it."""
    settings = settings or get_settings()
    store = store or SqlItemStore.from_url(settings.resolved_database_url)
    scheduler = Scheduler(
        store,
        maturity=MaturityModel(settings.maturity_config()),
        config=settings.scheduler_config(),
    )
    return Workspace(
        settings=settings,
        store=store,
        scheduler=scheduler,
        reading=ReadingPipeline(scheduler),
        topics=TopicService(store, scheduler.topics),
    )
