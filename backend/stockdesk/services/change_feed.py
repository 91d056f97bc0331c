# Overview: Per-table change notifications published after commit, plus an id-keyed cache patched from them.

"""
Change Feed

subscribe(table, callback, event="*") registers interest in inserts, updates
and deletes on one table. Changes are collected from ORM flushes and
delivered only once the transaction commits; a rollback discards them.

A soft delete is published as an "update" whose record carries deleted_at.

Writes that bypass the ORM unit of work (bulk UPDATE statements) must call
record_change() themselves; stock_service does this for stock adjustments.

EntityCache keeps a normalized {id: record} view of one table and patches it
from individual deltas instead of re-fetching the whole list.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Iterable

from flask import current_app
from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session

from ..models.base import row_snapshot


EVENTS = ("insert", "update", "delete", "*")

_PENDING_KEY = "stockdesk.pending_changes"


@dataclass(frozen=True)
class Change:
    table: str
    event: str
    record_id: str
    record: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "event": self.event,
            "record_id": self.record_id,
            "record": self.record,
        }


_subscribers: dict[str, list[tuple[str, Callable[[Change], None]]]] = defaultdict(list)


def subscribe(table: str, callback: Callable[[Change], None], event: str = "*") -> Callable[[], None]:
    """
    Register `callback` for changes on `table`.

    Returns a function that removes the subscription.
    """
    if event not in EVENTS:
        raise ValueError(f"event must be one of: {', '.join(EVENTS)}")

    entry = (event, callback)
    _subscribers[table].append(entry)

    def unsubscribe() -> None:
        if entry in _subscribers[table]:
            _subscribers[table].remove(entry)

    return unsubscribe


def clear_subscribers() -> None:
    _subscribers.clear()


def record_change(session: Session, table: str, event: str, record_id: str, record: dict | None = None) -> None:
    """Queue a change on the session; it is published when the session commits."""
    session.info.setdefault(_PENDING_KEY, []).append(
        Change(table=table, event=event, record_id=record_id, record=record or {})
    )


def publish(changes: Iterable[Change]) -> None:
    for change in changes:
        for wanted, callback in list(_subscribers.get(change.table, ())):
            if wanted != "*" and wanted != change.event:
                continue
            try:
                callback(change)
            except Exception:
                current_app.logger.exception(
                    "Change feed subscriber failed for %s %s %s",
                    change.table, change.event, change.record_id,
                )


def _table_of(obj) -> str | None:
    return getattr(obj, "__tablename__", None)


def _after_flush(session: Session, flush_context) -> None:
    for obj in session.new:
        table = _table_of(obj)
        if table:
            record_change(session, table, "insert", obj.id, row_snapshot(obj))

    for obj in session.dirty:
        table = _table_of(obj)
        if table and session.is_modified(obj, include_collections=False):
            record_change(session, table, "update", obj.id, row_snapshot(obj))

    for obj in session.deleted:
        table = _table_of(obj)
        if table:
            record_change(session, table, "delete", obj.id, row_snapshot(obj))


def _after_commit(session: Session) -> None:
    changes = session.info.pop(_PENDING_KEY, [])
    if changes:
        publish(changes)


def _after_rollback(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)


def init_change_feed() -> None:
    """Attach the session listeners once per process."""
    if sa_event.contains(Session, "after_flush", _after_flush):
        return
    sa_event.listen(Session, "after_flush", _after_flush)
    sa_event.listen(Session, "after_commit", _after_commit)
    sa_event.listen(Session, "after_rollback", _after_rollback)


class EntityCache:
    """
    Normalized client-side list state for one table.

    load() seeds it from a full query once; afterwards apply() patches it from
    each Change. Inserts and updates are merged by id; deletes and
    soft-deleted updates evict the record.
    """

    def __init__(self, table: str):
        self.table = table
        self._records: dict[str, dict] = {}
        self._unsubscribe: Callable[[], None] | None = None

    def load(self, records: Iterable[dict]) -> "EntityCache":
        self._records = {r["id"]: dict(r) for r in records}
        return self

    def attach(self) -> "EntityCache":
        if self._unsubscribe is None:
            self._unsubscribe = subscribe(self.table, self.apply)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def apply(self, change: Change) -> None:
        if change.table != self.table:
            return
        if change.event == "delete" or change.record.get("deleted_at"):
            self._records.pop(change.record_id, None)
            return
        current = self._records.get(change.record_id, {})
        merged = {**current, **change.record}
        merged["id"] = change.record_id
        self._records[change.record_id] = merged

    def get(self, record_id: str) -> dict | None:
        return self._records.get(record_id)

    def values(self) -> list[dict]:
        return list(self._records.values())

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)
