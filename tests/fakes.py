from __future__ import annotations
import asyncio
import itertools
from contextlib import asynccontextmanager
from types import SimpleNamespace

from app.core.exceptions import NotFound, PersistenceError
from app.models.split_record import SplitParticipant, SplitRecord
from app.services.split_store import stamp_participant

RECORD_FIELDS = (
    "original_expense_id", "group_id", "total_amount", "strategy",
    "description", "status", "created_by", "created_at",
)
PARTICIPANT_FIELDS = (
    "user_id", "amount", "percentage", "status", "decline_reason",
    "confirmed_at", "declined_at", "settled_at",
)


class InMemorySplitStore:
    """SplitStore double. Every read hands out a fresh copy, like rows from a
    database, and yields to the loop so concurrent transitions interleave."""

    def __init__(self):
        self.records: dict[int, SimpleNamespace] = {}
        self.participants: dict[int, list[SimpleNamespace]] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self):
        async with self._lock:
            yield

    async def create_split_record(self, record, participants):
        split_id = next(self._ids)
        self.records[split_id] = SimpleNamespace(id=split_id, **{f: getattr(record, f) for f in RECORD_FIELDS})
        self.participants[split_id] = [
            SimpleNamespace(id=index, split_id=split_id, **{f: getattr(p, f, None) for f in PARTICIPANT_FIELDS})
            for index, p in enumerate(participants, start=1)
        ]
        return split_id

    def _materialize(self, split_id):
        rows = [SplitParticipant(**vars(p)) for p in self.participants[split_id]]
        return SplitRecord(**vars(self.records[split_id]), participants=rows)

    async def get_split_record(self, split_id, for_update=False):
        await asyncio.sleep(0)
        if split_id not in self.records:
            return None
        return self._materialize(split_id)

    async def list_split_records(self, group_id, status=None):
        return [
            self._materialize(split_id)
            for split_id, r in sorted(self.records.items(), reverse=True)
            if r.group_id == group_id and (status is None or r.status == status)
        ]

    async def update_participant_status(self, split_id, user_id, status, timestamp, reason=None):
        await asyncio.sleep(0)
        for p in self.participants.get(split_id, []):
            if p.user_id == user_id:
                stamp_participant(p, status, timestamp, reason)
                return
        raise NotFound("participant", user_id, split_id=split_id)

    async def update_record_status(self, split_id, status):
        await asyncio.sleep(0)
        self.records[split_id].status = status


class UnlockedSplitStore(InMemorySplitStore):
    """Same store without the transaction lock."""

    @asynccontextmanager
    async def transaction(self):
        yield


class FailingSplitStore(InMemorySplitStore):
    async def create_split_record(self, record, participants):
        raise PersistenceError("database unavailable", operation="create_split_record")


class FakeTemplates:
    def __init__(self, *templates):
        self.templates = {t.id: t for t in templates}

    async def get_template(self, template_id):
        try:
            return self.templates[template_id]
        except KeyError:
            raise NotFound("template", template_id) from None
