import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncContextManager, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFound, PersistenceError
from app.db.session import begin_write
from app.models.split_record import SplitParticipant, SplitRecord, SplitStatus

logger = logging.getLogger(__name__)


class SplitStore(Protocol):
    """Persistence boundary used by the split lifecycle service.

    Writes happen inside ``transaction()``; leaving the block commits, an
    exception rolls everything back. ``get_split_record(..., for_update=True)``
    must serialize concurrent transitions on the same record: no other
    transition may read the record until this transaction ends.
    """

    def transaction(self) -> AsyncContextManager[None]: ...

    async def create_split_record(self, record: SplitRecord, participants: List[SplitParticipant]) -> int: ...

    async def get_split_record(self, split_id: int, for_update: bool = False) -> Optional[SplitRecord]: ...

    async def list_split_records(self, group_id: int, status: Optional[SplitStatus] = None) -> List[SplitRecord]: ...

    async def update_participant_status(
        self,
        split_id: int,
        user_id: int,
        status: SplitStatus,
        timestamp: datetime,
        reason: Optional[str] = None,
    ) -> None: ...

    async def update_record_status(self, split_id: int, status: SplitStatus) -> None: ...


def stamp_participant(participant, status: SplitStatus, timestamp: datetime, reason: Optional[str] = None) -> None:
    participant.status = status
    if status == SplitStatus.CONFIRMED:
        participant.confirmed_at = timestamp
    elif status == SplitStatus.SETTLED:
        participant.settled_at = timestamp
    elif status == SplitStatus.DECLINED:
        participant.declined_at = timestamp
        participant.decline_reason = reason


class SqlSplitStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def transaction(self):
        try:
            await begin_write(self.db)
            yield
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("split store transaction rolled back", exc_info=True)
            raise PersistenceError(operation="transaction") from e
        except Exception:
            await self.db.rollback()
            raise

    async def create_split_record(self, record: SplitRecord, participants: List[SplitParticipant]) -> int:
        record.participants = list(participants)
        self.db.add(record)
        await self.db.flush()  # gives record.id
        return record.id

    async def get_split_record(self, split_id: int, for_update: bool = False) -> Optional[SplitRecord]:
        q = (
            select(SplitRecord)
            .options(selectinload(SplitRecord.participants))
            .where(SplitRecord.id == split_id)
        )
        if for_update:
            # row lock on the record; participants are only touched through it
            q = q.with_for_update().execution_options(populate_existing=True)

        res = await self.db.execute(q)
        return res.scalar_one_or_none()

    async def list_split_records(self, group_id: int, status: Optional[SplitStatus] = None) -> List[SplitRecord]:
        q = (
            select(SplitRecord)
            .options(selectinload(SplitRecord.participants))
            .where(SplitRecord.group_id == group_id)
            .order_by(SplitRecord.created_at.desc(), SplitRecord.id.desc())
        )
        if status is not None:
            q = q.where(SplitRecord.status == status)

        res = await self.db.execute(q)
        return list(res.scalars().all())

    async def update_participant_status(
        self,
        split_id: int,
        user_id: int,
        status: SplitStatus,
        timestamp: datetime,
        reason: Optional[str] = None,
    ) -> None:
        q = select(SplitParticipant).where(
            SplitParticipant.split_id == split_id,
            SplitParticipant.user_id == user_id,
        )
        res = await self.db.execute(q)
        participant = res.scalar_one_or_none()

        if participant is None:
            raise NotFound("participant", user_id, split_id=split_id)

        stamp_participant(participant, status, timestamp, reason)
        await self.db.flush()

    async def update_record_status(self, split_id: int, status: SplitStatus) -> None:
        record = await self.db.get(SplitRecord, split_id)
        if record is None:
            raise NotFound("split", split_id)

        record.status = status
        await self.db.flush()
