import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from app.core.exceptions import InvalidTransition, NotFound, TemplateMemberNotFound
from app.core.utils import CENTS, qround, to_decimal
from app.models.split_record import SplitParticipant, SplitRecord, SplitStatus
from app.services.allocation import ParticipantInput, allocate, parse_strategy
from app.services.events import EventBus, SplitAction, SplitEvent
from app.services.split_store import SplitStore
from app.services.validation import validate_split_data

logger = logging.getLogger(__name__)


@dataclass
class ExpenseRef:
    """The expense being split. Owned by the records API, referenced by id."""
    original_expense_id: int
    group_id: int
    total_amount: Decimal


@dataclass
class TransitionResult:
    record: SplitRecord
    user_id: int
    status: SplitStatus
    changed: bool

    @property
    def all_confirmed(self) -> bool:
        return self.record.status in (SplitStatus.CONFIRMED, SplitStatus.SETTLED)

    @property
    def all_settled(self) -> bool:
        return self.record.status == SplitStatus.SETTLED


def derive_record_status(statuses: Iterable[SplitStatus]) -> SplitStatus:
    """Aggregate status of a split from its participants.

    One decline poisons the whole record. Settling only some participants of
    a fully confirmed split keeps it CONFIRMED.
    """
    statuses = [SplitStatus(s) for s in statuses]
    if not statuses:
        return SplitStatus.PENDING
    if SplitStatus.DECLINED in statuses:
        return SplitStatus.DECLINED
    if all(s == SplitStatus.SETTLED for s in statuses):
        return SplitStatus.SETTLED
    if all(s in (SplitStatus.CONFIRMED, SplitStatus.SETTLED) for s in statuses):
        return SplitStatus.CONFIRMED
    return SplitStatus.PENDING


# target status -> statuses a participant may move from (same status = no-op)
_ALLOWED_FROM: Dict[SplitStatus, frozenset] = {
    SplitStatus.CONFIRMED: frozenset({SplitStatus.PENDING, SplitStatus.CONFIRMED}),
    SplitStatus.DECLINED: frozenset({SplitStatus.PENDING, SplitStatus.DECLINED}),
    SplitStatus.SETTLED: frozenset({SplitStatus.PENDING, SplitStatus.CONFIRMED, SplitStatus.SETTLED}),
}


class SplitLifecycleService:
    """Creates splits and moves participants through confirm/decline/settle.

    Built per request by the composition root with its collaborators:
    a ``SplitStore``, something that can ``get_template(id)`` and an
    ``EventBus``. With ``strict_settlement`` a participant must confirm
    before settling.
    """

    def __init__(
        self,
        store: SplitStore,
        templates=None,
        events: Optional[EventBus] = None,
        strict_settlement: bool = False,
        tolerance: Decimal = CENTS,
    ):
        self.store = store
        self.templates = templates
        self.events = events
        self.strict_settlement = strict_settlement
        self.tolerance = tolerance

    async def create_split(
        self,
        expense: ExpenseRef,
        strategy,
        participants: Sequence,
        description: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> SplitRecord:
        strategy = parse_strategy(strategy)
        validate_split_data(expense.total_amount, strategy, participants, self.tolerance)

        # everything is computed before the first write
        shares = allocate(expense.total_amount, strategy, participants, self.tolerance)

        record = SplitRecord(
            original_expense_id=expense.original_expense_id,
            group_id=expense.group_id,
            total_amount=qround(to_decimal(expense.total_amount)),
            strategy=strategy,
            description=description,
            status=SplitStatus.PENDING,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
        )
        rows = [
            SplitParticipant(
                user_id=s.user_id,
                amount=s.amount,
                percentage=s.percentage,
                status=SplitStatus.PENDING,
            )
            for s in shares
        ]

        async with self.store.transaction():
            split_id = await self.store.create_split_record(record, rows)

        logger.info(
            "created split %s for expense %s in group %s (%s, %d participants)",
            split_id, expense.original_expense_id, expense.group_id, strategy.value, len(rows),
        )
        self._emit(split_id, SplitAction.CREATE, created_by)
        return await self.get_split(split_id)

    async def apply_template(
        self,
        template_id: int,
        expense: ExpenseRef,
        group_members: Iterable[dict],
        created_by: Optional[int] = None,
        description: Optional[str] = None,
    ) -> SplitRecord:
        if self.templates is None:
            raise NotFound("template", template_id)

        template = await self.templates.get_template(template_id)
        if template.group_id != expense.group_id:
            raise NotFound("template", template_id, group_id=expense.group_id)

        member_ids = {m["user_id"] for m in group_members}

        inputs: List[ParticipantInput] = []
        for tp in template.participants:
            if tp.user_id not in member_ids:
                raise TemplateMemberNotFound(template_id, tp.user_id)
            inputs.append(ParticipantInput(
                user_id=tp.user_id,
                percentage=to_decimal(tp.percentage),
                amount=to_decimal(tp.amount),
            ))

        return await self.create_split(
            expense,
            template.strategy,
            inputs,
            description=description or template.description or template.name,
            created_by=created_by,
        )

    async def get_split(self, split_id: int) -> SplitRecord:
        record = await self.store.get_split_record(split_id)
        if record is None:
            raise NotFound("split", split_id)
        return record

    async def list_splits(self, group_id: int, status=None) -> List[SplitRecord]:
        if status is not None:
            status = SplitStatus(status)
        return await self.store.list_split_records(group_id, status)

    async def confirm(self, split_id: int, user_id: int, actor_user_id: Optional[int] = None) -> TransitionResult:
        return await self._transition(split_id, user_id, SplitStatus.CONFIRMED, actor_user_id)

    async def decline(
        self,
        split_id: int,
        user_id: int,
        reason: Optional[str] = None,
        actor_user_id: Optional[int] = None,
    ) -> TransitionResult:
        return await self._transition(split_id, user_id, SplitStatus.DECLINED, actor_user_id, reason)

    async def settle(self, split_id: int, user_id: int, actor_user_id: Optional[int] = None) -> TransitionResult:
        return await self._transition(split_id, user_id, SplitStatus.SETTLED, actor_user_id)

    def _can_move(self, current: SplitStatus, target: SplitStatus) -> bool:
        allowed = _ALLOWED_FROM[target]
        if target == SplitStatus.SETTLED and self.strict_settlement:
            allowed = allowed - {SplitStatus.PENDING}
        return current in allowed

    async def _transition(
        self,
        split_id: int,
        user_id: int,
        target: SplitStatus,
        actor_user_id: Optional[int],
        reason: Optional[str] = None,
    ) -> TransitionResult:
        if actor_user_id is None:
            actor_user_id = user_id

        async with self.store.transaction():
            record = await self.store.get_split_record(split_id, for_update=True)
            if record is None:
                raise NotFound("split", split_id)

            participant = next((p for p in record.participants if p.user_id == user_id), None)
            if participant is None:
                raise NotFound("participant", user_id, split_id=split_id)

            current = SplitStatus(participant.status)
            if not self._can_move(current, target):
                raise InvalidTransition(split_id, user_id, current, target)

            changed = current != target
            if changed:
                await self.store.update_participant_status(
                    split_id, user_id, target, datetime.now(timezone.utc), reason
                )
                aggregate = derive_record_status(
                    target if p.user_id == user_id else p.status
                    for p in record.participants
                )
                if aggregate != record.status:
                    await self.store.update_record_status(split_id, aggregate)

        if changed:
            logger.info("split %s: user %s %s -> %s", split_id, user_id, current.value, target.value)
            self._emit(split_id, _ACTIONS[target], actor_user_id)
        else:
            logger.debug("split %s: user %s already %s", split_id, user_id, target.value)

        record = await self.get_split(split_id)
        return TransitionResult(record=record, user_id=user_id, status=target, changed=changed)

    def _emit(self, split_id: int, action: SplitAction, actor_user_id: Optional[int]) -> None:
        if self.events is not None:
            self.events.publish(SplitEvent(split_id, action, actor_user_id))


_ACTIONS = {
    SplitStatus.CONFIRMED: SplitAction.CONFIRM,
    SplitStatus.DECLINED: SplitAction.DECLINE,
    SplitStatus.SETTLED: SplitAction.SETTLE,
}
