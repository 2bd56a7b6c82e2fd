from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.core.dependencies import get_current_user, check_group_membership, get_split_service
from app.models.split_record import SplitRecord, SplitStatus
from app.schemas.split import SplitCreate, SplitRecordOut, ParticipantAction, DeclineAction, TransitionOut
from app.services.group_services import get_non_members
from app.services.split_service import ExpenseRef, SplitLifecycleService, TransitionResult
from app.services.user_service import get_display_names

router = APIRouter()

async def present_split(db: AsyncSession, record: SplitRecord) -> SplitRecordOut:
    names = await get_display_names(db, [p.user_id for p in record.participants])
    out = SplitRecordOut.model_validate(record)
    for p in out.participants:
        p.display_name = names.get(p.user_id)
    return out

async def present_transition(db: AsyncSession, result: TransitionResult) -> TransitionOut:
    return TransitionOut(
        user_id=result.user_id,
        status=result.status,
        changed=result.changed,
        all_confirmed=result.all_confirmed,
        all_settled=result.all_settled,
        split=await present_split(db, result.record),
    )

@router.post("/create", response_model=SplitRecordOut, description="split an expense among group members")
async def create_split(
    data: SplitCreate,
    db: AsyncSession = Depends(get_db),
    service: SplitLifecycleService = Depends(get_split_service),
    current_user = Depends(get_current_user),
):
    await check_group_membership(db, data.group_id, current_user.id)

    outsiders = await get_non_members(db, data.group_id, [p.user_id for p in data.participants])
    if outsiders:
        raise HTTPException(400, f"Some users in split are not group members: {outsiders}")

    expense = ExpenseRef(data.original_expense_id, data.group_id, data.total_amount)
    record = await service.create_split(
        expense,
        data.strategy,
        data.participants,
        description=data.description,
        created_by=current_user.id,
    )
    return await present_split(db, record)

@router.get("/list", response_model=list[SplitRecordOut])
async def list_splits(
    group_id: int,
    status: Optional[SplitStatus] = None,
    db: AsyncSession = Depends(get_db),
    service: SplitLifecycleService = Depends(get_split_service),
    current_user = Depends(get_current_user),
):
    await check_group_membership(db, group_id, current_user.id)
    records = await service.list_splits(group_id, status)
    return [await present_split(db, r) for r in records]

@router.get("/{split_id}", response_model=SplitRecordOut)
async def split_detail(
    split_id: int,
    db: AsyncSession = Depends(get_db),
    service: SplitLifecycleService = Depends(get_split_service),
    current_user = Depends(get_current_user),
):
    record = await service.get_split(split_id)
    await check_group_membership(db, record.group_id, current_user.id)
    return await present_split(db, record)

async def _authorize(db, service: SplitLifecycleService, split_id: int, current_user) -> None:
    record = await service.get_split(split_id)
    await check_group_membership(db, record.group_id, current_user.id)

@router.post("/{split_id}/confirm", response_model=TransitionOut)
async def confirm_split(
    split_id: int,
    data: Optional[ParticipantAction] = None,
    db: AsyncSession = Depends(get_db),
    service: SplitLifecycleService = Depends(get_split_service),
    current_user = Depends(get_current_user),
):
    await _authorize(db, service, split_id, current_user)
    user_id = data.user_id if data and data.user_id is not None else current_user.id
    result = await service.confirm(split_id, user_id, actor_user_id=current_user.id)
    return await present_transition(db, result)

@router.post("/{split_id}/decline", response_model=TransitionOut)
async def decline_split(
    split_id: int,
    data: Optional[DeclineAction] = None,
    db: AsyncSession = Depends(get_db),
    service: SplitLifecycleService = Depends(get_split_service),
    current_user = Depends(get_current_user),
):
    await _authorize(db, service, split_id, current_user)
    user_id = data.user_id if data and data.user_id is not None else current_user.id
    reason = data.reason if data else None
    result = await service.decline(split_id, user_id, reason=reason, actor_user_id=current_user.id)
    return await present_transition(db, result)

@router.post("/{split_id}/settle", response_model=TransitionOut)
async def settle_split(
    split_id: int,
    data: Optional[ParticipantAction] = None,
    db: AsyncSession = Depends(get_db),
    service: SplitLifecycleService = Depends(get_split_service),
    current_user = Depends(get_current_user),
):
    await _authorize(db, service, split_id, current_user)
    user_id = data.user_id if data and data.user_id is not None else current_user.id
    result = await service.settle(split_id, user_id, actor_user_id=current_user.id)
    return await present_transition(db, result)
