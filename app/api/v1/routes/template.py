from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.core.dependencies import get_current_user, check_group_membership, get_split_service, get_template_service
from app.schemas.split import SplitRecordOut
from app.schemas.template import TemplateCreate, TemplateOut, TemplateApply
from app.services.group_services import get_group_members, get_non_members
from app.services.split_service import ExpenseRef, SplitLifecycleService
from app.services.template_service import TemplateService
from app.api.v1.routes.split import present_split

router = APIRouter()

@router.post("/create", response_model=TemplateOut, description="save a reusable split configuration")
async def create_template(
    data: TemplateCreate,
    db: AsyncSession = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    current_user = Depends(get_current_user),
):
    await check_group_membership(db, data.group_id, current_user.id)

    outsiders = await get_non_members(db, data.group_id, [p.user_id for p in data.participants])
    if outsiders:
        raise HTTPException(400, f"Some users in template are not group members: {outsiders}")

    return await service.create_template(data, created_by=current_user.id)

@router.get("/list", response_model=list[TemplateOut])
async def list_templates(
    group_id: int,
    db: AsyncSession = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    current_user = Depends(get_current_user),
):
    await check_group_membership(db, group_id, current_user.id)
    return await service.list_templates(group_id)

@router.get("/{template_id}", response_model=TemplateOut)
async def template_detail(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    current_user = Depends(get_current_user),
):
    template = await service.get_template(template_id)
    await check_group_membership(db, template.group_id, current_user.id)
    return template

@router.post("/{template_id}/apply", response_model=SplitRecordOut, description="split an expense using a template")
async def apply_template(
    template_id: int,
    data: TemplateApply,
    db: AsyncSession = Depends(get_db),
    service: SplitLifecycleService = Depends(get_split_service),
    current_user = Depends(get_current_user),
):
    await check_group_membership(db, data.group_id, current_user.id)

    members = await get_group_members(db, data.group_id)
    expense = ExpenseRef(data.original_expense_id, data.group_id, data.total_amount)
    record = await service.apply_template(
        template_id,
        expense,
        members,
        created_by=current_user.id,
        description=data.description,
    )
    return await present_split(db, record)
