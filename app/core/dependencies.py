import logging
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.jwt_config import decode_token, get_token_from_cookie
from app.db.session import get_db
from app.services.events import EventBus
from app.services.group_services import is_group_member
from app.services.split_service import SplitLifecycleService
from app.services.split_store import SqlSplitStore
from app.services.template_service import TemplateService
from app.services.user_service import get_user_by_id

logger = logging.getLogger(__name__)

async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)):
    try:
        token = get_token_from_cookie(request=request)
        payload = decode_token(token)
        user_id = payload.get("sub")

        if user_id is None:
            raise HTTPException(status_code=401, detail="Invalid authentication credentials")

        user = await get_user_by_id(db, int(user_id))

        if user is None:
            raise HTTPException(status_code=401, detail="User not found")

        return user
    except HTTPException:
        raise
    except (TypeError, ValueError):
        logger.warning("rejected token with malformed subject")
        raise HTTPException(status_code=401, detail="Could not validate credentials")

async def check_group_membership(db: AsyncSession, group_id: int, user_id: int):
    if not await is_group_member(db, group_id, user_id):
        raise HTTPException(status_code=403, detail="You are not member of this group")

def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus

def get_template_service(db: AsyncSession = Depends(get_db)) -> TemplateService:
    return TemplateService(db)

def get_split_service(
    db: AsyncSession = Depends(get_db),
    templates: TemplateService = Depends(get_template_service),
    events: EventBus = Depends(get_event_bus),
) -> SplitLifecycleService:
    return SplitLifecycleService(
        SqlSplitStore(db),
        templates=templates,
        events=events,
        strict_settlement=settings.SPLIT_STRICT_SETTLEMENT,
        tolerance=settings.SPLIT_SUM_TOLERANCE,
    )
