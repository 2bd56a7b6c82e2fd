from typing import Dict, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.models.user import User

async def get_user_by_id(db: AsyncSession, id:int):
    result = await db.execute(select(User).where(User.id == id))
    return result.scalar_one_or_none()

async def get_display_names(db: AsyncSession, user_ids: Iterable[int]) -> Dict[int, str]:
    user_ids = set(user_ids)
    if not user_ids:
        return {}

    result = await db.execute(select(User.id, User.name).where(User.id.in_(user_ids)))
    return {uid: name for uid, name in result.all()}
