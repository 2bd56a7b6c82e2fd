from typing import Dict, Iterable, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.models.group import GroupMember
from app.models.user import User


async def is_group_member(db: AsyncSession, group_id: int, user_id: int) -> bool:
    q = select(GroupMember).where(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id
    )
    res = await db.execute(q)
    return res.scalar_one_or_none() is not None


async def get_group_members(db: AsyncSession, group_id: int) -> List[Dict]:
    members_q = (
        select(User.id, User.name)
        .join(GroupMember, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.joined_at, User.id)
    )

    result = await db.execute(members_q)
    return [
        {"user_id": uid, "display_name": name}
        for uid, name in result.all()
    ]


async def get_non_members(db: AsyncSession, group_id: int, user_ids: Iterable[int]) -> List[int]:
    user_ids = list(user_ids)
    q = select(GroupMember.user_id).where(
        GroupMember.group_id == group_id,
        GroupMember.user_id.in_(user_ids)
    )
    res = await db.execute(q)
    members = set(res.scalars().all())
    return [uid for uid in user_ids if uid not in members]
