import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import InvalidAmount, NotFound, PersistenceError
from app.core.utils import to_decimal
from app.db.session import begin_write
from app.models.split_record import SplitStrategy
from app.models.split_template import SplitTemplate, SplitTemplateParticipant
from app.services.allocation import parse_strategy
from app.services.validation import check_participants, check_percentage_sum

logger = logging.getLogger(__name__)


class TemplateService:
    """Named, reusable strategy + participant lists for a group."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_template(self, data, created_by: int | None = None) -> SplitTemplate:
        strategy = parse_strategy(data.strategy)
        check_participants(data.participants)
        if strategy == SplitStrategy.PERCENTAGE:
            check_percentage_sum(data.participants)
        elif strategy in (SplitStrategy.AMOUNT, SplitStrategy.CUSTOM):
            for p in data.participants:
                if p.amount is None:
                    raise InvalidAmount(
                        f"{strategy.value} templates need an amount for every participant",
                        user_id=p.user_id,
                    )

        template = SplitTemplate(
            group_id=data.group_id,
            name=data.name,
            description=data.description,
            strategy=strategy,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
            participants=[
                SplitTemplateParticipant(
                    position=index,
                    user_id=p.user_id,
                    percentage=to_decimal(p.percentage),
                    amount=to_decimal(p.amount),
                )
                for index, p in enumerate(data.participants)
            ],
        )

        try:
            await begin_write(self.db)
            self.db.add(template)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("could not save split template %r", data.name, exc_info=True)
            raise PersistenceError("Could not save split template", operation="create_template") from e

        logger.info("created split template %s (%s) for group %s", template.id, strategy.value, data.group_id)
        return await self.get_template(template.id)

    async def list_templates(self, group_id: int) -> List[SplitTemplate]:
        q = (
            select(SplitTemplate)
            .options(selectinload(SplitTemplate.participants))
            .where(SplitTemplate.group_id == group_id)
            .order_by(SplitTemplate.created_at.desc(), SplitTemplate.id.desc())
        )
        res = await self.db.execute(q)
        return list(res.scalars().all())

    async def get_template(self, template_id: int) -> SplitTemplate:
        q = (
            select(SplitTemplate)
            .options(selectinload(SplitTemplate.participants))
            .where(SplitTemplate.id == template_id)
        )
        res = await self.db.execute(q)
        template = res.scalar_one_or_none()

        if not template:
            raise NotFound("template", template_id)

        return template
