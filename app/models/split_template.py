from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.models.split_record import SplitStrategy


class SplitTemplate(Base):
    __tablename__ = "split_templates"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    strategy = Column(SAEnum(SplitStrategy, native_enum=False, length=16), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participants = relationship(
        "SplitTemplateParticipant",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="SplitTemplateParticipant.position",
    )


class SplitTemplateParticipant(Base):
    __tablename__ = "split_template_participants"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("split_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    percentage = Column(Numeric(5, 2), nullable=True)
    amount = Column(Numeric(10, 2), nullable=True)

    template = relationship("SplitTemplate", back_populates="participants")
