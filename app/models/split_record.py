import enum
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.session import Base


class SplitStrategy(str, enum.Enum):
    EQUAL = "EQUAL"
    PERCENTAGE = "PERCENTAGE"
    AMOUNT = "AMOUNT"
    CUSTOM = "CUSTOM"


class SplitStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DECLINED = "DECLINED"
    SETTLED = "SETTLED"


class SplitRecord(Base):
    """One shared expense allocated across participants.

    ``status`` is derived from the participants' statuses and stored so list
    reads don't have to aggregate. Only the lifecycle service writes it.
    """
    __tablename__ = "split_records"

    id = Column(Integer, primary_key=True, index=True)
    original_expense_id = Column(Integer, nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    strategy = Column(SAEnum(SplitStrategy, native_enum=False, length=16), nullable=False)
    description = Column(String, nullable=True)
    status = Column(
        SAEnum(SplitStatus, native_enum=False, length=16),
        nullable=False,
        default=SplitStatus.PENDING,
        index=True,
    )
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participants = relationship(
        "SplitParticipant",
        back_populates="split",
        cascade="all, delete-orphan",
        order_by="SplitParticipant.id",
    )


class SplitParticipant(Base):
    __tablename__ = "split_participants"

    id = Column(Integer, primary_key=True, index=True)
    split_id = Column(Integer, ForeignKey("split_records.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    percentage = Column(Numeric(5, 2), nullable=True)
    status = Column(SAEnum(SplitStatus, native_enum=False, length=16), nullable=False, default=SplitStatus.PENDING)
    decline_reason = Column(String, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    settled_at = Column(DateTime(timezone=True), nullable=True)

    split = relationship("SplitRecord", back_populates="participants")
