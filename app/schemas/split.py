from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from app.models.split_record import SplitStatus, SplitStrategy

class ParticipantIn(BaseModel):
    user_id: int
    percentage: Optional[Decimal] = None
    amount: Optional[Decimal] = None

class SplitCreate(BaseModel):
    original_expense_id: int
    group_id: int
    total_amount: Decimal = Field(gt=0)
    # plain str so unknown strategies surface as invalid_strategy
    strategy: str
    participants: List[ParticipantIn]
    description: Optional[str] = None

class ParticipantAction(BaseModel):
    user_id: Optional[int] = None

class DeclineAction(ParticipantAction):
    reason: Optional[str] = None

class SplitParticipantOut(BaseModel):
    user_id: int
    display_name: Optional[str] = None
    amount: Decimal
    percentage: Optional[Decimal] = None
    status: SplitStatus
    decline_reason: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SplitRecordOut(BaseModel):
    id: int
    original_expense_id: int
    group_id: int
    total_amount: Decimal
    strategy: SplitStrategy
    description: Optional[str] = None
    status: SplitStatus
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    participants: List[SplitParticipantOut]

    class Config:
        from_attributes = True

class TransitionOut(BaseModel):
    user_id: int
    status: SplitStatus
    changed: bool
    all_confirmed: bool
    all_settled: bool
    split: SplitRecordOut
