from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from app.models.split_record import SplitStrategy
from app.schemas.split import ParticipantIn

class TemplateCreate(BaseModel):
    group_id: int
    name: str = Field(min_length=1, max_length=64)
    description: Optional[str] = None
    strategy: str
    participants: List[ParticipantIn]

class TemplateParticipantOut(BaseModel):
    user_id: int
    percentage: Optional[Decimal] = None
    amount: Optional[Decimal] = None

    class Config:
        from_attributes = True

class TemplateOut(BaseModel):
    id: int
    group_id: int
    name: str
    description: Optional[str] = None
    strategy: SplitStrategy
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    participants: List[TemplateParticipantOut]

    class Config:
        from_attributes = True

class TemplateApply(BaseModel):
    original_expense_id: int
    group_id: int
    total_amount: Decimal = Field(gt=0)
    description: Optional[str] = None
