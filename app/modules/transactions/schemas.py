"""
Expected Supabase table structure:

transactions:
- id: uuid (primary key)
- pool_id: uuid (references pools.id), user_id: uuid (references users.id)
- type: text - contribution | payout | penalty | refund | fee
- amount: numeric (> 0)
- currency: char(3) (default: 'ZAR')
- status: text - pending | completed | failed | cancelled
- description, reference: text (nullable)
- metadata: jsonb (nullable)
- created_at, completed_at: timestamp
"""
from enum import Enum
from uuid import UUID
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime


class TransactionType(str, Enum):
    CONTRIBUTION = "contribution"
    PAYOUT = "payout"
    PENALTY = "penalty"
    REFUND = "refund"
    FEE = "fee"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TransactionCreate(BaseModel):
    pool_id: UUID
    type: TransactionType
    amount: float = Field(gt=0)
    currency: str = Field(default="ZAR", min_length=3, max_length=3)
    description: Optional[str] = Field(default=None, max_length=500)
    reference: Optional[str] = Field(default=None, max_length=100)


class TransactionResponse(BaseModel):
    id: str
    pool_id: str
    user_id: str
    type: TransactionType
    amount: float
    currency: str
    status: TransactionStatus
    description: Optional[str] = None
    reference: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
