"""
Expected Supabase table structure:

constitutions:
- id: uuid (primary key)
- pool_id: uuid (references pools.id)
- version, template_name: text
- content: jsonb (ConstitutionContent)
- clauses: jsonb (ordered list of ConstitutionClause)
- is_active: boolean
- created_at, updated_at: timestamp

member_signatures:
- id: uuid (primary key)
- pool_id, user_id, constitution_id: uuid
- full_legal_name: text
- ip_address: inet (nullable)
- signed_at: timestamp
- is_active: boolean
"""
from enum import Enum
from uuid import UUID
from pydantic import BaseModel, Field, IPvAnyAddress
from typing import Optional, List
from datetime import datetime

from app.modules.pools.schemas import PoolType


class VotingThreshold(str, Enum):
    SIMPLE_MAJORITY = "simple_majority"
    TWO_THIRDS = "two_thirds"
    UNANIMOUS = "unanimous"


class ConstitutionClause(BaseModel):
    id: str
    title: str
    content: str
    order: int
    is_custom: bool


class ConstitutionContent(BaseModel):
    pool_name: str = Field(min_length=1)
    purpose: str = Field(min_length=10)
    pool_type: PoolType
    contribution_amount: str = Field(min_length=1)
    contribution_schedule: str = Field(min_length=1)
    late_payment_policy: str = Field(min_length=10)
    dispute_resolution: str = Field(min_length=10)
    voting_threshold: VotingThreshold
    popia_consent: bool
    authorized_signatories: str = Field(min_length=1)


class ConstitutionCreate(BaseModel):
    pool_id: UUID
    template_name: str = Field(min_length=1)
    content: ConstitutionContent
    clauses: List[ConstitutionClause]


class ConstitutionSign(BaseModel):
    pool_id: UUID
    constitution_id: UUID
    full_legal_name: str = Field(min_length=3, max_length=255)
    ip_address: Optional[IPvAnyAddress] = None


class ConstitutionResponse(BaseModel):
    id: str
    pool_id: str
    version: str
    template_name: str
    content: ConstitutionContent
    clauses: List[ConstitutionClause]
    created_at: datetime
    updated_at: datetime
    is_active: bool

    class Config:
        from_attributes = True

    def ordered_clauses(self) -> List[ConstitutionClause]:
        return sorted(self.clauses, key=lambda c: c.order)


class MemberSignatureResponse(BaseModel):
    id: str
    pool_id: str
    user_id: str
    constitution_id: str
    full_legal_name: str
    ip_address: Optional[str] = None
    signed_at: datetime
    is_active: bool

    class Config:
        from_attributes = True
