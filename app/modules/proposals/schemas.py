"""
Expected Supabase table structure:

proposals:
- id: uuid (primary key)
- pool_id: uuid (references pools.id), created_by: uuid (references users.id)
- title, description: text
- type: text - constitutional_change | member_action | pool_setting | other
- status: text - draft | active | approved | rejected | expired
- deadline: timestamp
- yes_votes, no_votes, abstain_votes, required_votes: integer
- metadata: jsonb (nullable)
- created_at: timestamp

votes:
- id: uuid (primary key)
- proposal_id: uuid (references proposals.id), user_id: uuid (references users.id)
- vote: text - yes | no | abstain
- comment: text (nullable)
- created_at: timestamp
"""
import re
from enum import Enum
from uuid import UUID
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime

# UTC only, with a trailing Z; fractional seconds optional
UTC_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$")


class ProposalStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ProposalType(str, Enum):
    CONSTITUTIONAL_CHANGE = "constitutional_change"
    MEMBER_ACTION = "member_action"
    POOL_SETTING = "pool_setting"
    OTHER = "other"


class VoteChoice(str, Enum):
    YES = "yes"
    NO = "no"
    ABSTAIN = "abstain"


class ProposalCreate(BaseModel):
    pool_id: UUID
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=2000)
    type: ProposalType
    deadline: datetime

    @field_validator("deadline", mode="before")
    @classmethod
    def deadline_utc_string(cls, v: Any) -> Any:
        if not isinstance(v, str) or not UTC_TIMESTAMP.match(v):
            raise ValueError("Deadline must be an ISO 8601 UTC timestamp ending in Z")
        return v


class VoteCreate(BaseModel):
    proposal_id: UUID
    vote: VoteChoice
    comment: Optional[str] = Field(default=None, max_length=500)


class ProposalResponse(BaseModel):
    id: str
    pool_id: str
    created_by: str
    title: str
    description: str
    type: ProposalType
    status: ProposalStatus
    created_at: datetime
    deadline: datetime
    yes_votes: int
    no_votes: int
    abstain_votes: int
    required_votes: int
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True

    @property
    def total_votes(self) -> int:
        return self.yes_votes + self.no_votes + self.abstain_votes


class VoteResponse(BaseModel):
    id: str
    proposal_id: str
    user_id: str
    vote: VoteChoice
    comment: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
