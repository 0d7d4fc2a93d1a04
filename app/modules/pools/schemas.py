"""
Expected Supabase table structure:

pools:
- id: uuid (primary key)
- name, description, type, contribution_schedule: text
- creator_id: uuid (references users.id)
- constitution_id: uuid (nullable, references constitutions.id)
- contribution_amount, total_pool_value: numeric
- next_due_date: timestamp
- rotation_position, total_members, max_members, current_cycle: integer
- status, health_status: text
- settings, metadata: jsonb
- created_at, updated_at, started_at, completed_at: timestamp

pool_members:
- id: uuid (primary key)
- pool_id: uuid (references pools.id), user_id: uuid (references users.id)
- role, status, tier, payment_status: text
- position: integer (rotation order)
- total_contributed, pending_contribution, penalties_incurred: numeric
- constitution_signed: boolean, signature_date: timestamp
- joined_at, last_payment_at, next_payout_date: timestamp
"""
from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime


class PoolType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"
    STOKVEL = "stokvel"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    ROTATING = "rotating"


class PoolStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PoolHealthStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class MemberRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class MemberStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"
    DEFAULTED = "defaulted"


class MemberTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class PaymentStatus(str, Enum):
    PAID = "paid"
    LATE = "late"
    PENDING = "pending"
    FAILED = "failed"
    DEFAULTED = "defaulted"


class NotificationPreferences(BaseModel):
    email: bool = True
    sms: bool = False
    in_app: bool = True


class PoolSettings(BaseModel):
    late_payment_grace_days: int = Field(default=3, ge=0)
    late_payment_penalty_rate: float = Field(default=10, ge=0, le=100)
    minimum_trust_score: Optional[float] = Field(default=None, ge=0, le=1000)
    allow_early_exit: bool = False
    require_unanimous_votes: bool = False
    auto_rotate: bool = True
    notification_preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)


class PoolCreate(BaseModel):
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    type: PoolType
    contribution_amount: float = Field(allow_inf_nan=False)
    contribution_schedule: str = Field(min_length=1)
    max_members: Optional[int] = Field(default=None, gt=0)
    settings: PoolSettings = Field(default_factory=PoolSettings)

    @field_validator("name")
    @classmethod
    def name_min_length(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Pool name must be at least 3 characters")
        return v

    @field_validator("contribution_amount")
    @classmethod
    def contribution_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Contribution must be positive")
        return v


class PoolUpdate(BaseModel):
    """Partial pool update; omitted fields stay unset (use ``exclude_unset`` when persisting)."""
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    type: Optional[PoolType] = None
    contribution_amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    contribution_schedule: Optional[str] = Field(default=None, min_length=1)
    max_members: Optional[int] = Field(default=None, gt=0)
    settings: Optional[PoolSettings] = None

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("name")
    @classmethod
    def name_min_length(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) < 3:
            raise ValueError("Pool name must be at least 3 characters")
        return v

    @field_validator("contribution_amount")
    @classmethod
    def contribution_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("Contribution must be positive")
        return v


class PoolResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    type: PoolType
    creator_id: str
    constitution_id: Optional[str] = None
    contribution_amount: float
    contribution_schedule: str
    next_due_date: datetime
    rotation_position: int
    total_members: int
    max_members: Optional[int] = None
    status: PoolStatus
    health_status: PoolHealthStatus
    current_cycle: int
    total_pool_value: float
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    settings: PoolSettings
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class PoolMemberResponse(BaseModel):
    id: str
    pool_id: str
    user_id: str
    role: MemberRole
    status: MemberStatus
    position: int
    tier: MemberTier
    total_contributed: float
    pending_contribution: float
    penalties_incurred: float
    payment_status: PaymentStatus
    joined_at: datetime
    last_payment_at: Optional[datetime] = None
    next_payout_date: Optional[datetime] = None
    constitution_signed: bool
    signature_date: Optional[datetime] = None

    class Config:
        from_attributes = True
