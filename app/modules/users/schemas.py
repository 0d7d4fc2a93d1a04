"""
Profile records kept alongside Supabase Auth.

users:
- id: uuid (primary key, references auth.users.id)
- email: text (not null)
- name: text (not null)
- avatar_url, phone: text (nullable)
- wallet_balance, total_savings: numeric (default 0)
- is_active: boolean (default true)
- metadata: jsonb (nullable)
- created_at, updated_at, last_login_at: timestamp

trust_metrics:
- user_id: uuid (references users.id)
- score: integer 0..1000
- rating: text - exceptional | good | fair | poor
- on_time_payment_rate, years_active, pools_completed, defaults_count: numeric
- updated_at: timestamp
"""
from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List, Union
from datetime import datetime, timezone


class TrustRating(str, Enum):
    EXCEPTIONAL = "exceptional"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


NEUTRAL_TRUST_SCORE = 500
NEUTRAL_TRUST_RATING = TrustRating.FAIR


class TrustMetrics(BaseModel):
    on_time_payment_rate: float = 0
    years_active: float = 0
    pools_completed: int = 0
    defaults_count: int = 0


class TrustScore(BaseModel):
    score: int = Field(default=NEUTRAL_TRUST_SCORE, ge=0, le=1000)
    rating: TrustRating = NEUTRAL_TRUST_RATING
    metrics: TrustMetrics = Field(default_factory=TrustMetrics)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def neutral(cls) -> "TrustScore":
        """Score used until a trust_metrics row exists for the user."""
        return cls()

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TrustScore":
        """Build from a flat trust_metrics row (metrics columns sit next to score)."""
        if "metrics" in row:
            return cls(**row)
        metric_fields = TrustMetrics.model_fields.keys()
        data = {k: v for k, v in row.items() if k in cls.model_fields and v is not None}
        data["metrics"] = TrustMetrics(**{k: row[k] for k in metric_fields if row.get(k) is not None})
        return cls(**data)


def neutral_trust_metrics_row(user_id: str) -> Dict[str, Any]:
    """Initial trust_metrics row written on sign-up."""
    return {
        "user_id": user_id,
        "score": NEUTRAL_TRUST_SCORE,
        "rating": NEUTRAL_TRUST_RATING.value,
        **TrustMetrics().model_dump(),
    }


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    wallet_balance: float = 0
    total_savings: float = 0
    trust_score: TrustScore = Field(default_factory=TrustScore.neutral)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    is_active: bool = True
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserResponse":
        """Build from a users row joined with ``trust_score:trust_metrics(*)``."""
        data = dict(row)
        trust: Union[List[Dict[str, Any]], Dict[str, Any], None] = data.pop("trust_score", None)
        if isinstance(trust, list):
            trust = trust[0] if trust else None
        data["trust_score"] = TrustScore.from_row(trust) if trust else TrustScore.neutral()
        return cls(**data)
