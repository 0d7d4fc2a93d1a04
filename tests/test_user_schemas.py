"""Tests for user profile and trust score records."""

import pytest
from pydantic import ValidationError

from app.modules.users.schemas import (
    TrustMetrics,
    TrustRating,
    TrustScore,
    UserResponse,
    UserUpdate,
    neutral_trust_metrics_row,
)

ROW = {
    "id": "u1",
    "email": "thandi@example.com",
    "name": "Thandi Mokoena",
    "wallet_balance": 100,
    "total_savings": 2500,
    "created_at": "2026-01-05T08:00:00+00:00",
}

TRUST_ROW = {
    "user_id": "u1",
    "score": 810,
    "rating": "exceptional",
    "on_time_payment_rate": 1.0,
    "years_active": 4,
    "pools_completed": 6,
    "defaults_count": 0,
    "updated_at": "2026-02-01T00:00:00+00:00",
}


class TestTrustScore:
    def test_neutral(self) -> None:
        trust = TrustScore.neutral()
        assert trust.score == 500
        assert trust.rating == TrustRating.FAIR
        assert trust.metrics == TrustMetrics(
            on_time_payment_rate=0, years_active=0, pools_completed=0, defaults_count=0
        )
        assert trust.updated_at.tzinfo is not None

    def test_from_flat_row(self) -> None:
        trust = TrustScore.from_row(TRUST_ROW)
        assert trust.score == 810
        assert trust.rating == TrustRating.EXCEPTIONAL
        assert trust.metrics.pools_completed == 6

    def test_from_nested_row(self) -> None:
        trust = TrustScore.from_row({"score": 300, "rating": "poor", "metrics": {"defaults_count": 2}})
        assert trust.metrics.defaults_count == 2

    def test_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            TrustScore(score=1001)

    def test_initial_row(self) -> None:
        assert neutral_trust_metrics_row("u9") == {
            "user_id": "u9",
            "score": 500,
            "rating": "fair",
            "on_time_payment_rate": 0,
            "years_active": 0,
            "pools_completed": 0,
            "defaults_count": 0,
        }


class TestUserResponse:
    def test_joined_trust_list(self) -> None:
        user = UserResponse.from_row({**ROW, "trust_score": [TRUST_ROW]})
        assert user.trust_score.score == 810
        assert user.is_active is True
        assert user.last_login_at is None

    @pytest.mark.parametrize("trust", [[], None])
    def test_missing_trust_defaults_to_neutral(self, trust) -> None:
        user = UserResponse.from_row({**ROW, "trust_score": trust})
        assert user.trust_score.score == 500
        assert user.trust_score.rating == TrustRating.FAIR

    def test_joined_trust_object(self) -> None:
        user = UserResponse.from_row({**ROW, "trust_score": TRUST_ROW})
        assert user.trust_score.metrics.years_active == 4


class TestUserUpdate:
    def test_only_set_fields_dumped(self) -> None:
        assert UserUpdate(name="X").model_dump(exclude_unset=True) == {"name": "X"}

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UserUpdate(name="")

    @pytest.mark.parametrize("field", ["name", "avatar_url", "phone", "is_active", "metadata"])
    def test_explicit_null_rejected(self, field) -> None:
        with pytest.raises(ValidationError, match="Field cannot be null"):
            UserUpdate.model_validate({field: None})
