from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from src.modules.entitlements.enums.degraded_reason import DegradedReason
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.enums.subscription_status import SubscriptionStatus
from src.modules.entitlements.enums.tier_id import TierId
from src.modules.entitlements.models.entitlement import Entitlement, FeatureEntitlement
from src.modules.entitlements.models.subscription_record import SubscriptionRecord


class TestFeatureEnum:
    def test_wire_values(self):
        assert Feature("numerology") is Feature.NUMEROLOGY
        assert Feature("loveMatch") is Feature.LOVE_MATCH
        assert Feature("trustAssessment") is Feature.TRUST_ASSESSMENT

    def test_legacy_spellings(self):
        assert Feature("love_match") is Feature.LOVE_MATCH
        assert Feature("trust_assessment") is Feature.TRUST_ASSESSMENT

    def test_unknown_feature(self):
        with pytest.raises(ValueError):
            Feature("horoscope")

    def test_display_name(self):
        assert Feature.LOVE_MATCH.display_name == "Love Compatibility"


class TestSubscriptionStatus:
    def test_british_spelling(self):
        assert SubscriptionStatus("cancelled") is SubscriptionStatus.CANCELED

    def test_unrecognized_status_never_active(self):
        record = SubscriptionRecord(user_id="u1", tier_id="premium", status="trialing")
        assert record.status == SubscriptionStatus.INCOMPLETE
        assert not record.is_active()


class TestFeatureEntitlement:
    @pytest.mark.parametrize(
        "limit,used,remaining,can_use",
        [
            (3, 0, 3, True),
            (3, 2, 1, True),
            (3, 3, 0, False),
            (3, 7, 0, False),
            (0, 0, 0, False),
            (-1, 0, -1, True),
            (-1, 500, -1, True),
        ],
    )
    def test_remaining_and_can_use(self, limit, used, remaining, can_use):
        fe = FeatureEntitlement(feature=Feature.NUMEROLOGY, limit=limit, used=used)
        assert fe.remaining == remaining
        assert fe.can_use is can_use
        if limit != -1:
            assert 0 <= fe.remaining <= limit

    def test_unknown_usage_is_unusable(self):
        fe = FeatureEntitlement(feature=Feature.NUMEROLOGY, limit=25, used=None)
        assert fe.remaining == 0
        assert fe.can_use is False

    def test_limit_below_unlimited_rejected(self):
        with pytest.raises(ValidationError):
            FeatureEntitlement(feature=Feature.NUMEROLOGY, limit=-2, used=0)

    def test_percentage_thresholds(self):
        fe = FeatureEntitlement(feature=Feature.LOVE_MATCH, limit=10, used=8)
        assert fe.percentage_used == 80.0
        assert fe.is_approaching_limit
        assert not fe.is_critical

        critical = FeatureEntitlement(feature=Feature.LOVE_MATCH, limit=20, used=19)
        assert critical.is_critical

        unlimited = FeatureEntitlement(feature=Feature.LOVE_MATCH, limit=-1, used=1000)
        assert unlimited.percentage_used == 0.0
        assert not unlimited.is_approaching_limit


class TestEntitlement:
    def _entitlement(self, now, reasons=None):
        return Entitlement(
            user_id="u1",
            tier_id=TierId.FREE,
            period_start=datetime(2024, 6, 1, tzinfo=timezone.utc),
            period_end=datetime(2024, 7, 1, tzinfo=timezone.utc),
            features={
                Feature.NUMEROLOGY: FeatureEntitlement(feature=Feature.NUMEROLOGY, limit=3, used=1)
            },
            degraded_reasons=reasons or [],
            resolved_at=now,
        )

    def test_degraded_flag(self, now):
        assert not self._entitlement(now).degraded
        assert self._entitlement(now, [DegradedReason.USAGE_UNAVAILABLE]).degraded

    def test_for_feature(self, now):
        ent = self._entitlement(now)
        assert ent.for_feature(Feature.NUMEROLOGY).used == 1
        assert ent.for_feature(Feature.LOVE_MATCH) is None

    def test_days_until_reset(self, now):
        ent = self._entitlement(now)
        # 2024-06-15 12:00 -> 2024-07-01 00:00 is 15.5 days
        assert ent.days_until_reset(now) == 16
        assert ent.days_until_reset(ent.period_end + timedelta(seconds=1)) == 0

    def test_serializes_feature_keys_as_wire_values(self, now):
        data = self._entitlement(now).model_dump(mode="json")
        assert "numerology" in data["features"]
        assert data["features"]["numerology"]["remaining"] == 2
        assert data["degraded"] is False


class TestSubscriptionRecordFromRow:
    def test_current_layout(self):
        record = SubscriptionRecord.from_row({
            "id": "row-1",
            "user_id": "u1",
            "tier_id": "premium",
            "status": "active",
            "current_period_start": "2024-06-01T00:00:00+00:00",
            "current_period_end": "2024-07-01T00:00:00+00:00",
            "stripe_customer_id": "cus_1",
            "created_at": "2024-06-01T00:00:00+00:00",
        })
        assert record.tier_id == "premium"
        assert record.current_period_end == datetime(2024, 7, 1, tzinfo=timezone.utc)
        assert record.stripe_customer_id == "cus_1"

    def test_legacy_flags_unlimited_wins(self):
        record = SubscriptionRecord.from_row({
            "user_id": "u1",
            "subscription_type": "premium",
            "is_premium": True,
            "is_unlimited": True,
            "starts_at": "2024-06-01T00:00:00Z",
            "ends_at": "2024-07-01T00:00:00Z",
        })
        assert record.tier_id == "unlimited"
        assert record.status == SubscriptionStatus.ACTIVE
        assert record.current_period_start == datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert record.current_period_end == datetime(2024, 7, 1, tzinfo=timezone.utc)

    def test_legacy_premium_flag(self):
        record = SubscriptionRecord.from_row({"user_id": "u1", "is_premium": True})
        assert record.tier_id == "premium"

    def test_legacy_subscription_type(self):
        record = SubscriptionRecord.from_row({"user_id": "u1", "subscription_type": "premium"})
        assert record.tier_id == "premium"

    def test_naive_datetimes_are_utc(self):
        record = SubscriptionRecord.from_row({
            "user_id": "u1",
            "tier_id": "premium",
            "current_period_end": datetime(2024, 7, 1),
        })
        assert record.current_period_end.tzinfo is not None

    def test_is_lapsed(self, now):
        record = SubscriptionRecord(
            user_id="u1", tier_id="premium", current_period_end=now - timedelta(seconds=1)
        )
        assert record.is_lapsed(now)
        assert not record.is_lapsed(now - timedelta(seconds=2))
