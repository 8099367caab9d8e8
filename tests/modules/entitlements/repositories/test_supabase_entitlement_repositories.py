import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from postgrest.exceptions import APIError

from src.modules.entitlements.enums.append_outcome import AppendOutcome
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.exceptions import EntitlementsRepositoryError
from src.modules.entitlements.repositories.impl.supabase import (
    SupabaseSubscriptionRecordRepository,
    SupabaseUsageEventRepository,
)

START = datetime(2024, 6, 1, tzinfo=timezone.utc)
END = datetime(2024, 7, 1, tzinfo=timezone.utc)


def _query(data=None, count=None):
    query = MagicMock()
    for method in ("select", "eq", "gte", "lt", "order", "limit", "insert"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=data, count=count)
    return query


class TestSupabaseSubscriptionRecordRepository(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.repo = SupabaseSubscriptionRecordRepository(self.client)

    def test_uses_configured_table(self):
        self.assertEqual(self.repo.table_name, "subscriptions")

    def test_get_active_record_returns_latest(self):
        query = _query(data=[{
            "user_id": "u1",
            "tier_id": "premium",
            "status": "active",
            "current_period_start": "2024-06-01T00:00:00+00:00",
            "current_period_end": "2024-07-01T00:00:00+00:00",
        }])
        self.client.table.return_value = query

        record = self.repo.get_active_record("u1")

        self.client.table.assert_called_with("subscriptions")
        query.eq.assert_called_with("user_id", "u1")
        query.order.assert_called_with("created_at", desc=True)
        query.limit.assert_called_with(1)
        self.assertEqual(record.tier_id, "premium")
        self.assertEqual(record.current_period_end, END)

    def test_get_active_record_maps_legacy_row(self):
        self.client.table.return_value = _query(data=[{
            "user_id": "u1",
            "is_unlimited": True,
            "ends_at": "2024-07-01T00:00:00+00:00",
        }])

        record = self.repo.get_active_record("u1")

        self.assertEqual(record.tier_id, "unlimited")
        self.assertEqual(record.current_period_end, END)

    def test_get_active_record_none(self):
        self.client.table.return_value = _query(data=[])
        self.assertIsNone(self.repo.get_active_record("u1"))

    def test_get_active_record_wraps_errors(self):
        self.client.table.side_effect = RuntimeError("network down")

        with self.assertRaises(EntitlementsRepositoryError) as ctx:
            self.repo.get_active_record("u1")
        self.assertIsInstance(ctx.exception.original_error, RuntimeError)


class TestSupabaseUsageEventRepository(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.repo = SupabaseUsageEventRepository(self.client)

    def test_count_in_window(self):
        query = _query(data=[], count=4)
        self.client.table.return_value = query

        total = self.repo.count_in_window("u1", Feature.LOVE_MATCH, START, END)

        self.assertEqual(total, 4)
        query.select.assert_called_with("event_id", count="exact", head=True)
        query.eq.assert_any_call("user_id", "u1")
        query.eq.assert_any_call("feature", "loveMatch")
        query.gte.assert_called_with("occurred_at", START.isoformat())
        query.lt.assert_called_with("occurred_at", END.isoformat())

    def test_count_in_window_missing_count(self):
        self.client.table.return_value = _query(data=[], count=None)
        self.assertEqual(self.repo.count_in_window("u1", Feature.NUMEROLOGY, START, END), 0)

    def test_count_in_window_wraps_errors(self):
        query = _query()
        query.execute.side_effect = RuntimeError("timeout")
        self.client.table.return_value = query

        with self.assertRaises(EntitlementsRepositoryError):
            self.repo.count_in_window("u1", Feature.NUMEROLOGY, START, END)

    def test_append_inserted(self):
        query = _query(data=[{
            "event_id": "evt-1",
            "user_id": "u1",
            "feature": "numerology",
            "occurred_at": START.isoformat(),
            "idempotency_key": "k1",
            "metadata": {"name": "Ada"},
            "created_at": START.isoformat(),
        }])
        self.client.table.return_value = query

        result = self.repo.append("u1", Feature.NUMEROLOGY, START, "k1", {"name": "Ada"})

        self.assertEqual(result.outcome, AppendOutcome.INSERTED)
        self.assertEqual(result.event.event_id, "evt-1")
        payload = query.insert.call_args.args[0]
        self.assertEqual(payload["feature"], "numerology")
        self.assertEqual(payload["idempotency_key"], "k1")
        self.assertEqual(payload["metadata"], {"name": "Ada"})

    def test_append_unique_violation_is_duplicate(self):
        query = _query()
        query.execute.side_effect = APIError({
            "code": "23505",
            "message": "duplicate key value violates unique constraint",
            "details": "",
            "hint": "",
        })
        self.client.table.return_value = query

        result = self.repo.append("u1", Feature.NUMEROLOGY, START, "k1")

        self.assertEqual(result.outcome, AppendOutcome.DUPLICATE)
        self.assertIsNone(result.event)

    def test_append_other_api_error_raises(self):
        query = _query()
        query.execute.side_effect = APIError({
            "code": "42501",
            "message": "permission denied",
            "details": "",
            "hint": "",
        })
        self.client.table.return_value = query

        with self.assertRaises(EntitlementsRepositoryError):
            self.repo.append("u1", Feature.NUMEROLOGY, START)

    def test_append_empty_response_raises(self):
        self.client.table.return_value = _query(data=[])

        with self.assertRaises(EntitlementsRepositoryError):
            self.repo.append("u1", Feature.NUMEROLOGY, START)

    def test_find_by_idempotency_key(self):
        query = _query(data=[{
            "event_id": "evt-1",
            "user_id": "u1",
            "feature": "loveMatch",
            "occurred_at": START.isoformat(),
            "idempotency_key": "k1",
            "metadata": {},
            "created_at": START.isoformat(),
        }])
        self.client.table.return_value = query

        event = self.repo.find_by_idempotency_key("u1", Feature.LOVE_MATCH, "k1")

        self.assertEqual(event.event_id, "evt-1")
        query.eq.assert_any_call("feature", "loveMatch")
        query.eq.assert_any_call("idempotency_key", "k1")
        query.limit.assert_called_with(1)

    def test_find_by_idempotency_key_wraps_errors(self):
        query = _query()
        query.execute.side_effect = RuntimeError("timeout")
        self.client.table.return_value = query

        with self.assertRaises(EntitlementsRepositoryError):
            self.repo.find_by_idempotency_key("u1", Feature.NUMEROLOGY, "k1")
