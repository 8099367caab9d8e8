from datetime import datetime
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError

from src.core.config import settings
from src.core.database.supabase_repository import SupabaseRepository
from src.core.utils import get_logger
from src.modules.entitlements.enums.append_outcome import AppendOutcome
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.exceptions import EntitlementsRepositoryError
from src.modules.entitlements.models.usage_event import AppendResult, UsageEvent
from src.modules.entitlements.repositories.interfaces import IUsageEventRepository

logger = get_logger(__name__)

UNIQUE_VIOLATION = "23505"


class SupabaseUsageEventRepository(SupabaseRepository[UsageEvent], IUsageEventRepository):
    def __init__(self, client, table_name: Optional[str] = None):
        super().__init__(
            client,
            table_name or settings.entitlements.usage_events_table,
            UsageEvent,
            primary_key="event_id",
        )

    def count_in_window(
        self, user_id: str, feature: Feature, start: datetime, end: datetime
    ) -> int:
        try:
            result = (
                self.client.table(self.table_name)
                .select("event_id", count="exact", head=True)
                .eq("user_id", user_id)
                .eq("feature", feature.value)
                .gte("occurred_at", start.isoformat())
                .lt("occurred_at", end.isoformat())
                .execute()
            )
            return result.count or 0
        except Exception as e:
            logger.error(
                "count_in_window_failed",
                user_id=user_id,
                feature=feature.value,
                error=str(e),
            )
            raise EntitlementsRepositoryError(
                f"Failed to count {feature.value} usage for user {user_id}", original_error=e
            )

    def append(
        self,
        user_id: str,
        feature: Feature,
        occurred_at: datetime,
        idempotency_key: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AppendResult:
        payload = {
            "user_id": user_id,
            "feature": feature.value,
            "occurred_at": occurred_at.isoformat(),
            "idempotency_key": idempotency_key,
            "metadata": metadata or {},
        }
        try:
            result = self.client.table(self.table_name).insert(payload).execute()
            if result.data:
                return AppendResult(
                    outcome=AppendOutcome.INSERTED, event=self._to_model(result.data[0])
                )
            raise EntitlementsRepositoryError(
                f"Insert into {self.table_name} returned no row for user {user_id}"
            )
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.info(
                    "usage_event_duplicate",
                    user_id=user_id,
                    feature=feature.value,
                    idempotency_key=idempotency_key,
                )
                return AppendResult(outcome=AppendOutcome.DUPLICATE)
            logger.error("append_usage_event_failed", user_id=user_id, error=str(e))
            raise EntitlementsRepositoryError(
                f"Failed to append {feature.value} usage for user {user_id}", original_error=e
            )
        except EntitlementsRepositoryError:
            raise
        except Exception as e:
            logger.error("append_usage_event_failed", user_id=user_id, error=str(e))
            raise EntitlementsRepositoryError(
                f"Failed to append {feature.value} usage for user {user_id}", original_error=e
            )

    def find_by_idempotency_key(
        self, user_id: str, feature: Feature, idempotency_key: str
    ) -> Optional[UsageEvent]:
        try:
            rows = self.find_by(
                {"user_id": user_id, "feature": feature.value, "idempotency_key": idempotency_key},
                limit=1,
            )
        except Exception as e:
            logger.error("find_usage_event_failed", user_id=user_id, error=str(e))
            raise EntitlementsRepositoryError(
                f"Failed to look up {feature.value} usage for user {user_id}", original_error=e
            )
        return rows[0] if rows else None
