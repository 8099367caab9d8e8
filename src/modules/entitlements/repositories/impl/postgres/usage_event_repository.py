from datetime import datetime
from typing import Any, Dict, Optional

from psycopg2 import sql

from src.core.config import settings
from src.core.database.postgres_repository import PostgresRepository
from src.core.utils import get_logger
from src.modules.entitlements.enums.append_outcome import AppendOutcome
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.exceptions import EntitlementsRepositoryError
from src.modules.entitlements.models.usage_event import AppendResult, UsageEvent
from src.modules.entitlements.repositories.interfaces import IUsageEventRepository

logger = get_logger(__name__)


class PostgresUsageEventRepository(PostgresRepository[UsageEvent], IUsageEventRepository):
    model = UsageEvent

    def __init__(self, db, table_name: Optional[str] = None):
        super().__init__(db, table_name or settings.entitlements.usage_events_table, UsageEvent)

    def count_in_window(
        self, user_id: str, feature: Feature, start: datetime, end: datetime
    ) -> int:
        query = sql.SQL("""
            SELECT COUNT(*) AS total FROM {table}
            WHERE user_id = %s
              AND feature = %s
              AND occurred_at >= %s
              AND occurred_at < %s
        """).format(table=self.table_identifier)

        try:
            result = self._execute_query(
                query, (user_id, feature.value, start, end), fetch_one=True
            )
        except Exception as e:
            raise EntitlementsRepositoryError(
                f"Failed to count {feature.value} usage for user {user_id}", original_error=e
            )
        return int(result["total"]) if result else 0

    def append(
        self,
        user_id: str,
        feature: Feature,
        occurred_at: datetime,
        idempotency_key: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AppendResult:
        # NULL keys never conflict, so unkeyed events always insert
        query = sql.SQL("""
            INSERT INTO {table} (user_id, feature, occurred_at, idempotency_key, metadata)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (user_id, feature, idempotency_key) DO NOTHING
            RETURNING *
        """).format(table=self.table_identifier)

        params = (user_id, feature.value, occurred_at, idempotency_key, metadata or {})
        try:
            result = self._execute_query(query, params, fetch_one=True, commit=True)
        except Exception as e:
            raise EntitlementsRepositoryError(
                f"Failed to append {feature.value} usage for user {user_id}", original_error=e
            )

        if result is None:
            logger.info(
                "usage_event_duplicate",
                user_id=user_id,
                feature=feature.value,
                idempotency_key=idempotency_key,
            )
            return AppendResult(outcome=AppendOutcome.DUPLICATE)
        return AppendResult(outcome=AppendOutcome.INSERTED, event=self._to_model(dict(result)))

    def find_by_idempotency_key(
        self, user_id: str, feature: Feature, idempotency_key: str
    ) -> Optional[UsageEvent]:
        try:
            rows = self.find_by(
                {"user_id": user_id, "feature": feature.value, "idempotency_key": idempotency_key},
                limit=1,
            )
        except Exception as e:
            raise EntitlementsRepositoryError(
                f"Failed to look up {feature.value} usage for user {user_id}", original_error=e
            )
        return rows[0] if rows else None
