from typing import Optional

from psycopg2 import sql

from src.core.config import settings
from src.core.database.postgres_repository import PostgresRepository
from src.core.utils import get_logger
from src.modules.entitlements.exceptions import EntitlementsRepositoryError
from src.modules.entitlements.models.subscription_record import SubscriptionRecord
from src.modules.entitlements.repositories.interfaces import ISubscriptionRecordRepository

logger = get_logger(__name__)


class PostgresSubscriptionRecordRepository(
    PostgresRepository[SubscriptionRecord], ISubscriptionRecordRepository
):
    model = SubscriptionRecord

    def __init__(self, db, table_name: Optional[str] = None):
        super().__init__(
            db, table_name or settings.entitlements.subscriptions_table, SubscriptionRecord
        )

    def _to_model(self, row) -> SubscriptionRecord:
        return SubscriptionRecord.from_row(row)

    def get_active_record(self, user_id: str) -> Optional[SubscriptionRecord]:
        query = sql.SQL("""
            SELECT * FROM {table}
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT 1
        """).format(table=self.table_identifier)

        try:
            result = self._execute_query(query, (user_id,), fetch_one=True)
        except Exception as e:
            raise EntitlementsRepositoryError(
                f"Failed to fetch subscription for user {user_id}", original_error=e
            )
        return self._to_model(dict(result)) if result else None
