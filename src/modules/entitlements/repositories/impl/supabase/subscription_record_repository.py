from typing import Optional

from src.core.config import settings
from src.core.database.supabase_repository import SupabaseRepository
from src.core.utils import get_logger
from src.modules.entitlements.exceptions import EntitlementsRepositoryError
from src.modules.entitlements.models.subscription_record import SubscriptionRecord
from src.modules.entitlements.repositories.interfaces import ISubscriptionRecordRepository

logger = get_logger(__name__)


class SupabaseSubscriptionRecordRepository(
    SupabaseRepository[SubscriptionRecord], ISubscriptionRecordRepository
):
    def __init__(self, client, table_name: Optional[str] = None):
        super().__init__(
            client,
            table_name or settings.entitlements.subscriptions_table,
            SubscriptionRecord,
            primary_key="user_id",
        )

    def _to_model(self, row) -> SubscriptionRecord:
        return SubscriptionRecord.from_row(row)

    def get_active_record(self, user_id: str) -> Optional[SubscriptionRecord]:
        try:
            result = (
                self.client.table(self.table_name)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            if result.data:
                return self._to_model(result.data[0])
            return None
        except Exception as e:
            logger.error("get_active_record_failed", user_id=user_id, error=str(e))
            raise EntitlementsRepositoryError(
                f"Failed to fetch subscription for user {user_id}", original_error=e
            )
