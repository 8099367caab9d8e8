import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

from src.core.utils import get_logger, run_blocking
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.exceptions import RecordingFailedError
from src.modules.entitlements.models.access_decision import RecordResult
from src.modules.entitlements.models.usage_event import UsageEvent
from src.modules.entitlements.repositories.interfaces import IUsageEventRepository
from src.modules.entitlements.services.billing_period import utc_now

logger = get_logger(__name__)


class UsageRecorder:
    """
    Appends one usage event per approved gated action.

    Call only after the gate allowed the action; quota is not re-checked.
    Store failures are returned on the result, never raised, and not retried.
    """

    def __init__(self, usage_repository: IUsageEventRepository, store_timeout: float = 3.0):
        self.usage_repository = usage_repository
        self.store_timeout = store_timeout

    async def record(
        self,
        user_id: str,
        feature: Feature,
        idempotency_key: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        occurred_at: Optional[datetime] = None,
    ) -> RecordResult:
        occurred_at = occurred_at or utc_now()
        try:
            result = await run_blocking(
                self.usage_repository.append,
                user_id,
                feature,
                occurred_at,
                idempotency_key,
                metadata,
                timeout=self.store_timeout,
            )
        except asyncio.TimeoutError:
            error = RecordingFailedError(
                f"Usage store timed out after {self.store_timeout}s"
            )
            return self._failed(user_id, feature, idempotency_key, error)
        except Exception as e:
            error = RecordingFailedError(str(e))
            return self._failed(user_id, feature, idempotency_key, error)

        if result.duplicate:
            logger.info(
                "usage_recording_duplicate",
                user_id=user_id,
                feature=feature.value,
                idempotency_key=idempotency_key,
            )
            return RecordResult(success=True, duplicate=True)

        logger.info(
            "usage_recorded",
            user_id=user_id,
            feature=feature.value,
            event_id=result.event.event_id if result.event else None,
        )
        return RecordResult(success=True, event=result.event)

    async def find_recorded(
        self, user_id: str, feature: Feature, idempotency_key: str
    ) -> Optional[UsageEvent]:
        """
        The event a previous call recorded under `idempotency_key`, if any.

        Lookup failures are logged and reported as None.
        """
        try:
            return await run_blocking(
                self.usage_repository.find_by_idempotency_key,
                user_id,
                feature,
                idempotency_key,
                timeout=self.store_timeout,
            )
        except asyncio.TimeoutError:
            error = f"Usage store timed out after {self.store_timeout}s"
        except Exception as e:
            error = str(e)
        logger.warning(
            "usage_replay_lookup_failed",
            user_id=user_id,
            feature=feature.value,
            idempotency_key=idempotency_key,
            error=error,
        )
        return None

    def _failed(
        self,
        user_id: str,
        feature: Feature,
        idempotency_key: Optional[str],
        error: RecordingFailedError,
    ) -> RecordResult:
        logger.error(
            "usage_recording_failed",
            user_id=user_id,
            feature=feature.value,
            idempotency_key=idempotency_key,
            error=str(error),
        )
        return RecordResult(success=False, error=str(error))
