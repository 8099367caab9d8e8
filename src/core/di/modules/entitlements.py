from dependency_injector import containers, providers

from src.core.config.settings import settings
from src.modules.entitlements.catalog.tier_catalog import TierCatalog
from src.modules.entitlements.repositories.impl.memory import (
    InMemorySubscriptionRecordRepository,
    InMemoryUsageEventRepository,
)
from src.modules.entitlements.repositories.impl.postgres import (
    PostgresSubscriptionRecordRepository,
    PostgresUsageEventRepository,
)
from src.modules.entitlements.repositories.impl.supabase import (
    SupabaseSubscriptionRecordRepository,
    SupabaseUsageEventRepository,
)
from src.modules.entitlements.services.access_gate import AccessGate
from src.modules.entitlements.services.entitlement_cache import EntitlementCache
from src.modules.entitlements.services.entitlement_resolver import EntitlementResolver
from src.modules.entitlements.services.entitlement_service import EntitlementService
from src.modules.entitlements.services.usage_recorder import UsageRecorder


class EntitlementsContainer(containers.DeclarativeContainer):
    """
    Entitlements Module Container.
    """

    core = providers.DependenciesContainer()

    # Repositories
    subscription_record_repository = providers.Selector(
        core.db_backend,
        supabase=providers.Factory(SupabaseSubscriptionRecordRepository, client=core.supabase_client),
        postgres=providers.Factory(PostgresSubscriptionRecordRepository, db=core.postgres_db),
        memory=providers.Singleton(InMemorySubscriptionRecordRepository),
    )

    usage_event_repository = providers.Selector(
        core.db_backend,
        supabase=providers.Factory(SupabaseUsageEventRepository, client=core.supabase_client),
        postgres=providers.Factory(PostgresUsageEventRepository, db=core.postgres_db),
        memory=providers.Singleton(InMemoryUsageEventRepository),
    )

    # Catalog
    tier_catalog = providers.Singleton(
        TierCatalog.load,
        path=settings.entitlements.tier_catalog_path,
    )

    # Services
    entitlement_resolver = providers.Singleton(
        EntitlementResolver,
        subscription_repository=subscription_record_repository,
        usage_repository=usage_event_repository,
        catalog=tier_catalog,
        store_timeout=settings.entitlements.store_timeout_seconds,
    )

    entitlement_cache = providers.Singleton(
        EntitlementCache,
        resolver=entitlement_resolver,
        ttl_seconds=settings.entitlements.cache_ttl_seconds,
        refresh_interval_seconds=settings.entitlements.refresh_interval_seconds,
        idle_seconds=settings.entitlements.cache_idle_seconds,
    )

    access_gate = providers.Factory(
        AccessGate,
        catalog=tier_catalog,
        allow_degraded_subscription=settings.entitlements.allow_degraded_subscription,
    )

    usage_recorder = providers.Factory(
        UsageRecorder,
        usage_repository=usage_event_repository,
        store_timeout=settings.entitlements.store_timeout_seconds,
    )

    entitlement_service = providers.Singleton(
        EntitlementService,
        cache=entitlement_cache,
        gate=access_gate,
        recorder=usage_recorder,
        catalog=tier_catalog,
    )
