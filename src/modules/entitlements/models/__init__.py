from .access_decision import AccessDecision, RecordResult, UseFeatureResult
from .entitlement import Entitlement, FeatureEntitlement
from .subscription_record import SubscriptionRecord
from .tier import UNLIMITED, Tier, TierCatalogDocument
from .usage_event import AppendResult, UsageEvent, UsageEventCreate
