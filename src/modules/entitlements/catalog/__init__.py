from src.modules.entitlements.catalog.tier_catalog import TierCatalog

__all__ = ["TierCatalog"]
