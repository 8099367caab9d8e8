"""
Tier catalog.

The only place that knows limit numbers. Loaded once at startup from a
versioned JSON document so that changing a limit is a config deploy.
"""

import json
from importlib import resources
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from src.core.utils import get_logger
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.enums.tier_id import TierId
from src.modules.entitlements.exceptions import TierCatalogError
from src.modules.entitlements.models.tier import UNLIMITED, Tier, TierCatalogDocument

logger = get_logger(__name__)

DEFAULT_CATALOG_RESOURCE = "tiers.json"


class TierCatalog:
    def __init__(self, document: TierCatalogDocument):
        self._version = document.version
        self._tiers: Dict[TierId, Tier] = {t.id: t for t in document.tiers}

    @classmethod
    def from_dict(cls, data: dict) -> "TierCatalog":
        try:
            document = TierCatalogDocument.model_validate(data)
        except ValidationError as e:
            raise TierCatalogError(f"Invalid tier catalog: {e}") from e
        return cls(document)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "TierCatalog":
        """
        Load the catalog from `path`, or the packaged tiers.json.

        Raises:
            TierCatalogError: If the document cannot be read or is invalid.
        """
        try:
            if path:
                raw = Path(path).read_text(encoding="utf-8")
            else:
                raw = (
                    resources.files(__package__)
                    .joinpath(DEFAULT_CATALOG_RESOURCE)
                    .read_text(encoding="utf-8")
                )
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as e:
            raise TierCatalogError(f"Unable to read tier catalog from {path or DEFAULT_CATALOG_RESOURCE}: {e}") from e

        catalog = cls.from_dict(data)
        logger.info(
            "tier_catalog_loaded",
            version=catalog.version,
            tiers=[t.id.value for t in catalog.all_tiers()],
            source=str(path) if path else DEFAULT_CATALOG_RESOURCE,
        )
        return catalog

    @property
    def version(self) -> str:
        return self._version

    def get_tier(self, tier_id: Optional[Union[str, TierId]]) -> Tier:
        """Resolve a tier id. Unknown or empty ids fall back to free."""
        try:
            key = TierId(tier_id) if tier_id else TierId.FREE
        except ValueError:
            logger.warning("unknown_tier_id", tier_id=str(tier_id))
            key = TierId.FREE
        return self._tiers.get(key) or self._tiers[TierId.FREE]

    def all_tiers(self) -> List[Tier]:
        return sorted(self._tiers.values(), key=lambda t: t.rank)

    def suggest_upgrade(self, tier_id: Union[str, TierId], feature: Feature) -> Optional[Tier]:
        """
        Lowest-ranked tier above `tier_id` that gives more of `feature`.
        """
        current = self.get_tier(tier_id)
        current_limit = current.limits[feature]
        if current_limit == UNLIMITED:
            return None

        for tier in self.all_tiers():
            if tier.rank <= current.rank:
                continue
            limit = tier.limits[feature]
            if limit == UNLIMITED or limit > current_limit:
                return tier
        return None
