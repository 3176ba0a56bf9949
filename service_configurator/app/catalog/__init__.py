"""
Catalog package.

Defines the catalog model (items, tiers, control kinds, options), the
relaxed-JSON parser with exhaustive structural validation, and the source
that loads catalog documents from disk or an override URL.

Modules of interest:
- models: Catalog, Item, the TierConfig variants and the fixed tiers.
- parser: CatalogParser and StructuralIssue.
- source: CatalogSource for default-path and URL loading.
"""

from .models import (
    Catalog, ControlKind, FlagConfig, Item, SelectConfig, SelectOption,
    SingleConfig, Tier, TIER_NAMES, TierConfig, derived_value
)
from .parser import CatalogParser, StructuralIssue, catalog_to_document

__all__ = [
    "Catalog", "ControlKind", "FlagConfig", "Item", "SelectConfig",
    "SelectOption", "SingleConfig", "Tier", "TIER_NAMES", "TierConfig",
    "derived_value", "CatalogParser", "StructuralIssue", "catalog_to_document",
]
