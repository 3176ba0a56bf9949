"""
Active-tier export.
"""

from typing import Dict, Optional, Union

from pydantic import BaseModel, Field

from shared.logging import get_logger
from ..catalog.models import Catalog
from ..selection.store import SelectionStore


class CatalogMeta(BaseModel):
    """Catalog identity carried with every export."""
    name: str
    version: str


class ExportPayload(BaseModel):
    """Machine-readable export of one tier's selections."""
    catalog: CatalogMeta = Field(..., description="Catalog identity")
    tier: str = Field(..., description="Exported tier")
    selections: Dict[str, Optional[Union[bool, int, float, str]]] = Field(
        default_factory=dict, description="Current value of every item"
    )

    def to_json(self) -> str:
        """Pretty-printed document for the delivery collaborator."""
        return self.model_dump_json(indent=2)


class ActiveTierExporter:
    """Projects a store's tier into an export payload."""

    def __init__(self):
        self.logger = get_logger("configurator.exporter")

    def export(self, catalog: Catalog, store: SelectionStore, active_tier: Optional[str] = None) -> ExportPayload:
        """Every item's current value, unmet dependencies included."""
        tier = active_tier or store.active_tier
        selections = {item.id: store.current_value(tier, item.id) for item in catalog}
        self.logger.info("Tier exported", catalog=catalog.name, tier=tier, items=len(selections))
        return ExportPayload(
            catalog=CatalogMeta(name=catalog.name, version=catalog.version),
            tier=tier,
            selections=selections
        )
