"""
Request and response models for the Configurator Service API.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class SelectionChangeRequest(BaseModel):
    """Request model for changing one select control."""
    config: Optional[str] = Field(None, description="Current configuration token")
    catalog: Optional[str] = Field(None, description="Absolute catalog override URL")
    tier: str = Field(..., description="Tier whose selection changes")
    item_id: str = Field(..., description="Item id")
    value: Union[bool, int, float, str] = Field(..., description="New option value")


class TierSwitchRequest(BaseModel):
    """Request model for switching the active tier."""
    config: Optional[str] = Field(None, description="Current configuration token")
    catalog: Optional[str] = Field(None, description="Absolute catalog override URL")
    tier: str = Field(..., description="Tier to activate")


class CatalogResponse(BaseModel):
    """Response model for a loaded, structurally valid catalog."""
    catalog: Dict[str, Any]
    groups: List[str]
    warnings: List[Dict[str, Any]] = Field(default_factory=list)
