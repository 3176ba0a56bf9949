"""
Per-tier selection store.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from shared.errors import InvalidMutation, UnknownItemError
from shared.logging import get_logger
from ..catalog.models import (
    Catalog, FlagConfig, SelectConfig, SingleConfig, Tier, TIER_NAMES, derived_value
)
from ..rules.engine import canonical_string

SelectionValue = Optional[Union[str, int, float, bool]]
TierSelections = Dict[str, SelectionValue]
SelectionState = Dict[str, TierSelections]


@dataclass
class RejectedSelection:
    """A restored entry the current catalog no longer accepts."""
    tier: str
    item_id: str
    value: Any
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"tier": self.tier, "item_id": self.item_id, "value": self.value, "reason": self.reason}


class SelectionStore:
    """Holds one selection map per tier for a single loaded catalog.

    Maps are seeded from catalog defaults on construction. Only ``select``
    controls are mutable; ``single`` and ``flag`` entries carry their fixed
    derived value. Switching the active tier never touches any map.
    """

    def __init__(self, catalog: Catalog, active_tier: str = Tier.ESSENTIAL.value):
        self.catalog = catalog
        self.logger = get_logger("configurator.selection_store")
        self._check_tier(active_tier)
        self._active_tier = active_tier
        self._state: SelectionState = self.seed_defaults()

    @property
    def active_tier(self) -> str:
        return self._active_tier

    def seed_defaults(self) -> SelectionState:
        """Install every tier's effective defaults, ignoring requires clauses."""
        self._state = {
            tier: {item.id: derived_value(item.config_for(tier)) for item in self.catalog}
            for tier in TIER_NAMES
        }
        return self.snapshot()

    def switch_tier(self, tier: str) -> str:
        """Change the active tier pointer."""
        self._check_tier(tier)
        self._active_tier = tier
        return tier

    def set_selection(self, tier: str, item_id: str, value: Any) -> SelectionState:
        """Change a select control's value; reject anything else."""
        self._check_tier(tier)
        item = self.catalog.get(item_id)
        if item is None:
            raise InvalidMutation(
                f"Unknown item '{item_id}'",
                details={"tier": tier, "item_id": item_id}
            )

        config = item.config_for(tier)
        if isinstance(config, (SingleConfig, FlagConfig)):
            raise InvalidMutation(
                f"Item '{item_id}' is a read-only {config.kind.value} control in tier {tier}",
                details={"tier": tier, "item_id": item_id, "kind": config.kind.value}
            )
        if not isinstance(config, SelectConfig):
            raise TypeError(f"Unsupported tier config: {type(config).__name__}")

        option = config.find_option(value)
        if option is None:
            raise InvalidMutation(
                f"Value {value!r} is not an option of '{item_id}' in tier {tier}",
                details={
                    "tier": tier,
                    "item_id": item_id,
                    "value": value,
                    "options": [o.value for o in config.options]
                }
            )

        self._state[tier][item_id] = option.value
        self.logger.debug("Selection changed", tier=tier, item_id=item_id, value=option.value)
        return self.snapshot()

    def current_value(self, tier: str, item_id: str) -> SelectionValue:
        """Stored selection for selects; fixed derived value otherwise."""
        self._check_tier(tier)
        item = self.catalog.get(item_id)
        if item is None:
            raise UnknownItemError(item_id, details={"tier": tier})

        config = item.config_for(tier)
        if isinstance(config, SelectConfig):
            return self._state[tier].get(item_id)
        if isinstance(config, SingleConfig):
            return config.text
        if isinstance(config, FlagConfig):
            return config.available
        raise TypeError(f"Unsupported tier config: {type(config).__name__}")

    def tier_selections(self, tier: str) -> TierSelections:
        """Current values of every item in one tier, as read by the evaluator."""
        self._check_tier(tier)
        return {item.id: self.current_value(tier, item.id) for item in self.catalog}

    def snapshot(self) -> SelectionState:
        """Deep copy of the full cross-tier state."""
        return copy.deepcopy(self._state)

    def apply_state(self, active_tier: str, selections: Mapping[str, Mapping[str, Any]]) -> List[RejectedSelection]:
        """Restore externally supplied state on top of the seeded defaults.

        Every entry goes through ``set_selection``; entries the catalog rejects
        are collected rather than raised. Read-only entries are accepted
        silently when they match the derived value.
        """
        rejected: List[RejectedSelection] = []
        for tier, values in selections.items():
            if tier not in TIER_NAMES:
                rejected.append(RejectedSelection(tier, "*", None, "unknown tier"))
                continue
            for item_id, value in values.items():
                item = self.catalog.get(item_id)
                if item is not None and not isinstance(item.config_for(tier), SelectConfig):
                    if canonical_string(value) == canonical_string(derived_value(item.config_for(tier))):
                        continue
                try:
                    self.set_selection(tier, item_id, value)
                except InvalidMutation as e:
                    rejected.append(RejectedSelection(tier, item_id, value, e.message))

        try:
            self.switch_tier(active_tier)
        except InvalidMutation as e:
            rejected.append(RejectedSelection(active_tier, "*", None, e.message))

        if rejected:
            self.logger.warning(
                "Restored state partially rejected",
                rejected=len(rejected),
                catalog=self.catalog.name
            )
        return rejected

    def _check_tier(self, tier: str):
        if tier not in TIER_NAMES:
            raise InvalidMutation(
                f"Unknown tier '{tier}'",
                details={"tier": tier, "tiers": list(TIER_NAMES)}
            )
