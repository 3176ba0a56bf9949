"""
Configuration session.

A session scopes one loaded catalog and its selection store. It is the unit
the service builds per request from a token, and the place where the store
and the dependency evaluator meet to answer "is this control valid now".
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shared.errors import DecodeError
from shared.logging import get_logger
from .catalog.models import Catalog, SelectConfig, Tier
from .codec.token import StateCodec
from .export.exporter import ActiveTierExporter, ExportPayload
from .rules.engine import DependencyEvaluator, canonical_string
from .rules.models import referenced_ids
from .selection.store import RejectedSelection, SelectionState, SelectionStore

logger = get_logger("configurator.session")


@dataclass
class OptionState:
    value: Any
    label: str
    valid: bool
    selected: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "label": self.label, "valid": self.valid, "selected": self.selected}


@dataclass
class ControlState:
    """Current validity of one item's control in one tier."""
    item_id: str
    group: str
    label: str
    kind: str
    value: Any
    valid: bool
    depends_on: List[str] = field(default_factory=list)
    options: List[OptionState] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "item_id": self.item_id,
            "group": self.group,
            "label": self.label,
            "kind": self.kind,
            "value": self.value,
            "valid": self.valid,
            "depends_on": self.depends_on,
        }
        if self.kind == "select":
            data["options"] = [option.to_dict() for option in self.options]
        return data


class ConfigurationSession:
    """One catalog, one store, one active tier."""

    def __init__(self, catalog: Catalog, store: Optional[SelectionStore] = None,
                 codec: Optional[StateCodec] = None, evaluator: Optional[DependencyEvaluator] = None):
        self.catalog = catalog
        self.store = store or SelectionStore(catalog)
        self.codec = codec or StateCodec()
        self.evaluator = evaluator or DependencyEvaluator()
        self.exporter = ActiveTierExporter()
        self.restored_from_token = False
        self.rejected: List[RejectedSelection] = []

    @classmethod
    def new(cls, catalog: Catalog) -> "ConfigurationSession":
        """Default-seeded session on the first tier."""
        return cls(catalog, SelectionStore(catalog, Tier.ESSENTIAL.value))

    @classmethod
    def restore(cls, catalog: Catalog, token: Optional[str],
                codec: Optional[StateCodec] = None) -> "ConfigurationSession":
        """Rebuild a session from a token, falling back to defaults.

        Never raises for a bad token: a malformed one yields a default-seeded
        session, and entries the catalog no longer accepts are dropped and
        recorded in ``rejected``.
        """
        session = cls(catalog, codec=codec)
        if not token:
            return session

        try:
            state = session.codec.decode(token)
        except DecodeError as e:
            logger.warning("Token rejected, using defaults", reason=e.message, catalog=catalog.name)
            return session

        session.rejected = session.store.apply_state(state.active_tier, state.selections)
        session.restored_from_token = True
        return session

    @property
    def active_tier(self) -> str:
        return self.store.active_tier

    def select(self, tier: str, item_id: str, value: Any) -> SelectionState:
        return self.store.set_selection(tier, item_id, value)

    def switch_tier(self, tier: str) -> str:
        return self.store.switch_tier(tier)

    def token(self) -> str:
        return self.codec.encode(self.store.active_tier, self.store.snapshot())

    def export(self) -> ExportPayload:
        return self.exporter.export(self.catalog, self.store, self.store.active_tier)

    def control_states(self, tier: Optional[str] = None) -> List[ControlState]:
        """Validity of every item and option of ``tier`` in catalog order."""
        tier = tier or self.store.active_tier
        selections = self.store.tier_selections(tier)
        states: List[ControlState] = []
        for item in self.catalog:
            config = item.config_for(tier)
            current = selections[item.id]
            state = ControlState(
                item_id=item.id,
                group=item.group,
                label=item.label,
                kind=config.kind.value,
                value=current,
                valid=self.evaluator.is_satisfied(config.requires, selections),
                depends_on=referenced_ids(config.requires) if config.requires is not None else [],
            )
            if isinstance(config, SelectConfig):
                selected = canonical_string(current)
                state.options = [
                    OptionState(
                        value=option.value,
                        label=option.display_label,
                        valid=self.evaluator.is_satisfied(option.requires, selections),
                        selected=canonical_string(option.value) == selected,
                    )
                    for option in config.options
                ]
            states.append(state)
        return states

    def view(self) -> Dict[str, Any]:
        """JSON-ready description of the session for the front end."""
        return {
            "catalog": self.catalog.meta(),
            "active_tier": self.store.active_tier,
            "token": self.token(),
            "restored_from_token": self.restored_from_token,
            "rejected": [entry.to_dict() for entry in self.rejected],
            "selections": self.store.snapshot(),
            "groups": self.catalog.groups(),
            "controls": [state.to_dict() for state in self.control_states()],
        }
