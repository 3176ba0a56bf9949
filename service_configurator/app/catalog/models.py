"""
Catalog data models.

The catalog is the single source of truth for items, tiers and options.
``TierConfig`` is a closed variant over three control kinds; code that
dispatches on it handles every kind explicitly and rejects anything else.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from ..rules.models import Expression, Scalar
from ..rules.engine import canonical_string


class Tier(str, Enum):
    """The three fixed product tiers, in display order."""
    ESSENTIAL = "Essential"
    ADVANCED = "Advanced"
    ENTERPRISE = "Enterprise"


TIER_NAMES: Tuple[str, ...] = tuple(tier.value for tier in Tier)


class ControlKind(str, Enum):
    """Control kinds a tier can configure an item as."""
    SINGLE = "single"
    FLAG = "flag"
    SELECT = "select"


@dataclass
class SingleConfig:
    """Fixed text; read-only."""
    text: str
    help: Optional[str] = None
    requires: Optional[Expression] = None
    kind: ControlKind = field(default=ControlKind.SINGLE, init=False)


@dataclass
class FlagConfig:
    """Fixed availability; read-only."""
    available: bool
    help: Optional[str] = None
    requires: Optional[Expression] = None
    kind: ControlKind = field(default=ControlKind.FLAG, init=False)


@dataclass
class SelectOption:
    """One choice of a select control."""
    value: Union[str, int, float]
    label: Optional[str] = None
    help: Optional[str] = None
    requires: Optional[Expression] = None

    @property
    def display_label(self) -> str:
        return self.label if self.label is not None else str(self.value)


@dataclass
class SelectConfig:
    """User-selectable dropdown."""
    options: List[SelectOption]
    default: Optional[Union[str, int, float]] = None
    help: Optional[str] = None
    requires: Optional[Expression] = None
    kind: ControlKind = field(default=ControlKind.SELECT, init=False)

    def find_option(self, value: Any) -> Optional[SelectOption]:
        """Option whose value matches ``value`` under canonical string equality."""
        wanted = canonical_string(value)
        if wanted is None:
            return None
        for option in self.options:
            if canonical_string(option.value) == wanted:
                return option
        return None

    @property
    def effective_default(self) -> Union[str, int, float]:
        """Explicit default resolved to its option value, else the first option."""
        if self.default is not None:
            option = self.find_option(self.default)
            if option is not None:
                return option.value
        return self.options[0].value


TierConfig = Union[SingleConfig, FlagConfig, SelectConfig]


def derived_value(config: TierConfig) -> Scalar:
    """Value a control contributes before any user change."""
    if isinstance(config, SingleConfig):
        return config.text
    if isinstance(config, FlagConfig):
        return config.available
    if isinstance(config, SelectConfig):
        return config.effective_default
    raise TypeError(f"Unsupported tier config: {type(config).__name__}")


@dataclass
class Item:
    """One configurable concern, configured independently per tier."""
    id: str
    group: str
    label: str
    per_tier: Dict[str, TierConfig]
    help: Optional[str] = None

    def config_for(self, tier: str) -> TierConfig:
        return self.per_tier[tier]


@dataclass
class Catalog:
    """Validated catalog; item order is preserved from the document."""
    name: str
    version: str
    items: List[Item] = field(default_factory=list)

    def __post_init__(self):
        self._index: Dict[str, Item] = {item.id: item for item in self.items}

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._index

    def get(self, item_id: str) -> Optional[Item]:
        return self._index.get(item_id)

    @property
    def item_ids(self) -> List[str]:
        return [item.id for item in self.items]

    def groups(self) -> List[str]:
        """Group names in order of first appearance."""
        seen: List[str] = []
        for item in self.items:
            if item.group not in seen:
                seen.append(item.group)
        return seen

    def items_in_group(self, group: str) -> List[Item]:
        return [item for item in self.items if item.group == group]

    def meta(self) -> Dict[str, str]:
        return {"name": self.name, "version": self.version}
