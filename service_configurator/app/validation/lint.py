"""
Catalog validation and lint engine.

Errors are the parser's structural issues and block rendering. Warnings
never block: missing help text, selects without an explicit default, and
default viability, i.e. requires clauses that already fail against a tier's
freshly seeded defaults.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from shared.logging import get_logger
from ..catalog.models import Catalog, SelectConfig, TIER_NAMES
from ..catalog.parser import CatalogParser, RawDocument, StructuralIssue
from ..rules.engine import DependencyEvaluator, canonical_string
from ..selection.store import SelectionStore


class WarningCategory(str, Enum):
    DOCUMENTATION = "documentation"
    DEFAULTS = "defaults"
    DEFAULT_VIABILITY = "default_viability"


@dataclass
class LintWarning:
    """Non-blocking lint finding."""
    code: str
    category: WarningCategory
    message: str
    tier: Optional[str] = None
    item_id: Optional[str] = None
    option_value: Optional[Union[str, int, float]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "tier": self.tier,
            "item_id": self.item_id,
            "option_value": self.option_value,
        }


@dataclass
class LintReport:
    """Result of validating one catalog document."""
    errors: List[StructuralIssue] = field(default_factory=list)
    warnings: List[LintWarning] = field(default_factory=list)
    catalog: Optional[Catalog] = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def warnings_for(self, category: WarningCategory) -> List[LintWarning]:
        return [w for w in self.warnings if w.category == category]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


class LintEngine:
    """Runs structural checks and semantic lint over a catalog."""

    def __init__(self, parser: Optional[CatalogParser] = None,
                 evaluator: Optional[DependencyEvaluator] = None):
        self.parser = parser or CatalogParser()
        self.evaluator = evaluator or DependencyEvaluator()
        self.logger = get_logger("configurator.lint")

    def validate(self, source: Union[RawDocument, Catalog]) -> LintReport:
        """Validate a raw document or an already parsed catalog."""
        if isinstance(source, Catalog):
            catalog = source
        else:
            catalog, errors = self.parser.inspect(source)
            if errors:
                self.logger.info("Lint found structural errors", errors=len(errors))
                return LintReport(errors=errors)

        warnings = self.documentation_warnings(catalog)
        warnings.extend(self.default_warnings(catalog))
        warnings.extend(self.default_viability_warnings(catalog))

        self.logger.info(
            "Lint completed",
            catalog=catalog.name,
            version=catalog.version,
            warnings=len(warnings)
        )
        return LintReport(warnings=warnings, catalog=catalog)

    def documentation_warnings(self, catalog: Catalog) -> List[LintWarning]:
        """Missing help text at item, tier and option level."""
        warnings: List[LintWarning] = []
        for item in catalog:
            if not item.help:
                warnings.append(LintWarning(
                    "missing_item_help", WarningCategory.DOCUMENTATION,
                    f"Item '{item.id}' has no help text",
                    item_id=item.id
                ))
            for tier in TIER_NAMES:
                config = item.config_for(tier)
                if not config.help:
                    warnings.append(LintWarning(
                        "missing_tier_help", WarningCategory.DOCUMENTATION,
                        f"Item '{item.id}' has no help text in tier {tier}",
                        tier=tier, item_id=item.id
                    ))
                if isinstance(config, SelectConfig):
                    for option in config.options:
                        if not option.help:
                            warnings.append(LintWarning(
                                "missing_option_help", WarningCategory.DOCUMENTATION,
                                f"Option {option.value!r} of '{item.id}' has no help text in tier {tier}",
                                tier=tier, item_id=item.id, option_value=option.value
                            ))
        return warnings

    def default_warnings(self, catalog: Catalog) -> List[LintWarning]:
        """Selects relying on the implicit first-option default."""
        warnings: List[LintWarning] = []
        for item in catalog:
            for tier in TIER_NAMES:
                config = item.config_for(tier)
                if isinstance(config, SelectConfig) and config.default is None:
                    warnings.append(LintWarning(
                        "select_without_default", WarningCategory.DEFAULTS,
                        f"Item '{item.id}' has no explicit default in tier {tier}; "
                        f"first option {config.options[0].value!r} is used",
                        tier=tier, item_id=item.id
                    ))
        return warnings

    def default_viability_warnings(self, catalog: Catalog) -> List[LintWarning]:
        """Requires clauses that fail against each tier's seeded defaults.

        Runs against a scratch store; no caller-owned store is touched.
        """
        scratch = SelectionStore(catalog)
        warnings: List[LintWarning] = []
        for tier in TIER_NAMES:
            selections = scratch.tier_selections(tier)
            for item in catalog:
                config = item.config_for(tier)
                if not self.evaluator.is_satisfied(config.requires, selections):
                    warnings.append(LintWarning(
                        "default_requires_unmet", WarningCategory.DEFAULT_VIABILITY,
                        f"Item '{item.id}' is not valid with tier {tier} defaults",
                        tier=tier, item_id=item.id
                    ))
                if not isinstance(config, SelectConfig):
                    continue
                selected = canonical_string(selections[item.id])
                for option in config.options:
                    if self.evaluator.is_satisfied(option.requires, selections):
                        continue
                    is_default = canonical_string(option.value) == selected
                    warnings.append(LintWarning(
                        "default_option_requires_unmet" if is_default else "option_requires_unmet",
                        WarningCategory.DEFAULT_VIABILITY,
                        f"Option {option.value!r} of '{item.id}' is "
                        f"{'the default but ' if is_default else ''}not valid with tier {tier} defaults",
                        tier=tier, item_id=item.id, option_value=option.value
                    ))
        return warnings
