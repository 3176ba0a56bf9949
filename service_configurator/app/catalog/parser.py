"""
Catalog document parser and structural validator.

Accepts relaxed JSON (comments, trailing commas) via ``json5`` and builds a
typed ``Catalog``. Every structural rule is checked in a single pass and all
violations are reported together; nothing is evaluated here.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

import json5

from shared.errors import StructuralError
from shared.logging import get_logger
from ..rules.engine import canonical_string
from ..rules.models import (
    AllOf, AnyOf, Combinator, Condition, ConditionOperator, Expression, Not
)
from .models import (
    Catalog, ControlKind, FlagConfig, Item, SelectConfig, SelectOption,
    SingleConfig, TIER_NAMES, TierConfig
)

RawDocument = Union[str, bytes, Mapping[str, Any]]

_COMBINATOR_KEYS = {c.value for c in Combinator}
_OPERATORS = {op.value: op for op in ConditionOperator}


@dataclass
class StructuralIssue:
    """One violated structural rule."""
    code: str
    path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "path": self.path, "message": self.message}


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int beyond float range
        return False


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, bool)) or _is_number(value)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


class CatalogParser:
    """Parses catalog documents into ``Catalog`` objects."""

    def __init__(self):
        self.logger = get_logger("configurator.catalog_parser")

    def parse(self, raw: RawDocument) -> Catalog:
        """Parse and validate; raise ``StructuralError`` with every issue found."""
        catalog, issues = self.inspect(raw)
        if issues:
            self.logger.warning("Catalog rejected", issue_count=len(issues))
            raise StructuralError(issues)
        self.logger.info(
            "Catalog parsed",
            name=catalog.name,
            version=catalog.version,
            items=len(catalog)
        )
        return catalog

    def check(self, raw: RawDocument) -> List[StructuralIssue]:
        """Return the structural issue batch without raising."""
        return self.inspect(raw)[1]

    def inspect(self, raw: RawDocument) -> Tuple[Optional[Catalog], List[StructuralIssue]]:
        """Catalog (None when any issue exists) together with the issue batch."""
        issues: List[StructuralIssue] = []
        document = self._load(raw, issues)
        if document is None:
            return None, issues
        builder = _Builder(issues)
        try:
            catalog = builder.build(document)
        except RecursionError:
            issues.append(StructuralIssue("invalid_document", "$", "Document is nested too deeply"))
            return None, issues
        return catalog, issues

    def _load(self, raw: RawDocument, issues: List[StructuralIssue]) -> Optional[Mapping[str, Any]]:
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                issues.append(StructuralIssue("invalid_document", "$", f"Document is not UTF-8: {e}"))
                return None
        if isinstance(raw, str):
            try:
                raw = json5.loads(raw)
            except ValueError as e:
                issues.append(StructuralIssue("invalid_document", "$", f"Document is not valid JSON: {e}"))
                return None
            except RecursionError:
                issues.append(StructuralIssue("invalid_document", "$", "Document is nested too deeply"))
                return None
        if not isinstance(raw, Mapping):
            issues.append(StructuralIssue("invalid_document", "$", "Document must be an object"))
            return None
        return raw


class _Builder:
    """Single-pass builder that records issues instead of stopping."""

    def __init__(self, issues: List[StructuralIssue]):
        self.issues = issues
        self.known_ids: Set[str] = set()

    def error(self, code: str, path: str, message: str):
        self.issues.append(StructuralIssue(code, path, message))

    def build(self, document: Mapping[str, Any]) -> Optional[Catalog]:
        name = self._require_string(document, "name", "")
        version = self._require_string(document, "version", "")

        raw_items = document.get("items")
        if not isinstance(raw_items, list):
            self.error("invalid_items", "items", "'items' must be an array")
            raw_items = []

        # ids first, so requires clauses may reference items declared later
        for index, raw_item in enumerate(raw_items):
            if isinstance(raw_item, Mapping) and isinstance(raw_item.get("id"), str) and raw_item["id"]:
                item_id = raw_item["id"]
                if item_id in self.known_ids:
                    self.error("duplicate_id", f"items[{index}].id", f"Duplicate item id '{item_id}'")
                self.known_ids.add(item_id)

        items: List[Item] = []
        for index, raw_item in enumerate(raw_items):
            item = self._build_item(raw_item, f"items[{index}]")
            if item is not None:
                items.append(item)

        if self.issues:
            return None
        return Catalog(name=name, version=version, items=items)

    def _require_string(self, data: Mapping[str, Any], key: str, path: str, allow_empty: bool = True) -> Optional[str]:
        value = data.get(key)
        if not isinstance(value, str) or (not allow_empty and not value):
            qualifier = "a non-empty" if not allow_empty else "a"
            self.error(f"invalid_{key}", _join(path, key), f"'{key}' must be {qualifier} string")
            return None
        return value

    def _optional_string(self, data: Mapping[str, Any], key: str, path: str) -> Optional[str]:
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            self.error(f"invalid_{key}", _join(path, key), f"'{key}' must be a string when present")
            return None
        return value

    def _build_item(self, raw: Any, path: str) -> Optional[Item]:
        if not isinstance(raw, Mapping):
            self.error("invalid_item", path, "Item must be an object")
            return None

        item_id = self._require_string(raw, "id", path, allow_empty=False)
        group = self._require_string(raw, "group", path)
        label = self._require_string(raw, "label", path)
        help_text = self._optional_string(raw, "help", path)

        per_tier_raw = raw.get("perTier")
        per_tier: Dict[str, TierConfig] = {}
        if not isinstance(per_tier_raw, Mapping):
            self.error("invalid_per_tier", f"{path}.perTier", "'perTier' must be an object")
        else:
            for tier in TIER_NAMES:
                if tier not in per_tier_raw:
                    self.error("missing_tier", f"{path}.perTier", f"Missing tier '{tier}'")
                    continue
                config = self._build_tier_config(per_tier_raw[tier], f"{path}.perTier.{tier}")
                if config is not None:
                    per_tier[tier] = config
            for key in per_tier_raw:
                if key not in TIER_NAMES:
                    self.error("unknown_tier", f"{path}.perTier.{key}", f"Unknown tier '{key}'")

        if item_id is None or group is None or label is None or len(per_tier) != len(TIER_NAMES):
            return None
        return Item(id=item_id, group=group, label=label, per_tier=per_tier, help=help_text)

    def _build_tier_config(self, raw: Any, path: str) -> Optional[TierConfig]:
        if not isinstance(raw, Mapping):
            self.error("invalid_tier_config", path, "Tier config must be an object")
            return None

        help_text = self._optional_string(raw, "help", path)
        requires = self._build_requires(raw, path)
        kind = raw.get("kind")

        if kind == ControlKind.SINGLE.value:
            text = self._require_string(raw, "text", path)
            return None if text is None else SingleConfig(text=text, help=help_text, requires=requires)

        if kind == ControlKind.FLAG.value:
            available = raw.get("available")
            if not isinstance(available, bool):
                self.error("invalid_available", f"{path}.available", "'available' must be a boolean")
                return None
            return FlagConfig(available=available, help=help_text, requires=requires)

        if kind == ControlKind.SELECT.value:
            return self._build_select(raw, path, help_text, requires)

        self.error("invalid_kind", f"{path}.kind", f"Invalid kind {kind!r}; expected single, flag or select")
        return None

    def _build_select(self, raw: Mapping[str, Any], path: str, help_text: Optional[str],
                      requires: Optional[Expression]) -> Optional[SelectConfig]:
        raw_options = raw.get("options")
        if not isinstance(raw_options, list):
            self.error("invalid_options", f"{path}.options", "'options' must be an array")
            return None
        if not raw_options:
            self.error("empty_options", f"{path}.options", "'options' must not be empty")
            return None

        options: List[SelectOption] = []
        seen_values: Set[str] = set()
        for index, raw_option in enumerate(raw_options):
            option_path = f"{path}.options[{index}]"
            if not isinstance(raw_option, Mapping):
                self.error("invalid_option", option_path, "Option must be an object")
                continue
            value = raw_option.get("value")
            accepted = True
            if not (isinstance(value, str) or _is_number(value)):
                self.error("invalid_option_value", f"{option_path}.value", "Option value must be a string or finite number")
                accepted = False
            else:
                key = canonical_string(value)
                if key in seen_values:
                    self.error("duplicate_option_value", f"{option_path}.value", f"Duplicate option value '{key}'")
                    accepted = False
                seen_values.add(key)

            # the rest of a rejected option is still checked
            label = self._optional_string(raw_option, "label", option_path)
            option_help = self._optional_string(raw_option, "help", option_path)
            option_requires = self._build_requires(raw_option, option_path)
            if accepted:
                options.append(SelectOption(
                    value=value,
                    label=label,
                    help=option_help,
                    requires=option_requires
                ))

        default = raw.get("default")
        if default is not None:
            if not _is_scalar(default) or canonical_string(default) not in seen_values:
                self.error("invalid_default", f"{path}.default", f"Default {default!r} does not match any option value")
                default = None

        if not options:
            return None
        return SelectConfig(options=options, default=default, help=help_text, requires=requires)

    def _build_requires(self, raw: Mapping[str, Any], path: str) -> Optional[Expression]:
        if "requires" not in raw or raw["requires"] is None:
            return None
        return self._build_expression(raw["requires"], f"{path}.requires")

    def _build_expression(self, raw: Any, path: str) -> Optional[Expression]:
        if not isinstance(raw, Mapping):
            self.error("invalid_expression", path, "Expression must be an object")
            return None

        forms = [key for key in raw if key in _COMBINATOR_KEYS]
        if len(forms) > 1 or (forms and ("op" in raw or "id" in raw)):
            self.error("invalid_expression", path, "Expression must have exactly one form")
            return None

        if forms:
            form = forms[0]
            operand = raw[form]
            if form == Combinator.NOT.value:
                term = self._build_expression(operand, f"{path}.not")
                return None if term is None else Not(term)
            if not isinstance(operand, list):
                self.error("invalid_expression", f"{path}.{form}", f"'{form}' must be an array of expressions")
                return None
            terms = [self._build_expression(sub, f"{path}.{form}[{i}]") for i, sub in enumerate(operand)]
            if any(term is None for term in terms):
                return None
            return AllOf(terms) if form == Combinator.ALL_OF.value else AnyOf(terms)

        if "op" not in raw and "id" not in raw:
            self.error("invalid_expression", path, "Expression must be a condition, allOf, anyOf or not")
            return None

        return self._build_condition(raw, path)

    def _build_condition(self, raw: Mapping[str, Any], path: str) -> Optional[Condition]:
        valid = True

        ref = raw.get("id")
        if not isinstance(ref, str) or not ref:
            self.error("invalid_reference", f"{path}.id", "Condition 'id' must be a non-empty string")
            valid = False
        elif ref not in self.known_ids:
            self.error("unknown_reference", f"{path}.id", f"Condition references unknown item '{ref}'")
            valid = False

        op = _OPERATORS.get(raw.get("op"))
        if op is None:
            self.error("invalid_operator", f"{path}.op", f"Unknown operator {raw.get('op')!r}")
            return None

        value = raw.get("value")
        shape = op.operand_shape
        if shape == "scalar" and not _is_scalar(value):
            self.error("invalid_operand", f"{path}.value", f"'{op.value}' requires a scalar operand")
            valid = False
        elif shape == "array" and not (isinstance(value, list) and all(_is_scalar(v) for v in value)):
            self.error("invalid_operand", f"{path}.value", f"'{op.value}' requires an array of scalars")
            valid = False
        elif shape == "number" and not _is_number(value):
            self.error("invalid_operand", f"{path}.value", f"'{op.value}' requires a numeric operand")
            valid = False

        if not valid:
            return None
        if shape == "none":
            value = None
        elif shape == "array":
            value = list(value)
        return Condition(id=ref, op=op, value=value)


def catalog_to_document(catalog: Catalog) -> Dict[str, Any]:
    """Serialize a catalog back to its document shape."""
    items = []
    for item in catalog:
        per_tier = {}
        for tier, config in item.per_tier.items():
            entry: Dict[str, Any] = {"kind": config.kind.value}
            if isinstance(config, SingleConfig):
                entry["text"] = config.text
            elif isinstance(config, FlagConfig):
                entry["available"] = config.available
            elif isinstance(config, SelectConfig):
                entry["options"] = [_option_to_dict(option) for option in config.options]
                if config.default is not None:
                    entry["default"] = config.default
            if config.help is not None:
                entry["help"] = config.help
            if config.requires is not None:
                entry["requires"] = config.requires.to_dict()
            per_tier[tier] = entry
        data: Dict[str, Any] = {"id": item.id, "group": item.group, "label": item.label}
        if item.help is not None:
            data["help"] = item.help
        data["perTier"] = per_tier
        items.append(data)
    return {"name": catalog.name, "version": catalog.version, "items": items}


def _option_to_dict(option: SelectOption) -> Dict[str, Any]:
    data: Dict[str, Any] = {"value": option.value}
    if option.label is not None:
        data["label"] = option.label
    if option.help is not None:
        data["help"] = option.help
    if option.requires is not None:
        data["requires"] = option.requires.to_dict()
    return data
