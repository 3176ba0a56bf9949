"""
Unit tests for the catalog parser and structural validator.
"""

import copy
import json
from pathlib import Path

import pytest

from shared.errors import StructuralError
from shared.test_helpers import (
    CatalogFactory, catalog_document, flag, item, option, select, single
)
from service_configurator.app.catalog.models import (
    FlagConfig, SelectConfig, SingleConfig, TIER_NAMES
)
from service_configurator.app.catalog.parser import CatalogParser, catalog_to_document
from service_configurator.app.rules.models import AnyOf, Condition, ConditionOperator

DEFAULT_CATALOG = Path(__file__).resolve().parents[2] / "catalog.json5"


def codes(issues):
    return sorted(issue.code for issue in issues)


class TestCatalogParser:
    """Test cases for CatalogParser."""

    @pytest.fixture
    def parser(self):
        """Create CatalogParser instance."""
        return CatalogParser()

    def test_parse_mixed_catalog(self, parser):
        """Test every control kind is built."""
        catalog = parser.parse(CatalogFactory.create_mixed_catalog())

        assert catalog.name == "Test Catalog"
        assert catalog.item_ids == ["edition", "sso", "retention", "region"]
        assert isinstance(catalog.get("edition").config_for("Essential"), SingleConfig)
        assert isinstance(catalog.get("sso").config_for("Advanced"), FlagConfig)

        retention = catalog.get("retention").config_for("Enterprise")
        assert isinstance(retention, SelectConfig)
        assert [o.value for o in retention.options] == [30, 90, 365]
        assert retention.options[2].requires == Condition("sso", ConditionOperator.TRUTHY)

    def test_groups_keep_first_appearance_order(self, parser):
        """Groups are listed in document order."""
        catalog = parser.parse(CatalogFactory.create_mixed_catalog())
        assert catalog.groups() == ["Basics", "Security"]
        assert [i.id for i in catalog.items_in_group("Basics")] == ["edition", "region"]

    def test_parse_relaxed_json_text(self, parser):
        """Comments and trailing commas are accepted."""
        text = """
        // product catalog
        {
          name: "Relaxed",
          version: "0.1",
          items: [
            {
              id: "support", group: "Service", label: "Support",
              perTier: {
                Essential: { kind: "single", text: "Email", },
                Advanced: { kind: "flag", available: true },
                /* block comment */
                Enterprise: { kind: "select", options: [{ value: "24/7" }], },
              },
            },
          ],
        }
        """
        catalog = parser.parse(text)

        assert catalog.meta() == {"name": "Relaxed", "version": "0.1"}
        assert catalog.get("support").config_for("Enterprise").effective_default == "24/7"

    def test_parse_bytes(self, parser):
        """UTF-8 bytes are accepted."""
        raw = json.dumps(CatalogFactory.create_support_catalog()).encode("utf-8")
        assert "support" in parser.parse(raw)

    def test_parse_default_catalog_file(self, parser):
        """The bundled default catalog is structurally valid."""
        catalog = parser.parse(DEFAULT_CATALOG.read_text(encoding="utf-8"))
        assert "dr_region" in catalog
        assert catalog.groups() == ["Service", "Security", "Capacity"]

    def test_forward_references_are_allowed(self, parser):
        """A requires clause may point at an item declared later."""
        document = catalog_document([
            item("first", select(["a", "b"], requires={"id": "second", "op": "truthy"})),
            item("second", flag(True)),
        ])
        assert parser.parse(document).item_ids == ["first", "second"]

    def test_nested_expression(self, parser):
        """Combinators nest to any depth."""
        catalog = parser.parse(CatalogFactory.create_viability_catalog())
        requires = catalog.get("g1:mode").config_for("Essential").options[2].requires

        assert isinstance(requires, AnyOf)
        assert requires.terms[1] == Condition("g2:scale", ConditionOperator.GTE, 3)

    def test_errors_are_reported_as_a_batch(self, parser):
        """A duplicate id and an unknown reference are both reported."""
        document = catalog_document([
            item("a", single("x")),
            item("a", single("y")),
            item("b", select(["p"], requires={"id": "nope", "op": "truthy"})),
        ])

        with pytest.raises(StructuralError) as exc_info:
            parser.parse(document)

        error = exc_info.value
        assert error.code == "STRUCTURAL_ERROR"
        assert codes(error.issues) == ["duplicate_id", "unknown_reference", "unknown_reference", "unknown_reference"]
        assert error.details["issues"][0]["path"] == "items[1].id"

    def test_check_returns_issues_without_raising(self, parser):
        """check() and inspect() report instead of raising."""
        document = catalog_document([item("a", single("x"))], name=None)

        assert codes(parser.check(document)) == ["invalid_name"]
        catalog, issues = parser.inspect(document)
        assert catalog is None
        assert issues[0].path == "name"

    def test_valid_document_has_no_issues(self, parser):
        """Test inspect on a valid document."""
        catalog, issues = parser.inspect(CatalogFactory.create_support_catalog())
        assert issues == []
        assert len(catalog) == 1

    @pytest.mark.parametrize("raw,code", [
        ("{ not json", "invalid_document"),
        ("[1, 2]", "invalid_document"),
        (b"\xff\xfe", "invalid_document"),
    ])
    def test_invalid_document(self, parser, raw, code):
        """Unreadable documents yield a single document-level issue."""
        issues = parser.check(raw)
        assert codes(issues) == [code]
        assert issues[0].path == "$"

    def test_missing_and_unknown_tiers(self, parser):
        """Every tier is required and no other tier is accepted."""
        per_tier = {"Essential": single("x"), "Advanced": single("y"), "Premium": single("z")}
        issues = parser.check(catalog_document([item("a", per_tier)]))

        assert codes(issues) == ["missing_tier", "unknown_tier"]
        paths = {issue.code: issue.path for issue in issues}
        assert paths["missing_tier"] == "items[0].perTier"
        assert paths["unknown_tier"] == "items[0].perTier.Premium"

    def test_invalid_kind(self, parser):
        """Unknown control kinds are rejected."""
        issues = parser.check(catalog_document([item("a", {"kind": "slider"})]))
        assert codes(issues) == ["invalid_kind"] * len(TIER_NAMES)
        assert issues[0].path == "items[0].perTier.Essential.kind"

    def test_flag_requires_boolean(self, parser):
        """Test available must be a boolean."""
        issues = parser.check(catalog_document([item("a", {"kind": "flag", "available": "yes"})]))
        assert set(codes(issues)) == {"invalid_available"}

    def test_select_rules(self, parser):
        """Options must be a non-empty array of unique scalar values."""
        per_tier = {
            "Essential": {"kind": "select", "options": []},
            "Advanced": {"kind": "select", "options": [option(1), option("1"), {"value": True}, "bare"]},
            "Enterprise": {"kind": "select", "options": "a,b"},
        }
        issues = parser.check(catalog_document([item("a", per_tier)]))

        assert codes(issues) == [
            "duplicate_option_value", "empty_options", "invalid_option",
            "invalid_option_value", "invalid_options",
        ]
        paths = {issue.code: issue.path for issue in issues}
        assert paths["duplicate_option_value"] == "items[0].perTier.Advanced.options[1].value"
        assert paths["invalid_option"] == "items[0].perTier.Advanced.options[3]"

    def test_default_must_match_an_option(self, parser):
        """Test invalid default."""
        issues = parser.check(catalog_document([item("a", select(["x", "y"], default="z"))]))
        assert set(codes(issues)) == {"invalid_default"}
        assert issues[0].path == "items[0].perTier.Essential.default"

    def test_numeric_default_matches_canonically(self, parser):
        """A default of 3 matches an option value of 3.0."""
        catalog = parser.parse(catalog_document([item("a", select([1.5, 3.0], default=3))]))
        assert catalog.get("a").config_for("Advanced").effective_default == 3.0

    @pytest.mark.parametrize("requires,code,path", [
        ({"id": "b", "op": "between"}, "invalid_operator", "op"),
        ({"id": "b", "op": "gt", "value": "high"}, "invalid_operand", "value"),
        ({"id": "b", "op": "in", "value": "x"}, "invalid_operand", "value"),
        ({"id": "b", "op": "eq", "value": [1]}, "invalid_operand", "value"),
        ({"id": "", "op": "truthy"}, "invalid_reference", "id"),
        ({"allOf": {"id": "b", "op": "truthy"}}, "invalid_expression", "allOf"),
        ({"not": {"id": "b", "op": "truthy"}, "anyOf": []}, "invalid_expression", None),
        ({"value": 1}, "invalid_expression", None),
    ])
    def test_invalid_expressions(self, parser, requires, code, path):
        """Malformed requires clauses are located precisely."""
        document = catalog_document([
            item("a", select(["p"], requires=requires)),
            item("b", flag(True)),
        ])
        issues = parser.check(document)

        assert set(codes(issues)) == {code}
        expected = "items[0].perTier.Essential.requires"
        if path:
            expected = f"{expected}.{path}"
        assert issues[0].path == expected

    def test_nested_issue_path(self, parser):
        """Paths reach into combinator terms."""
        requires = {"allOf": [{"id": "b", "op": "truthy"}, {"not": {"id": "zzz", "op": "falsy"}}]}
        document = catalog_document([
            item("a", {
                "Essential": select([option("p", requires=requires)]),
                "Advanced": single("x"),
                "Enterprise": single("x"),
            }),
            item("b", flag(True)),
        ])
        issues = parser.check(document)

        assert codes(issues) == ["unknown_reference"]
        assert issues[0].path == "items[0].perTier.Essential.options[0].requires.allOf[1].not.id"

    def test_rejected_option_is_still_checked(self, parser):
        """A bad option value and a bad requires on the same option are both reported."""
        document = catalog_document([
            item("a", {
                "Essential": select(["p", {"value": True, "label": 7, "requires": {"id": "ghost", "op": "truthy"}}]),
                "Advanced": select(["p", option("p", requires={"id": "a", "op": "between"})]),
                "Enterprise": single("x"),
            }),
        ])
        issues = parser.check(document)

        assert codes(issues) == [
            "duplicate_option_value", "invalid_label", "invalid_operator",
            "invalid_option_value", "unknown_reference",
        ]
        paths = {issue.code: issue.path for issue in issues}
        assert paths["unknown_reference"] == "items[0].perTier.Essential.options[1].requires.id"
        assert paths["invalid_operator"] == "items[0].perTier.Advanced.options[1].requires.op"

    @pytest.mark.parametrize("requires", [
        None,
        {"id": "b", "op": "gt", "value": 10 ** 400},
    ])
    def test_numbers_beyond_float_range(self, parser, requires):
        """Integers too large for a float are reported, not raised."""
        values = [10 ** 400] if requires is None else ["p"]
        document = catalog_document([
            item("a", select(values, requires=requires)),
            item("b", flag(True)),
        ])
        issues = parser.check(document)

        expected = "invalid_option_value" if requires is None else "invalid_operand"
        assert set(codes(issues)) == {expected}

    def test_huge_number_in_text(self, parser):
        """A 400-digit literal in document text is an invalid option value."""
        text = (
            '{"name": "n", "version": "v", "items": [{"id": "a", "group": "g", "label": "A", "perTier": {'
            '"Essential": {"kind": "select", "options": [{"value": ' + "9" * 400 + '}]},'
            '"Advanced": {"kind": "single", "text": "x"},'
            '"Enterprise": {"kind": "single", "text": "x"}}}]}'
        )
        issues = parser.check(text)
        assert codes(issues) == ["invalid_option_value"]

    def test_deeply_nested_text(self, parser):
        """Nesting past the recursion limit is an invalid document."""
        text = '{"name": "n", "version": "v", "items": ' + "[" * 5000 + "]" * 5000 + "}"
        issues = parser.check(text)

        assert codes(issues) == ["invalid_document"]
        assert issues[0].path == "$"

    def test_deeply_nested_expression(self, parser):
        """A requires chain past the recursion limit is an invalid document."""
        requires = {"id": "b", "op": "truthy"}
        for _ in range(5000):
            requires = {"not": requires}
        config = select(["p"], requires=requires)
        document = catalog_document([
            item("a", {tier: config for tier in ("Essential", "Advanced", "Enterprise")}),
            item("b", flag(True)),
        ])
        issues = parser.check(document)

        assert "invalid_document" in codes(issues)

    def test_optional_help_must_be_string(self, parser):
        """Test invalid help text."""
        document = catalog_document([item("a", single("x"), help=42)])
        assert codes(parser.check(document)) == ["invalid_help"]

    def test_items_must_be_array(self, parser):
        """Test invalid items."""
        issues = parser.check({"name": "n", "version": "v", "items": {}})
        assert codes(issues) == ["invalid_items"]


class TestCatalogToDocument:
    """Test cases for catalog serialization."""

    def test_document_round_trip(self):
        """Serializing a parsed catalog and parsing it again is stable."""
        parser = CatalogParser()
        original = CatalogFactory.create_mixed_catalog()
        document = catalog_to_document(parser.parse(copy.deepcopy(original)))

        assert document == original
        assert catalog_to_document(parser.parse(document)) == document
