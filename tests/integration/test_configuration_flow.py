"""
Integration tests for the configuration flow against the bundled catalog.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from shared.test_helpers import CatalogFactory
from service_configurator.app.main import ConfiguratorService

DEFAULT_CATALOG = Path(__file__).resolve().parents[2] / "catalog.json5"
OVERRIDE_URL = "https://catalogs.example.com/support.json"


def controls_by_id(view):
    return {control["item_id"]: control for control in view["controls"]}


class TestConfigurationFlow:
    """Integration tests for a user configuring the managed platform."""

    @pytest.fixture
    def client(self):
        """Client for a service serving the bundled catalog."""
        service = ConfiguratorService(get_config("configurator", 8020, catalog_path=str(DEFAULT_CATALOG)))
        return TestClient(service.app)

    def test_bundled_catalog_lint(self, client):
        """The bundled catalog warns about the DR region default."""
        data = client.get("/catalog").json()

        assert data["catalog"]["name"] == "Managed Platform"
        assert [(w["code"], w["tier"], w["item_id"]) for w in data["warnings"]] == [
            ("default_requires_unmet", "Advanced", "dr_region"),
        ]

    def test_scaling_unlocks_dr_region(self, client):
        """Selecting three replicas makes the DR region valid in Advanced."""
        view = client.post("/configuration/tier", json={"tier": "Advanced"}).json()
        assert controls_by_id(view)["dr_region"]["valid"] is False
        assert controls_by_id(view)["dr_region"]["depends_on"] == ["replicas"]

        view = client.post("/configuration/selection", json={
            "config": view["token"], "tier": "Advanced", "item_id": "replicas", "value": 3
        }).json()
        assert controls_by_id(view)["dr_region"]["valid"] is True

        view = client.post("/configuration/selection", json={
            "config": view["token"], "tier": "Advanced", "item_id": "dr_region", "value": "eu-west"
        }).json()

        exported = client.get("/configuration/export", params={"config": view["token"]}).json()
        assert exported["tier"] == "Advanced"
        assert exported["selections"] == {
            "support": "Business hours",
            "sso": True,
            "audit_retention": 90,
            "replicas": 3,
            "dr_region": "eu-west",
        }

    def test_tier_switch_keeps_other_tiers(self, client):
        """Selections made in one tier survive visits to another."""
        view = client.post("/configuration/selection", json={
            "tier": "Enterprise", "item_id": "audit_retention", "value": 2555
        }).json()
        view = client.post("/configuration/tier", json={"config": view["token"], "tier": "Essential"}).json()
        view = client.post("/configuration/tier", json={"config": view["token"], "tier": "Enterprise"}).json()

        assert view["active_tier"] == "Enterprise"
        assert view["selections"]["Enterprise"]["audit_retention"] == 2555
        retention = {o["value"]: o for o in controls_by_id(view)["audit_retention"]["options"]}
        assert retention[2555]["selected"] is True

    def test_catalog_override(self, client):
        """An absolute override URL is fetched and served instead of the default."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=httpx.Response(
                    status_code=200,
                    content=json.dumps(CatalogFactory.create_support_catalog()),
                    request=httpx.Request("GET", OVERRIDE_URL)
                )
            )

            data = client.get("/configuration/export", params={"catalog": OVERRIDE_URL}).json()

        assert data["catalog"] == {"name": "Test Catalog", "version": "1.0"}
        assert data["selections"] == {"support": "Business hours"}

    def test_catalog_override_unreachable(self, client):
        """A failing override URL is a gateway error."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=httpx.Response(
                    status_code=500,
                    content=b"boom",
                    request=httpx.Request("GET", OVERRIDE_URL)
                )
            )

            response = client.get("/catalog", params={"catalog": OVERRIDE_URL})

        assert response.status_code == 502
        assert response.json()["code"] == "EXTERNAL_SERVICE_ERROR"
