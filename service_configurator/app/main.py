"""
Configurator service for the Tier Configurator.
"""

from typing import Dict, Optional, Tuple

from fastapi import Query, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import InvalidMutation, StructuralError
from shared.logging import set_catalog_context

from .catalog.models import Catalog
from .catalog.parser import catalog_to_document
from .catalog.source import CatalogSource
from .codec.token import StateCodec
from .schemas import CatalogResponse, SelectionChangeRequest, TierSwitchRequest
from .session import ConfigurationSession
from .validation.lint import LintEngine, LintReport


class ConfiguratorService(BaseService):
    """Configurator service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__("configurator", 8020, config=config)

        self.source = CatalogSource(
            self.config.catalog_path,
            timeout=self.config.catalog_fetch_timeout,
            attempts=self.config.catalog_fetch_attempts
        )
        self.lint_engine = LintEngine()
        self.codec = StateCodec()
        self._catalogs: Dict[str, Tuple[Catalog, LintReport]] = {}

        self._setup_configurator_routes()

    async def load_catalog(self, override_url: Optional[str] = None) -> Tuple[Catalog, LintReport]:
        """Load, validate and cache a catalog; structural errors are raised as a batch."""
        key = self.source.describe(override_url)
        if key in self._catalogs:
            return self._catalogs[key]

        source_label = "override" if override_url else "default"
        text = await self.source.load(override_url)
        with self.metrics.time_operation("catalog_parse_duration_seconds"):
            report = self.lint_engine.validate(text)
        self._record_lint(report)

        if not report.ok:
            self.metrics.increment_counter("catalog_loads_total", source=source_label, status="invalid")
            raise StructuralError(report.errors)

        self.metrics.increment_counter("catalog_loads_total", source=source_label, status="ok")
        self.logger.info(
            "Catalog loaded",
            source=key,
            name=report.catalog.name,
            version=report.catalog.version,
            warnings=len(report.warnings)
        )
        self._catalogs[key] = (report.catalog, report)
        return report.catalog, report

    async def _session(self, token: Optional[str], override_url: Optional[str]) -> ConfigurationSession:
        catalog, _ = await self.load_catalog(override_url)
        set_catalog_context(catalog.name, catalog.version)
        session = ConfigurationSession.restore(catalog, token, codec=self.codec)
        if token:
            outcome = "restored" if session.restored_from_token else "fallback"
            self.metrics.increment_counter("token_decodes_total", outcome=outcome)
        return session

    def _record_lint(self, report: LintReport):
        if report.errors:
            self.metrics.increment_counter("lint_findings_total", len(report.errors), severity="error")
        if report.warnings:
            self.metrics.increment_counter("lint_findings_total", len(report.warnings), severity="warning")

    def _setup_configurator_routes(self):
        """Set up configurator-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "configurator",
                "message": "Tier Configurator - Configurator Service",
                "version": "1.0.0",
                "capabilities": ["catalog_validation", "dependency_rules", "configuration_tokens", "export"]
            }

        @self.app.get("/catalog", response_model=CatalogResponse)
        async def get_catalog(
            catalog: Optional[str] = Query(None, description="Absolute catalog override URL")
        ):
            """Get the validated catalog and its lint warnings."""
            loaded, report = await self.load_catalog(catalog)
            return CatalogResponse(
                catalog=catalog_to_document(loaded),
                groups=loaded.groups(),
                warnings=[w.to_dict() for w in report.warnings]
            )

        @self.app.post("/catalog/lint")
        async def lint_catalog(request: Request):
            """Lint a posted catalog document."""
            body = await request.body()
            with self.metrics.time_operation("catalog_parse_duration_seconds"):
                report = self.lint_engine.validate(body)
            self._record_lint(report)
            return report.to_dict()

        @self.app.get("/configuration")
        async def get_configuration(
            config: Optional[str] = Query(None, description="Configuration token"),
            catalog: Optional[str] = Query(None, description="Absolute catalog override URL")
        ):
            """Restore a configuration, falling back to defaults on a bad token."""
            session = await self._session(config, catalog)
            return session.view()

        @self.app.post("/configuration/selection")
        async def change_selection(request: SelectionChangeRequest):
            """Change one select control and return the new configuration."""
            session = await self._session(request.config, request.catalog)
            try:
                session.select(request.tier, request.item_id, request.value)
            except InvalidMutation:
                self.metrics.increment_counter("selection_mutations_total", outcome="rejected")
                raise
            self.metrics.increment_counter("selection_mutations_total", outcome="applied")
            self.logger.info(
                "Selection applied",
                tier=request.tier,
                item_id=request.item_id,
                value=request.value
            )
            return session.view()

        @self.app.post("/configuration/tier")
        async def switch_tier(request: TierSwitchRequest):
            """Switch the active tier."""
            session = await self._session(request.config, request.catalog)
            session.switch_tier(request.tier)
            return session.view()

        @self.app.get("/configuration/export")
        async def export_configuration(
            config: Optional[str] = Query(None, description="Configuration token"),
            catalog: Optional[str] = Query(None, description="Absolute catalog override URL")
        ):
            """Export the active tier's selections."""
            session = await self._session(config, catalog)
            payload = session.export()
            self.metrics.record_business_event("configuration_exported")
            return payload.model_dump()

    async def _check_dependencies(self):
        """Check configurator service dependencies."""
        dependencies = {}

        try:
            await self.load_catalog()
            dependencies["catalog"] = "ok"
        except Exception as e:
            self.logger.warning("Default catalog unavailable", error=str(e))
            dependencies["catalog"] = "error"

        return dependencies


def create_app(config: Optional[ServiceConfig] = None):
    """Create configurator service application."""
    service = ConfiguratorService(config)
    return service.app


if __name__ == "__main__":
    service = ConfiguratorService()
    service.run()
