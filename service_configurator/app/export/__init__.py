"""
Export package: active-tier selection payloads.
"""

from .exporter import ActiveTierExporter, CatalogMeta, ExportPayload

__all__ = ["ActiveTierExporter", "CatalogMeta", "ExportPayload"]
