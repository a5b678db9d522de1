"""Product catalog services."""

from ordertrack.services.catalog.catalog_service import CatalogService

__all__ = ["CatalogService"]
