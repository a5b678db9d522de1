"""Catalog API package.

- country_routes: Country reference list
- machine_routes: Machine CRUD and attached panels
- panel_routes: Panel CRUD
"""

from fastapi import APIRouter

from ordertrack.api.v1.catalog.country_routes import router as country_router
from ordertrack.api.v1.catalog.machine_routes import router as machine_router
from ordertrack.api.v1.catalog.panel_routes import router as panel_router

router = APIRouter()

router.include_router(country_router)
router.include_router(machine_router)
router.include_router(panel_router)

__all__ = ["router"]
