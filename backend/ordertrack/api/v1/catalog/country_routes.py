"""Country API endpoints."""

from fastapi import APIRouter

from ordertrack.api.v1.catalog.schemas import CountryResponse
from ordertrack.api.v1.dependencies import CatalogServiceDep, CurrentUserDep

router = APIRouter(tags=["countries"])


@router.get("/countries", response_model=list[CountryResponse], operation_id="listCountries")
async def list_countries(service: CatalogServiceDep, user: CurrentUserDep) -> list[CountryResponse]:
    """List shipping countries."""
    countries = await service.list_countries()
    return [CountryResponse.from_model(country) for country in countries]
