"""Panel API endpoints."""

from fastapi import APIRouter, HTTPException, Response, status

from ordertrack.api.v1.catalog.schemas import PanelCreateRequest, PanelResponse, PanelUpdateRequest
from ordertrack.api.v1.dependencies import AdminUserDep, CatalogServiceDep, CurrentUserDep
from ordertrack.services.catalog.exceptions import (
    CatalogItemInUse,
    DuplicateProductCode,
    PanelNotFound,
    UnknownParentMachine,
)

router = APIRouter(tags=["panels"])


@router.get("/panels", response_model=list[PanelResponse], operation_id="listPanels")
async def list_panels(service: CatalogServiceDep, user: CurrentUserDep) -> list[PanelResponse]:
    """List panels, newest first."""
    panels = await service.list_panels()
    return [PanelResponse.from_model(panel) for panel in panels]


@router.post(
    "/panels",
    response_model=PanelResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createPanel",
)
async def create_panel(body: PanelCreateRequest, service: CatalogServiceDep, admin: AdminUserDep) -> PanelResponse:
    """Attach a new panel to a machine."""
    assert admin.id is not None
    try:
        panel = await service.create_panel(
            name=body.name,
            panel_code=body.panel_code,
            parent_machine_id=body.parent_machine_id,
            created_by=admin.id,
        )
    except (DuplicateProductCode, UnknownParentMachine) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PanelResponse.from_model(panel)


@router.get("/panels/{panel_id}", response_model=PanelResponse, operation_id="getPanel")
async def get_panel(panel_id: int, service: CatalogServiceDep, user: CurrentUserDep) -> PanelResponse:
    try:
        panel = await service.get_panel(panel_id)
    except PanelNotFound:
        raise HTTPException(status_code=404, detail="Panel not found")
    return PanelResponse.from_model(panel)


@router.put("/panels/{panel_id}", response_model=PanelResponse, operation_id="updatePanel")
async def update_panel(
    panel_id: int,
    body: PanelUpdateRequest,
    service: CatalogServiceDep,
    admin: AdminUserDep,
) -> PanelResponse:
    try:
        panel = await service.update_panel(panel_id, name=body.name, parent_machine_id=body.parent_machine_id)
    except PanelNotFound:
        raise HTTPException(status_code=404, detail="Panel not found")
    except UnknownParentMachine as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PanelResponse.from_model(panel)


@router.delete("/panels/{panel_id}", status_code=status.HTTP_204_NO_CONTENT, operation_id="deletePanel")
async def delete_panel(panel_id: int, service: CatalogServiceDep, admin: AdminUserDep) -> Response:
    """Delete a panel that has no serials."""
    try:
        await service.delete_panel(panel_id)
    except PanelNotFound:
        raise HTTPException(status_code=404, detail="Panel not found")
    except CatalogItemInUse as e:
        raise HTTPException(status_code=409, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
