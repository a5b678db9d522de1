"""Machine API endpoints."""

from fastapi import APIRouter, HTTPException, Response, status

from ordertrack.api.v1.catalog.schemas import (
    MachineCreateRequest,
    MachineResponse,
    MachineUpdateRequest,
    PanelResponse,
)
from ordertrack.api.v1.dependencies import AdminUserDep, CatalogServiceDep, CurrentUserDep
from ordertrack.services.catalog.exceptions import CatalogItemInUse, DuplicateProductCode, MachineNotFound

router = APIRouter(tags=["machines"])


@router.get("/machines", response_model=list[MachineResponse], operation_id="listMachines")
async def list_machines(service: CatalogServiceDep, user: CurrentUserDep) -> list[MachineResponse]:
    """List machines, newest first."""
    machines = await service.list_machines()
    return [MachineResponse.from_model(machine) for machine in machines]


@router.post(
    "/machines",
    response_model=MachineResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createMachine",
)
async def create_machine(
    body: MachineCreateRequest,
    service: CatalogServiceDep,
    admin: AdminUserDep,
) -> MachineResponse:
    """Add a machine to the catalog."""
    assert admin.id is not None
    try:
        machine = await service.create_machine(name=body.name, product_code=body.product_code, created_by=admin.id)
    except DuplicateProductCode as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MachineResponse.from_model(machine)


@router.get("/machines/{machine_id}", response_model=MachineResponse, operation_id="getMachine")
async def get_machine(machine_id: int, service: CatalogServiceDep, user: CurrentUserDep) -> MachineResponse:
    try:
        machine = await service.get_machine(machine_id)
    except MachineNotFound:
        raise HTTPException(status_code=404, detail="Machine not found")
    return MachineResponse.from_model(machine)


@router.put("/machines/{machine_id}", response_model=MachineResponse, operation_id="updateMachine")
async def update_machine(
    machine_id: int,
    body: MachineUpdateRequest,
    service: CatalogServiceDep,
    admin: AdminUserDep,
) -> MachineResponse:
    """Rename a machine."""
    try:
        machine = await service.update_machine(machine_id, name=body.name)
    except MachineNotFound:
        raise HTTPException(status_code=404, detail="Machine not found")
    return MachineResponse.from_model(machine)


@router.delete("/machines/{machine_id}", status_code=status.HTTP_204_NO_CONTENT, operation_id="deleteMachine")
async def delete_machine(machine_id: int, service: CatalogServiceDep, admin: AdminUserDep) -> Response:
    """Delete a machine that has no panels and no serials."""
    try:
        await service.delete_machine(machine_id)
    except MachineNotFound:
        raise HTTPException(status_code=404, detail="Machine not found")
    except CatalogItemInUse as e:
        raise HTTPException(status_code=409, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/machines/{machine_id}/panels",
    response_model=list[PanelResponse],
    operation_id="listMachinePanels",
)
async def list_machine_panels(
    machine_id: int,
    service: CatalogServiceDep,
    user: CurrentUserDep,
) -> list[PanelResponse]:
    """Panels attached to a machine."""
    try:
        await service.get_machine(machine_id)
    except MachineNotFound:
        raise HTTPException(status_code=404, detail="Machine not found")
    panels = await service.get_panels_by_machine(machine_id)
    return [PanelResponse.from_model(panel) for panel in panels]
