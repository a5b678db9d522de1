"""Serial number API endpoints."""

from fastapi import APIRouter, HTTPException, Query

from ordertrack.api.v1.dependencies import (
    CatalogServiceDep,
    CurrentUserDep,
    SerialAllocatorDep,
    SerialServiceDep,
)
from ordertrack.api.v1.orders.schemas import NextSerialResponse, SerialListResponse, SerialResponse

router = APIRouter(tags=["serials"])


@router.get("/serials", response_model=SerialListResponse, operation_id="listSerials")
async def list_serials(
    service: SerialServiceDep,
    user: CurrentUserDep,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
) -> SerialListResponse:
    """List issued serials, newest first."""
    serials, total = await service.list_serials(skip=skip, limit=limit)
    return SerialListResponse(
        serials=[SerialResponse.from_model(serial) for serial in serials],
        total=total,
    )


@router.get(
    "/serials/next/{product_code}",
    response_model=NextSerialResponse,
    operation_id="previewNextSerial",
)
async def preview_next_serial(
    product_code: str,
    allocator: SerialAllocatorDep,
    catalog: CatalogServiceDep,
    user: CurrentUserDep,
) -> NextSerialResponse:
    """Serial the next order would receive for this code. Nothing is reserved."""
    if not await catalog.code_in_use(product_code):
        raise HTTPException(status_code=404, detail="Unknown product code")
    return NextSerialResponse(
        product_code=product_code,
        next_serial=await allocator.preview_next_serial(product_code),
    )
