"""Order API endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, Response, status

from ordertrack.api.v1.dependencies import AdminUserDep, CurrentUserDep, OrderServiceDep
from ordertrack.api.v1.orders.schemas import (
    OrderCreateRequest,
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    OrderUpdateRequest,
    SerialResponse,
)
from ordertrack.services.exceptions import ConflictError, StorageError, ValidationError
from ordertrack.services.orders.exceptions import OrderNotFound

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["orders"])


@router.get("/orders", response_model=OrderListResponse, operation_id="listOrders")
async def list_orders(
    service: OrderServiceDep,
    user: CurrentUserDep,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
) -> OrderListResponse:
    """List orders with pagination, newest first."""
    orders, total = await service.list_orders(skip=skip, limit=limit)

    return OrderListResponse(
        orders=[OrderResponse.from_model(order) for order in orders],
        total=total,
    )


@router.post(
    "/orders",
    response_model=OrderDetailResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createOrder",
)
async def create_order(
    body: OrderCreateRequest,
    service: OrderServiceDep,
    admin: AdminUserDep,
) -> OrderDetailResponse:
    """Create an order and mint serials for every machine and panel unit."""
    assert admin.id is not None
    try:
        order = await service.create_order_with_serials(body.to_input(), admin.id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError as e:
        logger.error("Order creation failed", error=str(e.__cause__ or e))
        raise HTTPException(status_code=503, detail="Order could not be stored, please retry")

    order = await service.get_order(order.id)
    return OrderDetailResponse.from_model(order)


@router.get("/orders/{order_id}", response_model=OrderDetailResponse, operation_id="getOrder")
async def get_order(
    order_id: str,
    service: OrderServiceDep,
    user: CurrentUserDep,
) -> OrderDetailResponse:
    """Get a single order with its serials."""
    try:
        order = await service.get_order(order_id)
        return OrderDetailResponse.from_model(order)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")


async def _apply_update(service: OrderServiceDep, order_id: str, changes: dict[str, Any]) -> OrderDetailResponse:
    try:
        await service.update_order(order_id, **changes)
        order = await service.get_order(order_id)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return OrderDetailResponse.from_model(order)


@router.patch("/orders/{order_id}", response_model=OrderDetailResponse, operation_id="patchOrder")
async def patch_order(
    order_id: str,
    body: OrderUpdateRequest,
    service: OrderServiceDep,
    admin: AdminUserDep,
) -> OrderDetailResponse:
    """Update selected order fields, typically progress or payment status."""
    return await _apply_update(service, order_id, body.changes())


@router.put("/orders/{order_id}", response_model=OrderDetailResponse, operation_id="replaceOrder")
async def replace_order(
    order_id: str,
    body: OrderCreateRequest,
    service: OrderServiceDep,
    admin: AdminUserDep,
) -> OrderDetailResponse:
    """Replace all order fields. Serials already minted are kept as they are."""
    changes = body.model_dump(exclude={"machine_lines"})
    if changes["confirmation_date"] is None:
        del changes["confirmation_date"]
    changes["machine_lines"] = body.machine_lines
    return await _apply_update(service, order_id, changes)


@router.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT, operation_id="deleteOrder")
async def delete_order(order_id: str, service: OrderServiceDep, admin: AdminUserDep) -> Response:
    """Delete an order and its serials. Their numbers are not reissued."""
    try:
        await service.delete_order(order_id)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/orders/{order_id}/serials", response_model=list[SerialResponse], operation_id="listOrderSerials")
async def list_order_serials(
    order_id: str,
    service: OrderServiceDep,
    user: CurrentUserDep,
) -> list[SerialResponse]:
    """Serials of one order in issuance order."""
    try:
        await service.get_order_basic(order_id)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    serials = await service.serials.list_for_order(order_id)
    return [SerialResponse.from_model(serial) for serial in serials]
