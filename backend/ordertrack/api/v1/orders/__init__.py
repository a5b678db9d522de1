"""Orders API package.

- order_routes: Order CRUD; creation mints the order's serials
- serial_routes: Serial listing and next-serial preview
"""

from fastapi import APIRouter

from ordertrack.api.v1.orders.order_routes import router as order_router
from ordertrack.api.v1.orders.serial_routes import router as serial_router

# Create a combined router for all order-related endpoints
router = APIRouter()

router.include_router(order_router)
router.include_router(serial_router)

__all__ = ["router"]
