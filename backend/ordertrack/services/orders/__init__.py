"""Order management and serial fulfillment."""

from ordertrack.services.orders.order_service import OrderInput, OrderLineInput, OrderService

__all__ = ["OrderInput", "OrderLineInput", "OrderService"]
