"""
OrderSelector -- read paths over orders.
"""

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import OrderFilter, OrderRecord, Page
from stock_kernel.exceptions import OrderNotFoundError
from stock_kernel.models.order import Order
from stock_kernel.selectors.base import BaseSelector


class OrderSelector(BaseSelector[Order]):
    """Read-only order queries returning OrderRecord."""

    def get_order(self, order_id: UUID) -> OrderRecord:
        order = self.session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return OrderRecord.from_model(order)

    def get_by_number(self, order_number: str) -> OrderRecord:
        number = (order_number or "").strip().upper()
        order = self.session.execute(
            select(Order).where(Order.order_number == number)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(number)
        return OrderRecord.from_model(order)

    def list_orders(self, filters: OrderFilter | None = None) -> Page[OrderRecord]:
        filters = filters or OrderFilter()
        query = select(Order)

        if filters.status is not None:
            query = query.where(Order.status == filters.status.value)
        if filters.channel is not None:
            query = query.where(Order.channel == filters.channel.value)
        if filters.payment_status is not None:
            query = query.where(Order.payment_status == filters.payment_status.value)
        if filters.warehouse_id is not None:
            query = query.where(Order.warehouse_id == filters.warehouse_id)
        if filters.customer_id is not None:
            query = query.where(Order.customer_id == filters.customer_id)
        if filters.date_from is not None:
            query = query.where(Order.created_at >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(Order.created_at <= filters.date_to)

        query = query.order_by(Order.created_at.desc(), Order.order_number.desc())
        return self._paginate(query, filters.page, filters.limit, OrderRecord.from_model)
