"""Order repository implementation using SQLAlchemy ORM"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy import desc, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...domain.entities.order import Order
from ...domain.enums import DeliveryStatus, PaymentMethodType, PaymentStatus
from ...domain.exceptions import ConcurrentModification
from ...domain.repositories.order_repository import IOrderRepository
from ...domain.value_objects.entity_ids import OrderId, ProductId, UserId
from ...domain.value_objects.money import Money
from ...domain.value_objects.order_line import OrderLine, StatusHistoryEntry
from ...domain.value_objects.shipping_address import ShippingAddress
from ..orm.order_model import OrderItemModel, OrderModel, OrderStatusHistoryModel


class OrderRepositoryImpl(IOrderRepository):
    """Repository implementation for Order aggregate"""

    def __init__(self, session: Session):
        self.session = session

    async def get_by_id(self, order_id: OrderId) -> Optional[Order]:
        """Get order by ID"""
        model = self._query().filter(OrderModel.id == order_id.value).first()
        return self._map_to_entity(model) if model else None

    async def get_by_user_id(self, user_id: UserId) -> List[Order]:
        """Get orders by user ID, newest first"""
        models = (
            self._query()
            .filter(OrderModel.user_id == user_id.value)
            .order_by(desc(OrderModel.created_at))
            .all()
        )
        return [self._map_to_entity(model) for model in models]

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[Order]:
        """Get all orders, newest first"""
        models = self._query().order_by(desc(OrderModel.created_at)).offset(skip).limit(limit).all()
        return [self._map_to_entity(model) for model in models]

    async def get_by_gateway_session_id(self, session_id: str) -> Optional[Order]:
        """Get order by payment gateway session ID"""
        model = self._query().filter(OrderModel.gateway_session_id == session_id).first()
        return self._map_to_entity(model) if model else None

    async def find_latest_authorized_card_order(self, amount: Money) -> Optional[Order]:
        model = (
            self._query()
            .filter(
                OrderModel.total_order_price == amount.amount,
                OrderModel.payment_method_type == PaymentMethodType.CARD,
                OrderModel.payment_status == PaymentStatus.AUTHORIZED,
            )
            .order_by(desc(OrderModel.created_at))
            .first()
        )
        return self._map_to_entity(model) if model else None

    async def add(self, order: Order) -> Order:
        """Add a new order together with its lines and initial history"""
        model = OrderModel(
            id=order.id.value,
            user_id=order.user_id.value,
            shipping_address=order.shipping_address.to_dict(),
            tracking_number=order.tracking_number,
            delivery_agency=order.delivery_agency,
            currency=order.total_order_price.currency,
            total_order_price=order.total_order_price.amount,
            shipping_price=order.shipping_price.amount,
            tax_price=order.tax_price.amount,
            cod_amount=order.cod_amount.amount,
            payment_method_type=order.payment_method,
            payment_status=order.payment_status,
            delivery_status=order.delivery_status,
            is_paid=order.is_paid,
            paid_at=order.paid_at,
            is_delivered=order.is_delivered,
            delivered_at=order.delivered_at,
            gateway_session_id=order.gateway_session_id,
            inventory_adjusted_at=order.inventory_adjusted_at,
            version=order.version,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[
                OrderItemModel(
                    position=position,
                    product_id=line.product_id.value,
                    title=line.title,
                    quantity=line.quantity,
                    color=line.color,
                    unit_price=line.unit_price.amount,
                )
                for position, line in enumerate(order.items)
            ],
        )
        self.session.add(model)
        try:
            self.session.flush()
        except IntegrityError as e:
            # Unique gateway session id: another request already stored this checkout
            raise ConcurrentModification(f"Order {order.id} already exists") from e
        self._append_history(order)
        return order

    async def update(self, order: Order) -> Order:
        """Compare-and-set update keyed on the version read by the caller"""
        stmt = (
            update(OrderModel)
            .where(OrderModel.id == order.id.value, OrderModel.version == order.version)
            .values(
                payment_status=order.payment_status,
                delivery_status=order.delivery_status,
                is_paid=order.is_paid,
                paid_at=order.paid_at,
                is_delivered=order.is_delivered,
                delivered_at=order.delivered_at,
                tracking_number=order.tracking_number,
                delivery_agency=order.delivery_agency,
                gateway_session_id=order.gateway_session_id,
                updated_at=order.updated_at,
                version=OrderModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentModification(
                f"Order {order.id} was modified concurrently, reload it and retry"
            )

        order.version += 1
        self._append_history(order)
        return order

    async def mark_inventory_adjusted(self, order_id: OrderId, adjusted_at: datetime) -> bool:
        updated = (
            self.session.query(OrderModel)
            .filter(OrderModel.id == order_id.value, OrderModel.inventory_adjusted_at.is_(None))
            .update({OrderModel.inventory_adjusted_at: adjusted_at}, synchronize_session=False)
        )
        return updated == 1

    async def list_orders_pending_inventory(self, older_than: datetime) -> List[Order]:
        models = (
            self._query()
            .filter(OrderModel.inventory_adjusted_at.is_(None), OrderModel.created_at < older_than)
            .all()
        )
        return [self._map_to_entity(model) for model in models]

    def _query(self):
        # Always re-read column state; rows may have changed through conditional updates
        return self.session.query(OrderModel).populate_existing()

    def _append_history(self, order: Order) -> None:
        start = len(order.status_history) - len(order.new_history_entries())
        for offset, entry in enumerate(order.new_history_entries()):
            self.session.add(OrderStatusHistoryModel(
                order_id=order.id.value,
                sequence=start + offset,
                status=entry.status,
                note=entry.note,
                updated_by=entry.actor,
                timestamp=entry.timestamp,
            ))
        self.session.flush()
        order.mark_history_persisted()

    def _map_to_entity(self, model: OrderModel) -> Order:
        """Map ORM model to domain entity"""
        currency = model.currency
        items = (
            self.session.query(OrderItemModel)
            .filter(OrderItemModel.order_id == model.id)
            .order_by(OrderItemModel.position)
            .all()
        )
        history = (
            self.session.query(OrderStatusHistoryModel)
            .filter(OrderStatusHistoryModel.order_id == model.id)
            .order_by(OrderStatusHistoryModel.sequence)
            .all()
        )

        order = Order(
            id=OrderId(model.id),
            user_id=UserId(model.user_id),
            items=[
                OrderLine(
                    product_id=ProductId(item.product_id),
                    quantity=item.quantity,
                    unit_price=Money(item.unit_price, currency),
                    color=item.color,
                    title=item.title,
                )
                for item in items
            ],
            shipping_address=ShippingAddress.from_dict(model.shipping_address),
            payment_method=PaymentMethodType(model.payment_method_type),
            total_order_price=Money(model.total_order_price, currency),
            shipping_price=Money(model.shipping_price, currency),
            tax_price=Money(model.tax_price, currency),
            cod_amount=Money(model.cod_amount, currency),
            payment_status=PaymentStatus(model.payment_status),
            delivery_status=DeliveryStatus(model.delivery_status),
            paid_at=model.paid_at,
            delivered_at=model.delivered_at,
            tracking_number=model.tracking_number,
            delivery_agency=model.delivery_agency,
            gateway_session_id=model.gateway_session_id,
            status_history=[
                StatusHistoryEntry(
                    status=row.status,
                    note=row.note or "",
                    actor=row.updated_by,
                    timestamp=row.timestamp,
                )
                for row in history
            ],
            inventory_adjusted_at=model.inventory_adjusted_at,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
        order.mark_history_persisted()
        return order
