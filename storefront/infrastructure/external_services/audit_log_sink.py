"""Activity sink persisting order activity to the audit log table"""

from typing import Callable, Optional
from sqlalchemy.orm import Session

from ...db.database import SessionLocal
from ...domain.entities.order import Order
from ...domain.enums import HistoryActor
from ...domain.services.activity_sink import IActivitySink
from ..orm.order_model import AuditLogModel


class AuditLogActivitySink(IActivitySink):

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        # Separate session: audit writes must never share the order transaction
        self.session_factory = session_factory

    async def record(self, event_kind: str, order: Order, actor: Optional[HistoryActor],
                     metadata: dict) -> None:
        db = self.session_factory()
        try:
            db.add(AuditLogModel(
                user_id=order.user_id.value,
                action=event_kind,
                actor=actor.value if actor else None,
                resource_type="order",
                resource_id=str(order.id),
                amount=order.total_order_price.amount,
                details=metadata,
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
