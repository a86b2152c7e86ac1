"""API dependencies for DDD architecture"""

from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.security import verify_token
from ..db.database import get_db
from ..domain.enums import HistoryActor, UserRole
from ..domain.repositories.unit_of_work import IUnitOfWork
from ..domain.services.delivery_carrier import IDeliveryCarrier
from ..domain.services.payment_gateway import IPaymentGateway
from ..domain.value_objects.entity_ids import UserId
from ..application.use_cases.adjust_inventory import InventoryAdjuster
from ..application.use_cases.order_lifecycle import OrderLifecycleOrchestrator
from ..application.use_cases.record_activity import ActivityRecorder
from ..infrastructure.repositories.unit_of_work_impl import UnitOfWorkImpl
from ..infrastructure.external_services.audit_log_sink import AuditLogActivitySink
from ..infrastructure.external_services.delivery_service import DeliveryCarrierService
from ..infrastructure.external_services.payment_service import StripePaymentService


security = HTTPBearer()


@dataclass(frozen=True)
class CurrentUser:
    """Caller identity taken from the bearer token claims"""
    id: UserId
    role: UserRole
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def actor(self) -> HistoryActor:
        return HistoryActor.SELLER if self.is_admin else HistoryActor.CUSTOMER

    @property
    def scope(self) -> Optional[UserId]:
        """User id to restrict order access to; None for admins"""
        return None if self.is_admin else self.id


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Get current authenticated user"""
    claims = verify_token(credentials.credentials)
    if not claims:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    try:
        user_id = UserId.from_str(claims["sub"])
        role = UserRole(claims.get("role", UserRole.USER.value))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )
    return CurrentUser(id=user_id, role=role, email=claims.get("email"))


async def get_current_admin_user(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Get current admin user"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def get_unit_of_work(db: Session = Depends(get_db)) -> IUnitOfWork:
    """Get unit of work"""
    return UnitOfWorkImpl(db)


def get_payment_service() -> IPaymentGateway:
    """Get payment service"""
    return StripePaymentService()


def get_delivery_service() -> IDeliveryCarrier:
    """Get delivery agency service"""
    return DeliveryCarrierService()


_activity_recorder: Optional[ActivityRecorder] = None


def get_activity_recorder() -> ActivityRecorder:
    """Process-wide activity recorder writing to the audit log"""
    global _activity_recorder
    if _activity_recorder is None:
        _activity_recorder = ActivityRecorder(
            AuditLogActivitySink(), enabled=settings.ACTIVITY_SINK_ENABLED
        )
    return _activity_recorder


def get_orchestrator(
    unit_of_work: IUnitOfWork = Depends(get_unit_of_work),
    payment_service: IPaymentGateway = Depends(get_payment_service),
    delivery_service: IDeliveryCarrier = Depends(get_delivery_service),
    activity_recorder: ActivityRecorder = Depends(get_activity_recorder),
) -> OrderLifecycleOrchestrator:
    """Get order lifecycle orchestrator"""
    return OrderLifecycleOrchestrator(
        unit_of_work=unit_of_work,
        payment_gateway=payment_service,
        delivery_carrier=delivery_service,
        inventory_adjuster=InventoryAdjuster(unit_of_work),
        activity_recorder=activity_recorder,
    )
