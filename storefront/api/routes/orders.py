"""Order routes"""

import logging
from fastapi import APIRouter, Body, Depends, Request
from typing import List, Optional
from uuid import UUID

from ...application.dtos.order_dtos import (
    CancelOrderRequest, CheckoutResponseDTO, CreateOrderRequest, OrderResponseDTO, TrackingResponseDTO
)
from ...application.use_cases.order_lifecycle import OrderLifecycleOrchestrator
from ...application.use_cases.process_delivery_webhook import ProcessDeliveryWebhookUseCase
from ...api.dependencies import CurrentUser, get_current_admin_user, get_current_user, get_orchestrator
from ...domain.value_objects.entity_ids import CartId, OrderId


logger = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])


@router.post("/checkout-session/{cart_id}", response_model=CheckoutResponseDTO)
async def create_checkout_session(
    cart_id: UUID,
    request: CreateOrderRequest,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Create a card order and return the hosted checkout URL"""
    order, session = await orchestrator.create_card_checkout(
        cart_id=CartId(cart_id),
        shipping_address=request.shipping_address.to_value_object(),
        user_id=current_user.id,
        customer_email=current_user.email,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
    )
    return CheckoutResponseDTO(
        session_id=session.session_id,
        url=session.redirect_url,
        order=OrderResponseDTO.from_entity(order),
    )


@router.post("/delivery/webhook")
async def delivery_webhook(
    request: Request,
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Parcel status callback from the delivery agency; always acknowledged"""
    try:
        payload = await request.json()
        use_case = ProcessDeliveryWebhookUseCase(orchestrator)
        await use_case.execute(payload if isinstance(payload, dict) else {})
    except Exception:
        logger.exception("Error processing delivery webhook")
    return {"received": True}


@router.post("/{cart_id}", response_model=OrderResponseDTO, status_code=201)
async def create_cash_order(
    cart_id: UUID,
    request: CreateOrderRequest,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Create a cash on delivery order from the user's cart"""
    order = await orchestrator.create_cash_order(
        cart_id=CartId(cart_id),
        shipping_address=request.shipping_address.to_value_object(),
        user_id=current_user.id,
    )
    return OrderResponseDTO.from_entity(order)


@router.get("/session/{session_id}", response_model=OrderResponseDTO)
async def get_order_by_session(
    session_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Get the order created for a checkout session"""
    order = await orchestrator.get_order_by_session(session_id, current_user.scope)
    return OrderResponseDTO.from_entity(order)


@router.get("", response_model=List[OrderResponseDTO])
async def list_orders(
    skip: int = 0,
    limit: int = 100,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """List the caller's orders (all orders for admins)"""
    orders = await orchestrator.list_orders(current_user.scope, skip=skip, limit=limit)
    return [OrderResponseDTO.from_entity(order) for order in orders]


@router.get("/{order_id}", response_model=OrderResponseDTO)
async def get_order(
    order_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Get order by ID"""
    order = await orchestrator.get_order(OrderId(order_id), current_user.scope)
    return OrderResponseDTO.from_entity(order)


@router.put("/{order_id}/confirm", response_model=OrderResponseDTO)
async def confirm_order(
    order_id: UUID,
    admin: CurrentUser = Depends(get_current_admin_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Seller accepts a pending order"""
    order = await orchestrator.confirm_order(OrderId(order_id), admin.actor)
    return OrderResponseDTO.from_entity(order)


@router.put("/{order_id}/confirm-card", response_model=OrderResponseDTO)
async def confirm_card_payment(
    order_id: UUID,
    admin: CurrentUser = Depends(get_current_admin_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Seller confirms an authorized card payment"""
    order = await orchestrator.confirm_card_payment(OrderId(order_id), admin.actor)
    return OrderResponseDTO.from_entity(order)


@router.post("/{order_id}/ship", response_model=OrderResponseDTO)
async def ship_order(
    order_id: UUID,
    admin: CurrentUser = Depends(get_current_admin_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Hand a confirmed order to the delivery agency"""
    order = await orchestrator.ship_order(OrderId(order_id))
    return OrderResponseDTO.from_entity(order)


@router.put("/{order_id}/deliver", response_model=OrderResponseDTO)
async def mark_delivered(
    order_id: UUID,
    admin: CurrentUser = Depends(get_current_admin_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Manually mark a shipped order as delivered"""
    order = await orchestrator.mark_delivered(OrderId(order_id), admin.actor)
    return OrderResponseDTO.from_entity(order)


@router.put("/{order_id}/cancel", response_model=OrderResponseDTO)
async def cancel_order(
    order_id: UUID,
    request: Optional[CancelOrderRequest] = Body(default=None),
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Cancel an order before it is shipped"""
    order = await orchestrator.cancel_order(
        OrderId(order_id),
        reason=request.reason if request else None,
        actor=current_user.actor,
        user_id=current_user.scope,
    )
    return OrderResponseDTO.from_entity(order)


@router.get("/{order_id}/tracking", response_model=TrackingResponseDTO)
async def get_order_tracking(
    order_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator)
):
    """Get order summary with live tracking from the delivery agency"""
    result = await orchestrator.get_tracking(OrderId(order_id), current_user.scope)
    return TrackingResponseDTO(
        order=OrderResponseDTO.from_entity(result["order"]),
        tracking=result["tracking"],
    )
