"""Payment gateway webhook route"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...application.use_cases.order_lifecycle import OrderLifecycleOrchestrator
from ...application.use_cases.process_payment_webhook import ProcessPaymentWebhookUseCase
from ...api.dependencies import get_orchestrator, get_payment_service
from ...domain.exceptions import InvalidSignature
from ...domain.services.payment_gateway import IPaymentGateway


logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    orchestrator: OrderLifecycleOrchestrator = Depends(get_orchestrator),
    payment_service: IPaymentGateway = Depends(get_payment_service)
):
    """Handle payment webhooks from Stripe"""
    body = await request.body()
    signature = request.headers.get("stripe-signature")

    use_case = ProcessPaymentWebhookUseCase(orchestrator, payment_service)
    try:
        return await use_case.execute(body, signature)
    except InvalidSignature as e:
        logger.warning(f"Payment webhook rejected: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook Error: {e}"
        )
