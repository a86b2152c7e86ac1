"""Process delivery agency webhook use case"""

import logging
from pydantic import ValidationError as PayloadValidationError

from ...domain.exceptions import InvalidTransition, NotFound
from ...domain.value_objects.entity_ids import OrderId
from ...infrastructure.external_services.delivery_service import translate_carrier_status
from ..dtos.order_dtos import DeliveryWebhookPayload
from .order_lifecycle import OrderLifecycleOrchestrator

logger = logging.getLogger(__name__)

STATUS_UPDATED_EVENT = "parcel.status.updated"


class ProcessDeliveryWebhookUseCase:
    """Applies parcel status callbacks; the agency always gets an acknowledgement"""

    def __init__(self, orchestrator: OrderLifecycleOrchestrator):
        self.orchestrator = orchestrator

    async def execute(self, payload: dict) -> dict:
        try:
            webhook = DeliveryWebhookPayload.model_validate(payload)
        except PayloadValidationError as e:
            logger.warning(f"Malformed delivery webhook ignored: {e}")
            return {"received": True}

        if webhook.event != STATUS_UPDATED_EVENT:
            logger.info(f"Ignoring delivery webhook event: {webhook.event}")
            return {"received": True}

        data = webhook.data
        status = translate_carrier_status(data.status)
        if status is None:
            logger.warning(f"Unknown carrier status '{data.status}' for order {data.order_id}, no change")
            return {"received": True}

        try:
            order_id = OrderId.from_str(data.order_id)
        except ValueError:
            logger.warning(f"Delivery webhook references malformed order id {data.order_id}")
            return {"received": True}

        try:
            order, changed = await self.orchestrator.apply_delivery_status(order_id, status, data.note)
        except NotFound:
            logger.warning(f"Delivery webhook for unknown order {data.order_id}")
        except InvalidTransition as e:
            logger.warning(f"Delivery update for order {data.order_id} rejected: {e}")
        else:
            if changed:
                logger.info(f"Order {order.id} delivery status is now {order.delivery_status.value}")
            else:
                logger.info(f"Duplicate delivery update for order {order.id} ({status.value})")
        return {"received": True}
