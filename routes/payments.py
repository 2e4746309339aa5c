import logging

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from core.errors import ConflictError, NotFoundError
from routes.deps import get_order_manager
from services.orders import OrderLifecycleManager
from services.payments import construct_webhook_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/webhook")
async def stripe_webhook(request: Request, manager: OrderLifecycleManager = Depends(get_order_manager)):
    payload = await request.body()
    event = construct_webhook_event(payload, request.headers.get("stripe-signature"))

    event_type = event["type"]
    logger.info("Processing Stripe webhook event %s", event_type)
    if event_type == "payment_intent.succeeded":
        intent_id = event["data"]["object"]["id"]
        try:
            await run_in_threadpool(manager.mark_paid, intent_id)
        except NotFoundError:
            # intents created outside checkout
            logger.warning("Payment intent %s has no order", intent_id)
        except ConflictError as e:
            logger.warning("Payment intent %s not applied: %s", intent_id, e.message)
    return {"received": True}
