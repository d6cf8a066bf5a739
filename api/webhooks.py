from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
import logging
import stripe

from api.dependencies import get_stripe_manager, get_webhook_service
from managers.stripe_manager import StripeManager
from services.webhook import PaymentWebhookService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhook/payment", tags=["webhooks"])
@router.post("/stripe-webhook", tags=["webhooks"], include_in_schema=False)
async def payment_webhook(
    request: Request,
    stripe_manager: StripeManager = Depends(get_stripe_manager),
    service: PaymentWebhookService = Depends(get_webhook_service),
):
    sig_header = request.headers.get('stripe-signature')
    if not sig_header:
        return JSONResponse(status_code=400, content={"ok": False, "error": "Missing stripe-signature header"})

    # 署名は生のボディに対して検証する (パース→再シリアライズすると一致しない)
    payload = await request.body()
    try:
        event = stripe_manager.verify_event(payload, sig_header)
        if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
            raise ValueError("Event id/type missing")
    except ValueError as e:
        # Invalid payload
        logger.warning("stripe_webhook.invalid_payload error=%s", e)
        return JSONResponse(status_code=400, content={"ok": False, "error": "Invalid payload"})
    except stripe.SignatureVerificationError as e:
        # Invalid signature
        logger.warning("stripe_webhook.signature_failed error=%s", e)
        return JSONResponse(status_code=400, content={"ok": False, "error": "Webhook signature verification failed"})

    logger.info("stripe_webhook.verified event_id=%s type=%s created=%s", event["id"], event["type"], event.get("created"))

    try:
        payment_event = await run_in_threadpool(service.persist, event)
    except Exception as e:
        # 失敗を返して Stripe に再送させる
        logger.error("stripe_webhook.persist_failed event_id=%s error=%s", event["id"], e)
        return JSONResponse(status_code=500, content={"ok": False, "error": "Failed to persist event"})

    try:
        order = await run_in_threadpool(service.dispatch, payment_event)
    except Exception as e:
        logger.error("stripe_webhook.process_failed event_id=%s type=%s error=%s", payment_event.id, payment_event.type, e)
        return JSONResponse(status_code=500, content={"ok": False, "error": "Failed to process event"})

    return {"ok": True, "orderId": order.id if order else None}
