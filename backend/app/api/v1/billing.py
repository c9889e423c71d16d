"""Billing webhook endpoint.

Stripe posts signed events here. The raw body is verified before parsing;
processing outcomes are recorded per event id so redeliveries are
acknowledged without repeating work.
"""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.api.deps import DbSession
from app.services import billing_service, webhook_service

logger = structlog.get_logger()

router = APIRouter()


@router.post("/webhook", response_model=None)
async def stripe_webhook(request: Request, db: DbSession) -> dict | JSONResponse:
    """Verify and handle one Stripe event.

    Returns 500 when the handler failed so Stripe retries the delivery.

    Raises:
        ValidationError: Missing or invalid signature (400).
        ServiceNotConfiguredError: Webhook secret unset (500).
    """
    payload = await request.body()
    event = billing_service.construct_event(
        payload, request.headers.get("stripe-signature")
    )

    status = await webhook_service.handle_event(db, event)
    await db.commit()
    logger.info("Webhook handled", event_type=event["type"], status=status)

    if status == "failed":
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "WEBHOOK_FAILED",
                    "message": "Webhook processing failed",
                    "details": None,
                }
            },
        )
    return {"received": True, "status": status}
