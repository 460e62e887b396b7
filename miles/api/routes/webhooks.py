"""Webhook API routes for payment gateway callbacks."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from miles.api.deps import PaymentServiceDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post(
    "/stripe",
    status_code=status.HTTP_200_OK,
    summary="Handle Stripe webhooks",
    description="Receives and processes Stripe webhook events. Requires valid signature.",
)
async def stripe_webhook(request: Request, service: PaymentServiceDep) -> dict[str, str]:
    """Handle Stripe webhook events.

    Handles:
    - payment_intent.succeeded: settles the order (marks paid, deducts stock)
    - payment_intent.payment_failed: logged, order stays pending
    - checkout.session.completed: settles the order once payment_status is paid

    Redelivered events are acknowledged without side effects. Unexpected
    failures surface as 500 so Stripe retries the delivery.

    Args:
        request: FastAPI request object for reading raw body and headers.
        service: Payment service.

    Returns:
        dict: Acknowledgment message.

    Raises:
        HTTPException: 400 if the signature header is missing.
        SignatureInvalidError: 400 if the signature is invalid.
    """
    payload = await request.body()

    sig_header = request.headers.get("stripe-signature")
    if not sig_header:
        logger.error("Missing Stripe-Signature header in webhook request")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe-Signature header",
        )

    event = service.verify_webhook_signature(payload, sig_header)

    logger.info("Processing Stripe webhook event: %s (%s)", event.get("type"), event.get("id"))
    await service.handle_event(event)

    return {"status": "received"}
