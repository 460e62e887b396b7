"""Stripe payment gateway boundary: intents, checkout sessions, webhooks and confirmation."""

import json
import logging
from typing import Any

import stripe

from miles.api.middleware.error_handler import (
    GatewayUnavailableError,
    InvalidTransitionError,
    NotFoundError,
    OrderNotFoundError,
    PaymentNotCompletedError,
    SignatureInvalidError,
    ValidationError,
)
from miles.core.config import get_settings
from miles.core.stripe import get_stripe, to_minor_units
from miles.models.order import Order, OrderStatus, PaymentMethod
from miles.services.catalog_service import CatalogService
from miles.services.order_repository import OrderRepository
from miles.services.order_state_machine import SETTLED_STATUSES, allowed_transitions
from miles.services.settlement_service import SettlementResult, SettlementService

logger = logging.getLogger(__name__)

# Stripe payment method types per checkout payment method
GATEWAY_METHOD_TYPES = {
    PaymentMethod.STRIPE: ["card"],
    PaymentMethod.FPX: ["fpx"],
}


def _metadata_order_id(obj: Any) -> int | None:
    """Extract the order ID tagged on a gateway object at intent creation."""
    metadata = obj.get("metadata") if isinstance(obj, dict) else getattr(obj, "metadata", None)
    if not metadata or "order_id" not in metadata:
        return None
    try:
        return int(metadata["order_id"])
    except (TypeError, ValueError):
        return None


def _order_metadata(order: Order) -> dict[str, str]:
    return {
        "order_id": str(order["id"]),
        "order_number": order["order_number"],
        "store_id": str(order["store_id"]),
    }


class PaymentService:
    """Service for Stripe payment intents, checkout sessions and settlement triggers."""

    def __init__(
        self,
        repository: OrderRepository | None = None,
        settlement: SettlementService | None = None,
        catalog: CatalogService | None = None,
    ) -> None:
        """Initialize payment service with clients."""
        self.stripe = get_stripe()
        self.settings = get_settings()
        self.repository = repository or OrderRepository()
        self.settlement = settlement or SettlementService(repository=self.repository)
        self.catalog = catalog or CatalogService()

    async def _payable_order(self, order_id: int) -> tuple[Order, PaymentMethod, int]:
        """Load an order that can be paid online, with its gateway amount.

        Raises:
            GatewayUnavailableError: If Stripe is not configured.
            OrderNotFoundError: If the order does not exist.
            InvalidTransitionError: If the order is no longer pending.
            ValidationError: For cash-on-delivery orders or amounts below the gateway minimum.
        """
        if not self.settings.stripe_secret_key:
            raise GatewayUnavailableError("Stripe is not configured")

        order = await self.repository.find_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if order["status"] != OrderStatus.PENDING:
            raise InvalidTransitionError(
                current_status=order["status"].value,
                target_status=OrderStatus.PAID.value,
                allowed=[s.value for s in allowed_transitions(order["status"])],
                message="Only pending orders can be paid",
            )

        method = PaymentMethod(order["payment_method"])
        if method not in GATEWAY_METHOD_TYPES:
            raise ValidationError("Cash on delivery orders are not paid online")

        amount = to_minor_units(order["total_amount"])
        if amount < self.settings.stripe_minimum_amount:
            raise ValidationError(
                f"Order total is below the minimum chargeable amount of {self.settings.stripe_minimum_amount}",
                details=[{"loc": ["total_amount"], "msg": str(order["total_amount"]), "type": "below_minimum"}],
            )

        return order, method, amount

    async def create_payment_intent(self, order_id: int) -> dict[str, Any]:
        """Create a Stripe PaymentIntent for a pending order.

        Args:
            order_id: The order to pay.

        Returns:
            dict: client_secret, payment_intent_id, amount (minor units), currency.

        Raises:
            OrderNotFoundError: If the order does not exist.
            InvalidTransitionError: If the order is no longer pending.
            ValidationError: For cash-on-delivery orders or amounts below the gateway minimum.
            GatewayUnavailableError: If Stripe is not configured or the call fails.
        """
        order, method, amount = await self._payable_order(order_id)

        try:
            intent = self.stripe.PaymentIntent.create(
                amount=amount,
                currency=self.settings.stripe_currency,
                payment_method_types=GATEWAY_METHOD_TYPES[method],
                receipt_email=order["customer_email"],
                description=f"Order {order['order_number']}",
                metadata=_order_metadata(order),
            )
        except stripe.StripeError as e:
            logger.error("Stripe error creating payment intent for order %s: %s", order_id, str(e))
            raise GatewayUnavailableError() from e

        logger.info("Payment intent %s created for order %s", intent.id, order["order_number"])
        return {
            "client_secret": intent.client_secret,
            "payment_intent_id": intent.id,
            "amount": amount,
            "currency": self.settings.stripe_currency,
        }

    async def create_checkout_session(self, order_id: int) -> dict[str, Any]:
        """Create a hosted Stripe Checkout Session for a pending order.

        Line items are built from the order's item snapshots. The order and
        its underlying PaymentIntent both carry the order metadata, so either
        checkout.session.completed or payment_intent.succeeded settles it.
        The session ID is stored as the order's payment reference.

        Args:
            order_id: The order to pay.

        Returns:
            dict: checkout_url, session_id, amount (minor units), currency.

        Raises:
            OrderNotFoundError: If the order does not exist.
            InvalidTransitionError: If the order is no longer pending.
            ValidationError: For cash-on-delivery orders or amounts below the gateway minimum.
            GatewayUnavailableError: If Stripe is not configured or the call fails.
        """
        order, method, amount = await self._payable_order(order_id)

        store = await self.catalog.get_store(order["store_id"])
        if store is None:
            raise NotFoundError("Store not found")

        store_url = f"{self.settings.frontend_url}/store/{store['store_slug']}"
        metadata = _order_metadata(order)
        line_items = [
            {
                "price_data": {
                    "currency": self.settings.stripe_currency,
                    "product_data": {"name": item["product_name"]},
                    "unit_amount": to_minor_units(item["unit_price"]),
                },
                "quantity": item["quantity"],
            }
            for item in order.get("order_items", [])
        ]

        try:
            session = self.stripe.checkout.Session.create(
                mode="payment",
                payment_method_types=GATEWAY_METHOD_TYPES[method],
                line_items=line_items,
                customer_email=order["customer_email"],
                success_url=f"{store_url}/payment-success/{order['id']}",
                cancel_url=f"{store_url}/payment-failed",
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
            )
        except stripe.StripeError as e:
            logger.error("Stripe error creating checkout session for order %s: %s", order_id, str(e))
            raise GatewayUnavailableError() from e

        if await self.repository.set_payment_reference(order_id, session.id) is None:
            logger.warning("Order %s was no longer pending when session %s was created", order_id, session.id)

        logger.info("Checkout session %s created for order %s", session.id, order["order_number"])
        return {
            "checkout_url": session.url,
            "session_id": session.id,
            "amount": amount,
            "currency": self.settings.stripe_currency,
        }

    def verify_webhook_signature(self, payload: bytes, sig_header: str) -> dict[str, Any]:
        """Verify Stripe webhook signature and return the parsed event.

        Args:
            payload: Raw webhook payload bytes.
            sig_header: Stripe-Signature header value.

        Returns:
            dict: Verified Stripe event.

        Raises:
            SignatureInvalidError: If the secret is missing or the signature/payload is invalid.
        """
        if not self.settings.stripe_webhook_secret:
            logger.error("Stripe webhook secret is not configured")
            raise SignatureInvalidError("Webhook secret not configured")

        try:
            body = payload.decode("utf-8")
            self.stripe.WebhookSignature.verify_header(
                body, sig_header, self.settings.stripe_webhook_secret
            )
            return json.loads(body)
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise SignatureInvalidError() from e
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Invalid webhook payload: %s", str(e))
            raise SignatureInvalidError("Invalid payload") from e

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Dispatch a verified webhook event.

        Every failure after signature verification is logged for operators and
        acknowledged. That covers unknown or missing orders, orders that can no
        longer be paid, and storage errors.
        """
        event_type = event.get("type", "")
        obj = event.get("data", {}).get("object", {})

        try:
            if event_type == "payment_intent.succeeded":
                await self.handle_payment_succeeded(obj)
            elif event_type == "payment_intent.payment_failed":
                await self.handle_payment_failed(obj)
            elif event_type == "checkout.session.completed":
                await self.handle_checkout_completed(obj)
            else:
                logger.debug("Unhandled webhook event type: %s", event_type)
        except OrderNotFoundError as e:
            logger.error(
                "Order %s not found for %s (%s)",
                e.order_id,
                event_type,
                obj.get("id"),
            )
        except InvalidTransitionError as e:
            logger.error(
                "Payment %s received for order in status %s, manual review needed",
                obj.get("id"),
                e.current_status,
            )
        except Exception:
            logger.exception(
                "Failed to process %s for order %s (%s), manual review needed",
                event_type,
                _metadata_order_id(obj),
                obj.get("id"),
            )

    async def handle_payment_succeeded(self, intent: dict[str, Any]) -> SettlementResult | None:
        """Process payment_intent.succeeded."""
        order_id = _metadata_order_id(intent)
        if order_id is None:
            logger.warning("Payment succeeded but no order_id in metadata: %s", intent.get("id"))
            return None

        return await self.settlement.settle(order_id, intent.get("id"))

    async def handle_checkout_completed(self, session: dict[str, Any]) -> SettlementResult | None:
        """Process checkout.session.completed for hosted checkout pages."""
        order_id = _metadata_order_id(session)
        if order_id is None:
            logger.warning("Checkout completed but no order_id in metadata: %s", session.get("id"))
            return None

        if session.get("payment_status") != "paid":
            logger.info(
                "Checkout session %s completed with payment_status %s, waiting for payment",
                session.get("id"),
                session.get("payment_status"),
            )
            return None

        reference = session.get("payment_intent") or session.get("id")
        return await self.settlement.settle(order_id, reference)

    async def handle_payment_failed(self, intent: dict[str, Any]) -> None:
        """Process payment_intent.payment_failed.

        The order stays pending (it can be retried or cancelled) and stock is untouched.
        """
        order_id = _metadata_order_id(intent)
        if order_id is None:
            logger.warning("Payment failed but no order_id in metadata: %s", intent.get("id"))
            return

        order = await self.repository.find_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        error = intent.get("last_payment_error") or {}
        logger.info(
            "Payment failed for order %s (%s), intent %s, code %s: %s",
            order["id"],
            order["order_number"],
            intent.get("id"),
            error.get("code", "unknown"),
            error.get("message", "No error message"),
        )

    async def confirm_payment(self, order_id: int, payment_intent_id: str) -> SettlementResult:
        """Confirm a payment from the client after checkout.

        The gateway is re-queried; the client's word alone is never trusted.

        Raises:
            OrderNotFoundError: If the order does not exist.
            GatewayUnavailableError: If Stripe cannot be reached.
            ValidationError: If the intent belongs to another order.
            PaymentNotCompletedError: If the intent has not succeeded.
        """
        order = await self.repository.find_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if order["status"] in SETTLED_STATUSES and order.get("payment_reference") == payment_intent_id:
            return SettlementResult(order=order, settled=False)

        try:
            intent = self.stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            logger.error("Stripe error retrieving payment intent %s: %s", payment_intent_id, str(e))
            raise GatewayUnavailableError() from e

        if _metadata_order_id(intent) != order_id:
            raise ValidationError("Payment does not belong to this order")

        if intent.status != "succeeded":
            raise PaymentNotCompletedError(intent.status)

        return await self.settlement.settle(order_id, intent.id)

    async def get_payment_status(self, reference: str) -> dict[str, Any]:
        """Look up a payment intent's state at the gateway.

        Raises:
            GatewayUnavailableError: If Stripe cannot be reached.
        """
        try:
            intent = self.stripe.PaymentIntent.retrieve(reference)
        except stripe.InvalidRequestError as e:
            raise NotFoundError("Payment not found") from e
        except stripe.StripeError as e:
            logger.error("Stripe error retrieving payment intent %s: %s", reference, str(e))
            raise GatewayUnavailableError() from e

        return {
            "payment_intent_id": intent.id,
            "status": intent.status,
            "amount": intent.amount,
            "currency": intent.currency,
            "order_id": _metadata_order_id(intent),
        }
