"""Order notifications via Resend, and the post-commit event dispatcher."""

import logging
from dataclasses import dataclass
from typing import Any

import resend

from miles.core.config import get_settings
from miles.models.order import Order, OrderStatus

logger = logging.getLogger(__name__)


def _items_rows(order: Order) -> str:
    rows = []
    for item in order.get("order_items", []):
        rows.append(
            f"<tr><td style=\"padding: 6px 0;\">{item['product_name']}</td>"
            f"<td style=\"padding: 6px 0; text-align: center;\">{item['quantity']}</td>"
            f"<td style=\"padding: 6px 0; text-align: right;\">RM {item['total_price']:.2f}</td></tr>"
        )
    return "\n".join(rows)


def _items_text(order: Order) -> str:
    return "\n".join(
        f"- {item['product_name']} x{item['quantity']}: RM {item['total_price']:.2f}"
        for item in order.get("order_items", [])
    )


def _layout(title: str, accent: str, body: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: {accent}; padding: 24px; border-radius: 8px 8px 0 0; text-align: center;">
        <h1 style="color: white; margin: 0; font-size: 22px;">{title}</h1>
    </div>
    <div style="background: #ffffff; padding: 24px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 8px 8px;">
{body}
    </div>
</body>
</html>
"""


class NotificationService:
    """Service for sending order emails via Resend.

    Every method returns a result dict and never raises: a failed email must
    not affect the order mutation that triggered it.
    """

    def __init__(self) -> None:
        """Initialize notification service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.from_email = settings.email_from_address
        self.frontend_url = settings.frontend_url

    def _order_url(self, order: Order) -> str:
        return f"{self.frontend_url}/orders/{order['id']}"

    async def _send(self, order: Order, subject: str, html: str, text: str, kind: str) -> dict[str, Any]:
        to_email = order.get("customer_email")
        if not to_email:
            logger.warning("Order %s has no customer email, skipping %s email", order.get("id"), kind)
            return {"success": False, "error": "missing recipient"}

        try:
            response = resend.Emails.send({
                "from": self.from_email,
                "to": [to_email],
                "subject": subject,
                "html": html,
                "text": text,
            })

            logger.info(
                "%s email sent for order %s to %s, id: %s",
                kind,
                order.get("order_number"),
                to_email,
                response.get("id"),
            )
            return {"success": True, "email_id": response.get("id")}

        except Exception as e:
            logger.error(
                "Failed to send %s email for order %s: %s",
                kind,
                order.get("id"),
                str(e),
            )
            return {"success": False, "error": str(e)}

    async def send_order_confirmation(self, order: Order) -> dict[str, Any]:
        """Send the order-received email right after checkout."""
        body = f"""
        <p>Hi {order['customer_name']},</p>
        <p>Thank you for your order <strong>{order['order_number']}</strong>. We will let you know once payment is confirmed.</p>
        <table style="width: 100%; border-collapse: collapse;">
{_items_rows(order)}
        </table>
        <p style="text-align: right; font-weight: bold;">Total: RM {order['total_amount']:.2f}</p>
        <p><a href="{self._order_url(order)}">View your order</a></p>
"""
        text = (
            f"Hi {order['customer_name']},\n\n"
            f"Thank you for your order {order['order_number']}.\n\n"
            f"{_items_text(order)}\n\nTotal: RM {order['total_amount']:.2f}\n\n"
            f"View your order: {self._order_url(order)}\n"
        )
        return await self._send(
            order,
            subject=f"Order confirmation {order['order_number']}",
            html=_layout("Order Confirmation", "#4CAF50", body),
            text=text,
            kind="order confirmation",
        )

    async def send_payment_received(self, order: Order) -> dict[str, Any]:
        """Send the payment-received email after settlement."""
        body = f"""
        <p>Hi {order['customer_name']},</p>
        <p>We have received your payment of <strong>RM {order['total_amount']:.2f}</strong> for order <strong>{order['order_number']}</strong>.</p>
        <p>The store is now preparing your items.</p>
"""
        text = (
            f"Hi {order['customer_name']},\n\n"
            f"We have received your payment of RM {order['total_amount']:.2f} for order {order['order_number']}.\n"
        )
        return await self._send(
            order,
            subject=f"Payment received for {order['order_number']}",
            html=_layout("Payment Received", "#2e7d32", body),
            text=text,
            kind="payment received",
        )

    async def send_shipped(self, order: Order) -> dict[str, Any]:
        """Send the shipping notice."""
        body = f"""
        <p>Hi {order['customer_name']},</p>
        <p>Good news! Your order <strong>{order['order_number']}</strong> is on its way to:</p>
        <p style="background: #f9fafb; padding: 12px; border-radius: 6px;">{order['customer_address']}</p>
        <p><a href="{self._order_url(order)}">Track your order</a></p>
"""
        text = (
            f"Hi {order['customer_name']},\n\n"
            f"Your order {order['order_number']} has shipped to:\n{order['customer_address']}\n"
        )
        return await self._send(
            order,
            subject=f"Your order {order['order_number']} has shipped",
            html=_layout("Your Order Has Shipped", "#FF9800", body),
            text=text,
            kind="shipped",
        )

    async def send_status_changed(
        self,
        order: Order,
        previous_status: OrderStatus,
        new_status: OrderStatus,
    ) -> dict[str, Any]:
        """Send a generic status-update email naming the old and new status."""
        previous_label = OrderStatus(previous_status).value
        new_label = OrderStatus(new_status).value
        body = f"""
        <p>Hi {order['customer_name']},</p>
        <p>The status of your order <strong>{order['order_number']}</strong> has changed.</p>
        <p style="text-align: center; font-size: 16px;">
            <span style="text-transform: uppercase;">{previous_label}</span> &rarr;
            <strong style="text-transform: uppercase;">{new_label}</strong>
        </p>
        <p><a href="{self._order_url(order)}">View your order</a></p>
"""
        text = (
            f"Hi {order['customer_name']},\n\n"
            f"Your order {order['order_number']} changed from {previous_label} to {new_label}.\n"
        )
        return await self._send(
            order,
            subject=f"Order {order['order_number']} is now {new_label}",
            html=_layout("Order Status Update", "#2196F3", body),
            text=text,
            kind="status update",
        )


@dataclass(frozen=True)
class OrderCreated:
    """Emitted after an order and its items are committed."""

    order: Order


@dataclass(frozen=True)
class OrderStatusChanged:
    """Emitted after a status change is committed.

    Only real changes are published, so a redelivered settlement that turns
    out to be a no-op never produces a second notification.
    """

    order: Order
    previous_status: OrderStatus
    new_status: OrderStatus


OrderEvent = OrderCreated | OrderStatusChanged


class OrderEventDispatcher:
    """Routes committed order events to the notifier, best effort."""

    def __init__(self, notifier: NotificationService | None = None) -> None:
        self._notifier = notifier

    @property
    def notifier(self) -> NotificationService:
        """Get notification service."""
        if self._notifier is None:
            self._notifier = NotificationService()
        return self._notifier

    async def publish(self, event: OrderEvent) -> None:
        """Deliver an event; failures are logged and never propagated."""
        try:
            if isinstance(event, OrderCreated):
                await self.notifier.send_order_confirmation(event.order)
            elif isinstance(event, OrderStatusChanged):
                if event.new_status == OrderStatus.PAID:
                    await self.notifier.send_payment_received(event.order)
                elif event.new_status == OrderStatus.SHIPPED:
                    await self.notifier.send_shipped(event.order)
                else:
                    await self.notifier.send_status_changed(
                        event.order, event.previous_status, event.new_status
                    )
        except Exception as e:
            logger.error(
                "Failed to deliver %s for order %s: %s",
                type(event).__name__,
                event.order.get("id"),
                str(e),
            )
