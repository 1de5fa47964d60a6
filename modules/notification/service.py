"""
Storefront - Notification Service
====================================
Order confirmation e-mails. Runs after the checkout transaction has
committed (via BackgroundTasks), in its own DB session.
Without SMTP settings the message is logged instead of sent.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import settings
from config.database import SessionLocal

logger = logging.getLogger("storefront.notification")


_env = Environment(
    loader=FileSystemLoader(settings.TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)
_env.filters["currency"] = lambda value: f"${float(value):,.2f}"
_env.filters["datetime"] = lambda value: value.strftime("%B %d, %Y %H:%M") if value else ""


class NotificationService:

    # ------------------------------------------------------------------
    # Order confirmation
    # ------------------------------------------------------------------

    def send_order_confirmation(self, order_id: int) -> bool:
        """
        Look up the order and its owner, render the confirmation, send it.
        Every failure is logged and swallowed: the order is already committed.
        """
        from modules.order.models import Order

        db = SessionLocal()
        try:
            order = db.query(Order).filter(Order.id == order_id).first()
            if not order or not order.user:
                logger.warning(f"Order confirmation skipped: order #{order_id} or its user not found")
                return False

            html = self.render_order_confirmation(order)
            subject = f"Order Confirmation - {order.order_number}"
            return self._send_email(order.user.email, subject, html)
        except Exception as e:
            logger.error(f"Order confirmation failed for order #{order_id}: {e}")
            return False
        finally:
            db.close()

    def render_order_confirmation(self, order) -> str:
        template = _env.get_template("email/order_confirmation.html")
        return template.render(order=order, user=order.user)

    # ------------------------------------------------------------------
    # SMTP Helper
    # ------------------------------------------------------------------

    def _send_email(self, to: Optional[str], subject: str, html: str) -> bool:
        if not to:
            logger.error("E-mail send failed: missing recipient")
            return False

        if not settings.SMTP_HOST or not settings.SMTP_USER:
            logger.info(f"[EMAIL STUB] To {to}: {subject}")
            return False

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = settings.EMAIL_FROM or settings.SMTP_USER
        msg["To"] = to
        msg.set_content("Your order has been received. View this message in an HTML-capable client.")
        msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            smtp.send_message(msg)

        logger.info(f"Order e-mail sent to {to}")
        return True


# Singleton
notification_service = NotificationService()
