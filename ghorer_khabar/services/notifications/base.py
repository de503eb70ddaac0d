"""
Notification Service Abstract Base Class

Defines the interface for sending SMS and email notifications.
Implementations only provide the transport (``send_sms``/``send_email``);
the marketplace messages built on top of them live here so every provider
sends the same content.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.services.notifications.templates import render_email

logger = logging.getLogger(__name__)

BD_COUNTRY_CODE = "880"
BD_MOBILE_PATTERN = re.compile(r"8801[3-9]\d{8}")


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a Bangladeshi mobile number to E.164.

    Accepts local (``01XXXXXXXXX``) and international (``8801...``,
    ``+8801...``) forms with spaces or dashes. Anything else returns None.

    Example:
        >>> normalize_phone("01711-000001")
        '+8801711000001'
    """
    if not phone:
        return None
    digits = re.sub(r"[\s\-()]", "", phone).lstrip("+")
    if digits.startswith("0"):
        digits = BD_COUNTRY_CODE + digits[1:]
    if not BD_MOBILE_PATTERN.fullmatch(digits):
        return None
    return f"+{digits}"


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send an SMS to an E.164 number."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
        category: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email; ``category`` tags the message type for the provider."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    # =========================================================================
    # MARKETPLACE MESSAGES
    # =========================================================================

    async def send_order_confirmation(
        self,
        order_id: int,
        customer_name: Optional[str],
        customer_email: Optional[str],
        customer_phone: Optional[str],
        kitchen_name: str,
        items: list[dict],
        total_amount: float,
        delivery_date: Optional[str] = None,
        delivery_slot: Optional[str] = None,
    ) -> NotificationResult:
        """
        Confirm a placed order by SMS and email.

        Succeeds when at least one channel delivered.
        """
        settings = get_settings()
        when = f" for {delivery_slot} on {delivery_date}" if delivery_date else ""
        message = (
            f"Hi {customer_name or 'there'}! Your order #{order_id} from {kitchen_name} "
            f"has been placed{when}. Total: ৳{total_amount:.0f}"
        )

        sms_result = None
        phone = normalize_phone(customer_phone)
        if phone:
            sms_result = await self.send_sms(phone, message)
        elif customer_phone:
            logger.warning(f"Skipping SMS for order #{order_id}: unusable phone number {customer_phone!r}")

        email_result = None
        if customer_email:
            email_result = await self.send_email(
                to_email=customer_email,
                subject=f"Order #{order_id} placed - {settings.app_name}",
                body_html=render_email(
                    "order_confirmation.html",
                    customer_name=customer_name,
                    order_id=order_id,
                    kitchen_name=kitchen_name,
                    items=items,
                    total_amount=total_amount,
                    delivery_date=delivery_date,
                    delivery_slot=delivery_slot,
                ),
                body_text=message,
                category="order_confirmation",
            )

        results = [r for r in (sms_result, email_result) if r is not None]
        if not results:
            return NotificationResult(
                success=False,
                error_message="No contact details for customer",
                provider=self.provider_name,
            )

        return NotificationResult(
            success=any(r.success for r in results),
            message_id=next((r.message_id for r in results if r.success), None),
            error_message=None if any(r.success for r in results) else results[0].error_message,
            provider=self.provider_name,
        )

    async def send_subscription_approved(
        self,
        to_email: str,
        customer_name: Optional[str],
        plan_name: str,
        kitchen_name: str,
        start_date: str,
        total_amount: float,
    ) -> NotificationResult:
        return await self.send_email(
            to_email=to_email,
            subject=f"Your {plan_name} subscription is active",
            body_html=render_email(
                "subscription_approved.html",
                customer_name=customer_name,
                plan_name=plan_name,
                kitchen_name=kitchen_name,
                start_date=start_date,
                total_amount=total_amount,
            ),
            body_text=(
                f"{kitchen_name} approved your {plan_name} subscription. "
                f"Deliveries start on {start_date}."
            ),
            category="subscription_approved",
        )

    async def send_subscription_rejected(
        self,
        to_email: str,
        customer_name: Optional[str],
        plan_name: str,
        kitchen_name: str,
        reason: str,
    ) -> NotificationResult:
        return await self.send_email(
            to_email=to_email,
            subject=f"Your {plan_name} subscription request was declined",
            body_html=render_email(
                "subscription_rejected.html",
                customer_name=customer_name,
                plan_name=plan_name,
                kitchen_name=kitchen_name,
                reason=reason,
            ),
            body_text=f"{kitchen_name} declined your {plan_name} subscription: {reason}",
            category="subscription_rejected",
        )

    async def send_kitchen_verified(
        self,
        to_email: str,
        seller_name: Optional[str],
        kitchen_name: str,
    ) -> NotificationResult:
        return await self.send_email(
            to_email=to_email,
            subject=f"{kitchen_name} is verified",
            body_html=render_email(
                "kitchen_verified.html",
                seller_name=seller_name,
                kitchen_name=kitchen_name,
            ),
            body_text=f"Congratulations! {kitchen_name} has been verified.",
            category="kitchen_verified",
        )

    async def send_kitchen_rejected(
        self,
        to_email: str,
        seller_name: Optional[str],
        kitchen_name: str,
        reason: str,
    ) -> NotificationResult:
        return await self.send_email(
            to_email=to_email,
            subject=f"Update on your {kitchen_name} application",
            body_html=render_email(
                "kitchen_rejected.html",
                seller_name=seller_name,
                kitchen_name=kitchen_name,
                reason=reason,
            ),
            body_text=f"We could not verify {kitchen_name}: {reason}",
            category="kitchen_rejected",
        )
