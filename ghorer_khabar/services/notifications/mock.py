"""
Mock Notification Service

Simulates SMS and email delivery for development. Nothing leaves the
process: each delivered message is appended to ``outbox`` so the
marketplace flows can be inspected.
"""

import asyncio
import logging
import random
import uuid
from typing import Optional

from ghorer_khabar.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """In-memory notifier with configurable latency and failure rate."""

    def __init__(
        self,
        failure_rate: float = 0.05,
        min_latency: float = 0.1,
        max_latency: float = 0.3,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.outbox: list[dict] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _deliver(self, channel: str, to: str, **fields) -> NotificationResult:
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)

        if random.random() < self.failure_rate:
            logger.warning(f"Mock {channel} to {to} failed (simulated)")
            return NotificationResult(
                success=False,
                error_message=f"Simulated {channel} failure",
                provider=self.provider_name,
            )

        message_id = f"{channel}_mock_{uuid.uuid4().hex[:12]}"
        self.outbox.append({"channel": channel, "to": to, "message_id": message_id, **fields})
        logger.info(f"Mock {channel} sent to {to} (ID: {message_id})")
        return NotificationResult(success=True, message_id=message_id, provider=self.provider_name)

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        return await self._deliver("sms", to_phone, body=message)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
        category: Optional[str] = None,
    ) -> NotificationResult:
        return await self._deliver("email", to_email, subject=subject, body=body_html, category=category)

    def messages_to(self, recipient: str) -> list[dict]:
        """Delivered messages for one phone number or email address, oldest first."""
        return [m for m in self.outbox if m["to"] == recipient]

    async def health_check(self) -> bool:
        return True
