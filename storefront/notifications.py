# storefront/notifications.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from .errors import NotificationFailure
from .settlement import SettlementResult

log = logging.getLogger("storefront.notifications")

Message = Dict[str, Any]
FailureHook = Callable[[str, Message, str], Awaitable[None]]


# 📨 notifications-service: POST /api/notifications/send {to, channel, template, ctx}
class HttpNotificationSink:
    def __init__(self, base_url: str, timeout: float = 3.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def send(self, recipient: str, message: Message) -> None:
        payload = {
            "to": recipient,
            "channel": message.get("channel", "email"),
            "template": message["template"],
            "ctx": message.get("ctx") or {},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(f"{self.base_url}/api/notifications/send", json=payload)
        except httpx.RequestError as e:
            raise NotificationFailure(recipient, f"notifications service unreachable: {e}") from e
        if resp.status_code >= 400:
            raise NotificationFailure(recipient, f"notifications service returned {resp.status_code}")


# 💬 Slack incoming webhook: {"text": ...}
class SlackWebhookSink:
    def __init__(self, webhook_url: str, timeout: float = 3.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    async def send(self, recipient: str, message: Message) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.webhook_url, json={"text": message["text"]})
        except httpx.RequestError as e:
            raise NotificationFailure(recipient, f"webhook unreachable: {e}") from e
        if resp.status_code >= 400:
            raise NotificationFailure(recipient, f"webhook returned {resp.status_code}")


# 🔁 Доставка с экспоненциальной задержкой; deliver не бросает, сбой уходит в on_failure
class NotificationDispatcher:
    def __init__(
        self,
        sink,
        max_attempts: int = 3,
        base_delay: float = 0.3,
        timeout: float = 3.0,
        on_failure: Optional[FailureHook] = None,
    ):
        self.sink = sink
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.timeout = timeout
        self.on_failure = on_failure

    async def deliver(self, recipient: str, message: Message) -> bool:
        last_error = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                await asyncio.wait_for(self.sink.send(recipient, message), timeout=self.timeout)
                log.info("notification %s sent to %s (attempt %d)", message.get("template"), recipient, attempt)
                return True
            except asyncio.TimeoutError:
                last_error = f"timed out after {self.timeout}s"
            except NotificationFailure as e:
                last_error = e.detail or str(e)

            if attempt < self.max_attempts:
                delay = self.base_delay * (2 ** (attempt - 1))
                log.warning("notification to %s failed (%s), retry %d in %.2fs",
                            recipient, last_error, attempt, delay)
                await asyncio.sleep(delay)

        log.error("notification %s to %s dropped after %d attempts: %s",
                  message.get("template"), recipient, self.max_attempts, last_error)
        if self.on_failure is not None:
            try:
                await self.on_failure(recipient, message, last_error)
            except Exception:
                log.exception("failed to record notification failure for %s", recipient)
        return False


def order_settled_message(result: SettlementResult) -> Message:
    return {
        "channel": "email",
        "template": "loyalty_points_awarded",
        "ctx": {
            "user_id": result.user_id,
            "order_id": result.order_id,
            "award": result.award,
            "balance": result.balance,
        },
    }


def welcome_message(user_id: str, email: str) -> Message:
    return {
        "channel": "email",
        "template": "welcome",
        "ctx": {"user_id": user_id, "email": email, "subject": "Welcome to CommerceAI!"},
    }
