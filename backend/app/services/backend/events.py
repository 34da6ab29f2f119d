"""
In-process notifications of session changes.

Auth routes publish ``signed_in`` / ``signed_out`` after talking to the
provider; each active library workspace holds a subscription for its user
and releases it when it is torn down.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class AuthEventKind(str, Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass
class AuthEvent:
    kind: AuthEventKind
    user_id: str
    access_token: Optional[str] = None


AuthEventHandler = Callable[[AuthEvent], Awaitable[None]]


class Subscription:
    """Handle returned by subscribe; call unsubscribe() to release it."""

    def __init__(self, bus: "AuthEventBus", user_id: str, handler: AuthEventHandler):
        self._bus = bus
        self.user_id = user_id
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._bus._remove(self)
            self.active = False


class AuthEventBus:
    """Per-user fan-out of session changes."""

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}

    def subscribe(self, user_id: str, handler: AuthEventHandler) -> Subscription:
        subscription = Subscription(self, user_id, handler)
        self._subscriptions.setdefault(user_id, []).append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.user_id, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions:
            self._subscriptions.pop(subscription.user_id, None)

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscriptions.get(user_id, []))

    async def publish(self, event: AuthEvent) -> None:
        """Deliver to every current subscriber of the event's user."""
        logger.info(f"Auth state changed: {event.kind.value} {event.user_id}")

        # Handlers may unsubscribe while we iterate
        for subscription in list(self._subscriptions.get(event.user_id, [])):
            try:
                await subscription.handler(event)
            except Exception as e:
                logger.error(
                    f"Error handling {event.kind.value} for {event.user_id}: {e}"
                )


auth_events = AuthEventBus()
