"""
Payment change events.

The payment store publishes one PaymentChangeEvent after every committed
insert, update or delete. Subscribers receive immutable before/after
snapshots, so a deleted row can still be inspected after it is gone.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

INSERT = 'insert'
UPDATE = 'update'
DELETE = 'delete'


@dataclass(frozen=True)
class PaymentSnapshot:
    """Point-in-time copy of the fields that decide a payment's period and revenue."""
    id: Optional[int]
    amount: Decimal
    period_label: Optional[str]
    due_date: Optional[date]
    paid_date: Optional[date]
    status: str

    @classmethod
    def from_model(cls, payment) -> 'PaymentSnapshot':
        return cls(
            id=payment.id,
            amount=payment.amount,
            period_label=payment.period_label,
            due_date=payment.due_date,
            paid_date=payment.paid_date,
            status=payment.status,
        )


@dataclass(frozen=True)
class PaymentChangeEvent:
    """A committed change to one payment row."""
    operation: str  # 'insert', 'update', 'delete'
    before: Optional[PaymentSnapshot] = None
    after: Optional[PaymentSnapshot] = None

    @property
    def payment_id(self) -> Optional[int]:
        snapshot = self.after or self.before
        return snapshot.id if snapshot else None

    @property
    def old_status(self) -> Optional[str]:
        return self.before.status if self.before else None

    @property
    def new_status(self) -> Optional[str]:
        return self.after.status if self.after else None


PaymentEventHandler = Callable[[PaymentChangeEvent], None]


class PaymentEventBus:
    """In-process publish/subscribe channel for payment changes."""

    def __init__(self):
        self._handlers: List[PaymentEventHandler] = []

    def subscribe(self, handler: PaymentEventHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: PaymentEventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

    @property
    def handlers(self) -> List[PaymentEventHandler]:
        return list(self._handlers)

    def publish(self, event: PaymentChangeEvent) -> None:
        """
        Deliver an event to every subscriber.

        The payment write has already been committed; a failing subscriber is
        logged and never propagates back to the writer.
        """
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Payment event handler {handler!r} failed for "
                    f"{event.operation} of payment {event.payment_id}: {e}",
                    exc_info=True,
                )


# Global event bus instance
_event_bus: Optional[PaymentEventBus] = None


def get_event_bus() -> PaymentEventBus:
    """Get or create the global payment event bus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = PaymentEventBus()
    return _event_bus
