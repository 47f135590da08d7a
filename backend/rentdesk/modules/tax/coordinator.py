"""
Change-Triggered Recompute Coordinator.

Subscribes to payment change events and recomputes the tax summary of
every period a change touches. A change matters only when revenue for a
period can move:

    insert as paid             -> recompute the new row's period
    update into paid           -> recompute the new period
    update out of paid         -> recompute the old period
    delete of a paid payment   -> recompute the deleted row's period
    anything else              -> nothing

Recomputes always re-aggregate the whole period from current facts. A
failure leaves the summary stale; it is logged, recorded as a
RecomputeFailure row for operators, and never reaches the payment write.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from rentdesk.core.database import SessionLocal
from rentdesk.core.scheduler import RecomputeScheduler, get_scheduler
from rentdesk.modules.payments.events import (
    DELETE, INSERT, UPDATE,
    PaymentChangeEvent, PaymentEventBus, PaymentSnapshot, get_event_bus,
)
from rentdesk.modules.payments.models import PAID
from rentdesk.modules.tax import services as tax_services
from rentdesk.modules.tax.exceptions import MalformedPeriodLabel
from rentdesk.modules.tax.models import RecomputeFailure, TaxSummary
from rentdesk.modules.tax.periods import PeriodKey, resolve_payment

logger = logging.getLogger(__name__)


def requires_recompute(event: PaymentChangeEvent) -> bool:
    """True when the change moves a payment into or out of 'paid'."""
    if event.operation == INSERT:
        return event.new_status == PAID
    if event.operation == UPDATE:
        was_paid = event.old_status == PAID
        is_paid = event.new_status == PAID
        if was_paid != is_paid:
            return True
        # A paid payment moved to another period or amount
        return is_paid and event.before != event.after
    if event.operation == DELETE:
        return event.old_status == PAID
    return False


def _paid_snapshots(event: PaymentChangeEvent) -> List[PaymentSnapshot]:
    snapshots = []
    if event.before is not None and event.old_status == PAID:
        snapshots.append(event.before)
    if event.after is not None and event.new_status == PAID:
        snapshots.append(event.after)
    return snapshots


def affected_periods(event: PaymentChangeEvent) -> List[PeriodKey]:
    """
    Periods whose summaries must be recomputed for this event.

    Deletes and transitions out of 'paid' use the pre-change snapshot. When a
    paid payment changes period, both the old and the new period are
    returned. Raises MalformedPeriodLabel if a needed snapshot can't be resolved.
    """
    periods: List[PeriodKey] = []
    for snapshot in _paid_snapshots(event):
        period = resolve_payment(snapshot)
        if period not in periods:
            periods.append(period)
    return periods


def _job_id(period: PeriodKey) -> str:
    return f"recompute:{period.month}:{period.year}"


class RecomputeCoordinator:
    """Turns payment change events into per-period summary recomputes."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        scheduler: Optional[RecomputeScheduler] = None,
        tax_rate=None,
    ):
        self.session_factory = session_factory
        self._scheduler = scheduler
        # None keeps each period's last-used rate (default rate for new periods)
        self.tax_rate = tax_rate

    @property
    def scheduler(self) -> RecomputeScheduler:
        return self._scheduler or get_scheduler()

    def attach(self, bus: Optional[PaymentEventBus] = None) -> 'RecomputeCoordinator':
        (bus or get_event_bus()).subscribe(self.handle)
        return self

    def detach(self, bus: Optional[PaymentEventBus] = None) -> None:
        (bus or get_event_bus()).unsubscribe(self.handle)

    def handle(self, event: PaymentChangeEvent) -> None:
        """Event subscriber. Never raises."""
        if not requires_recompute(event):
            return

        periods: List[PeriodKey] = []
        for snapshot in _paid_snapshots(event):
            try:
                period = resolve_payment(snapshot)
            except MalformedPeriodLabel as e:
                logger.error(
                    f"Cannot resolve period for payment {event.payment_id} "
                    f"({event.operation}): {e}. Tax summary is stale."
                )
                self._record_failure(event, None, e, snapshot)
                continue
            if period not in periods:
                periods.append(period)

        for period in periods:
            try:
                self.scheduler.submit(_job_id(period), self.recompute_for_event, period, event)
            except Exception as e:
                logger.error(f"Failed to queue recompute for {period}: {e}", exc_info=True)
                self._record_failure(event, period, e)

    def recompute(self, period: PeriodKey) -> TaxSummary:
        """Re-aggregate and reconcile one period from current facts. Raises on failure."""
        db = self.session_factory()
        try:
            return tax_services.recalculate_period(
                db, period, tax_rate=self.tax_rate, preserve_rate=True
            ).summary
        finally:
            db.close()

    def recompute_for_event(self, period: PeriodKey, event: PaymentChangeEvent) -> Optional[TaxSummary]:
        try:
            return self.recompute(period)
        except Exception as e:
            logger.error(
                f"Recompute of {period} after {event.operation} of payment "
                f"{event.payment_id} failed: {e}. Tax summary is stale.",
                exc_info=True,
            )
            self._record_failure(event, period, e)
            return None

    def _record_failure(
        self,
        event: PaymentChangeEvent,
        period: Optional[PeriodKey],
        error: Exception,
        snapshot: Optional[PaymentSnapshot] = None,
    ) -> None:
        snapshot = snapshot or event.after or event.before
        db = self.session_factory()
        try:
            db.add(RecomputeFailure(
                payment_id=event.payment_id,
                operation=event.operation,
                period_label=snapshot.period_label if snapshot else None,
                month=period.month if period else None,
                year=period.year if period else None,
                error_type=type(error).__name__,
                message=str(error),
            ))
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Could not record recompute failure: {e}", exc_info=True)
        finally:
            db.close()
