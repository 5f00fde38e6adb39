"""Sample allowance tracker -- monthly per-rep usage, approval gate, feedback."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from intelligence.config import SampleConfig
from intelligence.exceptions import AllowanceExceeded
from intelligence.periods import as_date
from intelligence.records import SampleTransferRecord


@dataclass(frozen=True)
class AllowanceStatus:
    sales_rep_id: str
    pulls_this_month: int
    allowance: int
    remaining_allowance: int
    is_over_allowance: bool
    month_start: Optional[date] = None
    month_end: Optional[date] = None
    transfers: tuple = field(default_factory=tuple)

    def as_payload(self) -> dict:
        return {
            "sales_rep_id": self.sales_rep_id,
            "pulls_this_month": self.pulls_this_month,
            "allowance": self.allowance,
            "remaining_allowance": self.remaining_allowance,
            "is_over_allowance": self.is_over_allowance,
            "month_start": self.month_start.isoformat() if self.month_start else None,
            "month_end": self.month_end.isoformat() if self.month_end else None,
            "transfers": [transfer_payload(t) for t in self.transfers],
        }


@dataclass(frozen=True)
class FeedbackReport:
    sales_rep_id: str
    total_transfers: int
    has_feedback: int
    needs_feedback: int
    feedback_rate: Optional[Decimal]

    def as_payload(self) -> dict:
        return {
            "sales_rep_id": self.sales_rep_id,
            "total_transfers": self.total_transfers,
            "has_feedback": self.has_feedback,
            "needs_feedback": self.needs_feedback,
            "feedback_rate": None if self.feedback_rate is None else str(self.feedback_rate),
        }


def transfer_payload(transfer: SampleTransferRecord) -> dict:
    return {
        "id": transfer.id,
        "sales_rep_id": transfer.sales_rep_id,
        "customer_id": transfer.customer_id,
        "product_id": transfer.product_id,
        "quantity": transfer.quantity,
        "transfer_date": transfer.transfer_date.isoformat(),
        "follow_up_activity_id": transfer.follow_up_activity_id,
        "approved_by_manager_id": transfer.approved_by_manager_id,
    }


def total_pulls(transfers: Iterable[SampleTransferRecord]) -> int:
    return sum(t.quantity for t in transfers)


def allowance_status(
    sales_rep_id,
    transfers: Iterable[SampleTransferRecord],
    *,
    config: SampleConfig,
    month_start: Optional[date] = None,
    month_end: Optional[date] = None,
) -> AllowanceStatus:
    """Summarise one rep's sample usage for a month.

    ``transfers`` must already be limited to that rep and month. The
    remaining allowance goes negative when the rep is over.
    """
    transfers = tuple(sorted(transfers, key=lambda t: (t.transfer_date, t.id)))
    pulls = total_pulls(transfers)
    return AllowanceStatus(
        sales_rep_id=str(sales_rep_id),
        pulls_this_month=pulls,
        allowance=config.monthly_allowance,
        remaining_allowance=config.monthly_allowance - pulls,
        is_over_allowance=pulls > config.monthly_allowance,
        month_start=month_start,
        month_end=month_end,
        transfers=transfers,
    )


def ensure_transfer_allowed(
    pulls_this_month: int,
    requested_quantity: int,
    *,
    config: SampleConfig,
    approved_by_manager_id=None,
) -> None:
    """Refuse a pull that crosses the approval threshold without sign-off.

    Raises:
        ValueError: if the requested quantity is not a positive integer.
        AllowanceExceeded: if the new total exceeds the threshold and no
            manager approved the transfer.
    """
    if isinstance(requested_quantity, bool) or not isinstance(requested_quantity, int):
        raise ValueError("La quantite d'echantillons doit etre un entier.")
    if requested_quantity <= 0:
        raise ValueError("La quantite d'echantillons doit etre superieure a zero.")
    limit = config.require_manager_approval_over
    if pulls_this_month + requested_quantity > limit and approved_by_manager_id is None:
        raise AllowanceExceeded(
            current=pulls_this_month,
            requested=requested_quantity,
            limit=limit,
        )


def pending_feedback(
    transfers: Iterable[SampleTransferRecord],
    *,
    as_of: date,
    config: SampleConfig,
) -> list:
    """Transfers without tasting feedback once the grace period has elapsed."""
    cutoff = as_date(as_of) - timedelta(days=config.minimum_feedback_days)
    return sorted(
        (t for t in transfers if not t.has_feedback and t.transfer_date <= cutoff),
        key=lambda t: (t.transfer_date, t.id),
    )


def feedback_report(
    sales_rep_id,
    transfers: Iterable[SampleTransferRecord],
    *,
    as_of: date,
    config: SampleConfig,
) -> FeedbackReport:
    """Feedback rate of a rep over the transfers of a reporting window.

    Transfers still inside their grace period count neither as done nor as
    missing. The rate is ``None`` when nothing is due yet.
    """
    transfers = list(transfers)
    done = sum(1 for t in transfers if t.has_feedback)
    missing = len(pending_feedback(transfers, as_of=as_of, config=config))
    denominator = done + missing
    rate = None
    if denominator:
        rate = (Decimal(done) / Decimal(denominator) * Decimal("100")).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    return FeedbackReport(
        sales_rep_id=str(sales_rep_id),
        total_transfers=len(transfers),
        has_feedback=done,
        needs_feedback=missing,
        feedback_rate=rate,
    )
