"""Pace calculator -- ordering cadence (ARPDD) and overdue classification.

ARPDD (average recent purchase-day distance) is the mean number of whole
days between consecutive fulfilled orders of one customer. A customer is
late when the days elapsed since the last order reach a multiple of that
cadence.
"""
from __future__ import annotations

import statistics
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from intelligence.config import PaceConfig
from intelligence.records import OrderRecord, PaceRisk

REGULAR = "regular"
IRREGULAR = "irregular"
SPORADIC = "sporadic"


@dataclass(frozen=True)
class PaceResult:
    customer_id: str
    arpdd: Optional[int]
    days_since_last_order: Optional[int]
    risk_level: str
    customer_name: str = ""
    order_count: int = 0
    last_order_date: Optional[date] = None
    next_expected_order_date: Optional[date] = None
    ordering_pattern: Optional[str] = None

    @property
    def is_past_due(self) -> bool:
        return self.risk_level in (PaceRisk.WARNING, PaceRisk.CRITICAL)

    @property
    def has_data(self) -> bool:
        return self.risk_level != PaceRisk.INSUFFICIENT_DATA

    def as_payload(self) -> dict:
        payload = asdict(self)
        payload["risk_level"] = str(self.risk_level)
        payload["is_past_due"] = self.is_past_due
        for key in ("last_order_date", "next_expected_order_date"):
            if payload[key] is not None:
                payload[key] = payload[key].isoformat()
        return payload


def whole_days(start: datetime, end: datetime) -> int:
    """Floor of ``end - start`` expressed in days."""
    return (end - start).days


def order_intervals(fulfilled_dates: list) -> list:
    """Whole-day gaps between consecutive (already sorted) fulfilment dates.

    Same-day reorders give a zero interval and are kept like any other gap.
    """
    return [
        whole_days(earlier, later)
        for earlier, later in zip(fulfilled_dates, fulfilled_dates[1:])
    ]


def average_interval(intervals: list) -> int:
    """Arithmetic mean of the intervals rounded to the nearest day (half up)."""
    mean = Decimal(sum(intervals)) / Decimal(len(intervals))
    return int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def classify_pace(days_since_last_order: int, arpdd: int, config: PaceConfig) -> str:
    """First matching rule wins: critical, then warning, else on-track.

    With an ARPDD of zero every non-negative delay is critical.
    """
    days = Decimal(days_since_last_order)
    if days >= Decimal(arpdd) * config.critical_multiplier:
        return PaceRisk.CRITICAL
    if days >= Decimal(arpdd) * config.warning_multiplier:
        return PaceRisk.WARNING
    return PaceRisk.ON_TRACK


def ordering_pattern(intervals: list) -> Optional[str]:
    """Qualify the regularity of the intervals by their coefficient of variation."""
    if not intervals:
        return None
    mean = statistics.fmean(intervals)
    if mean == 0:
        return SPORADIC
    variation = statistics.pstdev(intervals) / mean
    if variation < 0.3:
        return REGULAR
    if variation < 0.7:
        return IRREGULAR
    return SPORADIC


def calculate_pace(
    customer_id,
    orders: Iterable[OrderRecord],
    *,
    as_of: datetime,
    config: PaceConfig,
    customer_name: str = "",
) -> PaceResult:
    """Compute the pace of one customer from its fulfilled orders.

    Orders outside the lookback window (or after ``as_of``) are ignored and
    the remaining ones are sorted by fulfilment date before any interval is
    computed, so callers may pass them in any order.
    """
    window_start = as_of - timedelta(days=config.lookback_days)
    fulfilled = sorted(
        order.fulfilled_at
        for order in orders
        if order.fulfilled_at is not None and window_start <= order.fulfilled_at <= as_of
    )

    last_order = fulfilled[-1] if fulfilled else None
    days_since = whole_days(last_order, as_of) if last_order else None
    base = {
        "customer_id": str(customer_id),
        "customer_name": customer_name,
        "order_count": len(fulfilled),
        "days_since_last_order": days_since,
        "last_order_date": last_order.date() if last_order else None,
    }

    if len(fulfilled) < config.minimum_orders_required:
        return PaceResult(arpdd=None, risk_level=PaceRisk.INSUFFICIENT_DATA, **base)

    intervals = order_intervals(fulfilled)
    arpdd = average_interval(intervals)
    return PaceResult(
        arpdd=arpdd,
        risk_level=classify_pace(days_since, arpdd, config),
        next_expected_order_date=last_order.date() + timedelta(days=arpdd),
        ordering_pattern=ordering_pattern(intervals),
        **base,
    )


_RISK_ORDER = {
    PaceRisk.CRITICAL: 0,
    PaceRisk.WARNING: 1,
    PaceRisk.ON_TRACK: 2,
    PaceRisk.INSUFFICIENT_DATA: 3,
}


def sort_pace_results(results: Iterable[PaceResult]) -> list:
    """Most urgent first: risk level, then longest delay, then customer id."""
    return sorted(
        results,
        key=lambda r: (
            _RISK_ORDER[r.risk_level],
            -(r.days_since_last_order if r.days_since_last_order is not None else -1),
            r.customer_id,
        ),
    )
