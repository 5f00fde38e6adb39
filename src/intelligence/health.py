"""Revenue health evaluator -- current month against a rolling baseline."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from intelligence.config import HealthConfig
from intelligence.periods import _d, as_date, months_between, shift_month
from intelligence.records import HealthRisk, MonthlyRevenue

CENT = Decimal("0.01")


@dataclass(frozen=True)
class HealthResult:
    customer_id: str
    current_month_revenue: Decimal
    baseline_average: Decimal
    percentage_change: Decimal
    risk_level: str
    is_at_risk: bool
    customer_name: str = ""
    baseline_months: int = 0
    monthly_revenue: tuple = field(default_factory=tuple)

    @property
    def has_data(self) -> bool:
        return self.risk_level != HealthRisk.INSUFFICIENT_DATA

    def as_payload(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "current_month_revenue": str(self.current_month_revenue),
            "baseline_average": str(self.baseline_average),
            "percentage_change": str(self.percentage_change),
            "risk_level": str(self.risk_level),
            "is_at_risk": self.is_at_risk,
            "baseline_months": self.baseline_months,
            "monthly_revenue": [
                {
                    "year": m.year,
                    "month": m.month,
                    "revenue": str(m.revenue),
                    "order_count": m.order_count,
                }
                for m in self.monthly_revenue
            ],
        }


def classify_health(percentage_change: Decimal, config: HealthConfig) -> str:
    if percentage_change <= config.critical_threshold_percent:
        return HealthRisk.CRITICAL
    if percentage_change <= config.warning_threshold_percent:
        return HealthRisk.WARNING
    return HealthRisk.HEALTHY


def percentage_change(current: Decimal, baseline_average: Decimal) -> Decimal:
    """Signed change in percent; 0 when there is no baseline revenue."""
    if baseline_average <= 0:
        return Decimal("0")
    return (current - baseline_average) / baseline_average * Decimal("100")


def calculate_health(
    customer_id,
    monthly: Iterable[MonthlyRevenue],
    *,
    as_of: date,
    config: HealthConfig,
    history_start: Optional[date] = None,
    customer_name: str = "",
) -> HealthResult:
    """Evaluate the revenue health of one customer.

    ``monthly`` holds the revenue buckets of the window; months without a
    bucket count as zero revenue once the customer has started ordering.
    ``history_start`` is the date of the customer's first fulfilled order
    ever; window months before it are not part of the baseline. When it is
    unknown, the earliest bucket with activity is used instead.
    """
    as_of = as_date(as_of)
    current = (as_of.year, as_of.month)
    window_start = shift_month(current[0], current[1], -config.lookback_months)

    buckets = {}
    for row in monthly:
        key = (row.year, row.month)
        if window_start <= key <= current:
            previous = buckets.get(key)
            revenue = _d(row.revenue) + (previous.revenue if previous else Decimal("0"))
            count = row.order_count + (previous.order_count if previous else 0)
            buckets[key] = MonthlyRevenue(year=key[0], month=key[1], revenue=revenue, order_count=count)

    if history_start is not None:
        first_active = (as_date(history_start).year, as_date(history_start).month)
    else:
        active = [key for key, bucket in buckets.items() if bucket.revenue > 0 or bucket.order_count]
        first_active = min(active) if active else None

    baseline_end = shift_month(current[0], current[1], -1) if config.exclude_current_month else current
    if first_active is None or first_active > baseline_end:
        baseline_keys = []
    else:
        baseline_keys = months_between(max(window_start, first_active), baseline_end)

    series = tuple(
        buckets.get(key) or MonthlyRevenue(year=key[0], month=key[1], revenue=Decimal("0"))
        for key in months_between(window_start, current)
    )
    by_key = {bucket.key: bucket for bucket in series}

    current_revenue = by_key[current].revenue
    if baseline_keys:
        baseline_total = sum((by_key[key].revenue for key in baseline_keys), Decimal("0"))
        baseline_average = baseline_total / Decimal(len(baseline_keys))
    else:
        baseline_average = Decimal("0")
    change = percentage_change(current_revenue, baseline_average)

    if len(baseline_keys) < config.minimum_months_required:
        risk_level = HealthRisk.INSUFFICIENT_DATA
    else:
        risk_level = classify_health(change, config)

    return HealthResult(
        customer_id=str(customer_id),
        customer_name=customer_name,
        current_month_revenue=current_revenue.quantize(CENT, rounding=ROUND_HALF_UP),
        baseline_average=baseline_average.quantize(CENT, rounding=ROUND_HALF_UP),
        percentage_change=change.quantize(CENT, rounding=ROUND_HALF_UP),
        risk_level=risk_level,
        is_at_risk=risk_level in (HealthRisk.WARNING, HealthRisk.CRITICAL),
        baseline_months=len(baseline_keys),
        monthly_revenue=series,
    )


_RISK_ORDER = {
    HealthRisk.CRITICAL: 0,
    HealthRisk.WARNING: 1,
    HealthRisk.HEALTHY: 2,
    HealthRisk.INSUFFICIENT_DATA: 3,
}


def sort_health_results(results: Iterable[HealthResult]) -> list:
    """Most urgent first: risk level, then steepest drop, then customer id."""
    return sorted(
        results,
        key=lambda r: (_RISK_ORDER[r.risk_level], r.percentage_change, r.customer_id),
    )
