"""Alert prioritizer -- merges pace and health signals into one action list."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional

from intelligence.health import HealthResult
from intelligence.pace import PaceResult
from intelligence.records import AlertType, HealthRisk, PaceRisk

logger = logging.getLogger("portal")

PACE_WEIGHT = Decimal("10")
HEALTH_WEIGHT = Decimal("5")
RECENCY_CAP = Decimal("5")

RISK_SEVERITY = {
    "on-track": 0,
    "healthy": 0,
    "insufficient-data": 0,
    "warning": 1,
    "critical": 2,
}


@dataclass(frozen=True)
class PriorityAlert:
    account_id: str
    account_name: str
    priority_score: Decimal
    type: str
    message: str
    pace_risk: str = PaceRisk.INSUFFICIENT_DATA
    health_risk: str = HealthRisk.INSUFFICIENT_DATA
    days_since_last_activity: Optional[int] = None

    def as_payload(self) -> dict:
        return {
            "account_id": self.account_id,
            "account_name": self.account_name,
            "priority_score": str(self.priority_score),
            "type": str(self.type),
            "message": self.message,
            "pace_risk": str(self.pace_risk),
            "health_risk": str(self.health_risk),
            "days_since_last_activity": self.days_since_last_activity,
        }


def severity(risk_level) -> int:
    if risk_level is None:
        return 0
    return RISK_SEVERITY[str(risk_level)]


def recency_contribution(days_since_last_activity: Optional[int]) -> Decimal:
    """``min(days / 7, 5)``; an account with no recorded activity gets the cap."""
    if days_since_last_activity is None:
        return RECENCY_CAP
    days = max(int(days_since_last_activity), 0)
    return min(Decimal(days) / Decimal("7"), RECENCY_CAP)


def _alert_type(pace_level: int, health_level: int) -> str:
    """Pick the dimension weighing most in the score; ties go to the more severe one."""
    pace_points = PACE_WEIGHT * pace_level
    health_points = HEALTH_WEIGHT * health_level
    if pace_points > health_points or (pace_points == health_points and pace_level >= health_level):
        return AlertType.PACE_CRITICAL if pace_level == 2 else AlertType.PACE_WARNING
    return AlertType.HEALTH_CRITICAL if health_level == 2 else AlertType.HEALTH_WARNING


def _message(name: str, pace: Optional[PaceResult], health: Optional[HealthResult]) -> str:
    parts = []
    if pace is not None and severity(pace.risk_level):
        parts.append(
            f"aucune commande depuis {pace.days_since_last_order} jours "
            f"(rythme habituel: {pace.arpdd} jours)"
        )
    if health is not None and severity(health.risk_level):
        parts.append(
            f"chiffre d'affaires du mois a {health.percentage_change}% "
            f"de la moyenne ({health.current_month_revenue} vs {health.baseline_average})"
        )
    return f"{name}: " + "; ".join(parts) + "."


def prioritize_alerts(
    pace_results: Iterable[PaceResult],
    health_results: Iterable[HealthResult],
    *,
    days_since_activity: Optional[Mapping] = None,
    account_names: Optional[Mapping] = None,
) -> list:
    """Score every flagged account and return alerts, most urgent first.

    Accounts whose pace and health are both on track (or lack data) produce
    no alert. ``days_since_activity`` maps customer ids to the number of days
    since the last CRM activity.
    """
    pace_by_id = {str(r.customer_id): r for r in pace_results}
    health_by_id = {str(r.customer_id): r for r in health_results}
    days_since_activity = {str(k): v for k, v in (days_since_activity or {}).items()}
    account_names = {str(k): v for k, v in (account_names or {}).items()}

    ranked = []
    for customer_id in sorted(set(pace_by_id) | set(health_by_id)):
        pace = pace_by_id.get(customer_id)
        health = health_by_id.get(customer_id)
        pace_level = severity(pace.risk_level if pace else None)
        health_level = severity(health.risk_level if health else None)
        if not pace_level and not health_level:
            continue

        days = days_since_activity.get(customer_id)
        score = PACE_WEIGHT * pace_level + HEALTH_WEIGHT * health_level + recency_contribution(days)
        name = (
            account_names.get(customer_id)
            or (pace.customer_name if pace else "")
            or (health.customer_name if health else "")
            or customer_id
        )
        ranked.append((
            score,
            PriorityAlert(
                account_id=customer_id,
                account_name=name,
                priority_score=score.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
                type=_alert_type(pace_level, health_level),
                message=_message(name, pace, health),
                pace_risk=pace.risk_level if pace else PaceRisk.INSUFFICIENT_DATA,
                health_risk=health.risk_level if health else HealthRisk.INSUFFICIENT_DATA,
                days_since_last_activity=days,
            ),
        ))

    # Sorted on the unrounded score.
    ranked.sort(key=lambda pair: (-pair[0], pair[1].account_id))
    alerts = [alert for _score, alert in ranked]
    logger.info("Prioritized %d alerts", len(alerts))
    return alerts
