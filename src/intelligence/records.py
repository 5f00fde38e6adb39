"""Plain in-memory records exchanged between the reader and the calculators.

The calculators never touch the ORM; they only see these frozen records.
Identifiers are normalised to ``str`` so results compare and sort the same
way whatever the storage key type.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from django.db import models


class PaceRisk(models.TextChoices):
    ON_TRACK = "on-track", "Dans le rythme"
    WARNING = "warning", "En retard"
    CRITICAL = "critical", "Critique"
    INSUFFICIENT_DATA = "insufficient-data", "Donnees insuffisantes"


class HealthRisk(models.TextChoices):
    HEALTHY = "healthy", "Sain"
    WARNING = "warning", "En baisse"
    CRITICAL = "critical", "Critique"
    INSUFFICIENT_DATA = "insufficient-data", "Donnees insuffisantes"


class AlertType(models.TextChoices):
    PACE_CRITICAL = "pace_critical", "Rythme critique"
    PACE_WARNING = "pace_warning", "Rythme en retard"
    HEALTH_CRITICAL = "health_critical", "Chiffre d'affaires critique"
    HEALTH_WARNING = "health_warning", "Chiffre d'affaires en baisse"


class RankingMetric(models.TextChoices):
    REVENUE = "revenue", "Chiffre d'affaires"
    VOLUME = "volume", "Volume"
    PENETRATION = "penetration", "Penetration"


@dataclass(frozen=True)
class OrderLineRecord:
    product_id: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class OrderRecord:
    id: str
    customer_id: str
    tenant_id: str
    fulfilled_at: datetime
    lines: tuple = field(default_factory=tuple)

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0"))


@dataclass(frozen=True)
class MonthlyRevenue:
    year: int
    month: int
    revenue: Decimal
    order_count: int = 0

    @property
    def key(self) -> tuple:
        return (self.year, self.month)


@dataclass(frozen=True)
class SampleTransferRecord:
    id: str
    tenant_id: str
    sales_rep_id: str
    customer_id: str
    product_id: str
    quantity: int
    transfer_date: date
    follow_up_activity_id: Optional[str] = None
    approved_by_manager_id: Optional[str] = None

    @property
    def has_feedback(self) -> bool:
        return self.follow_up_activity_id is not None


@dataclass(frozen=True)
class ProductRecord:
    id: str
    tenant_id: str
    is_active: bool = True
    name: str = ""
    category: str = ""


@dataclass(frozen=True)
class ProductSaleLine:
    """An order line joined with the purchasing customer."""

    product_id: str
    customer_id: str
    quantity: int
    line_total: Decimal


@dataclass(frozen=True)
class CustomerRecord:
    id: str
    tenant_id: str
    display_name: str
    is_active: bool = True
    last_activity_at: Optional[datetime] = None
