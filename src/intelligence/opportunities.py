"""Opportunity ranker -- products a customer has never bought, best sellers first."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from intelligence.config import OpportunityConfig
from intelligence.exceptions import InvalidConfiguration
from intelligence.records import ProductRecord, ProductSaleLine, RankingMetric


@dataclass(frozen=True)
class Opportunity:
    product_id: str
    revenue_score: Decimal
    volume_score: int
    customer_count: int
    penetration_score: Decimal
    rank: int = 0
    ranking_metric: str = RankingMetric.REVENUE
    product_name: str = ""
    category: str = ""

    def score(self, metric: str):
        if metric == RankingMetric.REVENUE:
            return self.revenue_score
        if metric == RankingMetric.VOLUME:
            return self.volume_score
        return self.penetration_score

    def as_payload(self) -> dict:
        return {
            "rank": self.rank,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "category": self.category,
            "revenue_score": str(self.revenue_score),
            "volume_score": self.volume_score,
            "customer_count": self.customer_count,
            "penetration_score": str(self.penetration_score),
            "ranking_metric": str(self.ranking_metric),
        }


def _penetration(customer_count: int, total_active_customers: int) -> Decimal:
    if total_active_customers <= 0:
        return Decimal("0.00")
    value = Decimal(customer_count) / Decimal(total_active_customers) * Decimal("100")
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def rank_opportunities(
    customer_id,
    *,
    products: Iterable[ProductRecord],
    sales: Iterable[ProductSaleLine],
    purchased_product_ids: Iterable,
    total_active_customers: int,
    config: OpportunityConfig,
    metric: Optional[str] = None,
    limit: Optional[int] = None,
    truncate: bool = True,
) -> list:
    """Rank the products ``customer_id`` has not bought in the window.

    ``sales`` are the tenant-wide lines of the lookback window; lines of
    the customer itself are harmless since its own products are excluded.
    Ties on the score fall back to the buyer count (descending) then the
    product id (ascending), so identical inputs always give the same list.
    ``truncate=False`` keeps every qualifying product (used for summaries).
    """
    metric = metric or config.default_metric
    if metric not in RankingMetric.values:
        raise InvalidConfiguration(
            f"Critere de classement inconnu: {metric!r} "
            f"(attendu: {', '.join(RankingMetric.values)})."
        )
    limit = config.result_size if limit is None else limit

    excluded = {str(pid) for pid in purchased_product_ids}
    candidates = {
        str(product.id): product
        for product in products
        if (product.is_active or config.include_inactive_products) and str(product.id) not in excluded
    }

    revenue = defaultdict(Decimal)
    volume = defaultdict(int)
    buyers = defaultdict(set)
    for line in sales:
        pid = str(line.product_id)
        if pid not in candidates:
            continue
        revenue[pid] += line.line_total
        volume[pid] += line.quantity
        buyers[pid].add(str(line.customer_id))

    scored = []
    for pid, product in candidates.items():
        customer_count = len(buyers[pid])
        if customer_count < config.minimum_customer_threshold:
            continue
        scored.append(
            Opportunity(
                product_id=pid,
                revenue_score=revenue[pid],
                volume_score=volume[pid],
                customer_count=customer_count,
                penetration_score=_penetration(customer_count, total_active_customers),
                ranking_metric=metric,
                product_name=product.name,
                category=product.category,
            )
        )

    scored.sort(key=lambda o: o.product_id)
    scored.sort(key=lambda o: (o.score(metric), o.customer_count), reverse=True)

    return [
        replace(opportunity, rank=position)
        for position, opportunity in enumerate(scored[:limit] if truncate else scored, start=1)
    ]


def summarize_opportunities(opportunities: list) -> dict:
    """Count opportunities per category and surface the best one."""
    by_category = defaultdict(int)
    for opportunity in opportunities:
        by_category[opportunity.category or "Sans categorie"] += 1
    return {
        "total": len(opportunities),
        "by_category": dict(sorted(by_category.items())),
        "top": opportunities[0].as_payload() if opportunities else None,
    }
