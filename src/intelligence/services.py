"""Intelligence services: reader + tenant config + calculators, per customer or tenant."""
from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from intelligence.config import IntelligenceConfig
from intelligence.exceptions import AllowanceExceeded
from intelligence.health import HealthResult, calculate_health, sort_health_results
from intelligence.models import FollowUpActivity, SampleTransfer
from intelligence.opportunities import rank_opportunities, summarize_opportunities
from intelligence.pace import PaceResult, calculate_pace, sort_pace_results
from intelligence.periods import month_bounds, shift_month
from intelligence.prioritizer import prioritize_alerts
from intelligence.reader import OrderHistoryReader
from intelligence.samples import (
    AllowanceStatus,
    FeedbackReport,
    allowance_status,
    ensure_transfer_allowed,
    feedback_report,
    pending_feedback,
    total_pulls,
)
from tenants.services import get_intelligence_config

User = get_user_model()
logger = logging.getLogger("portal")


@dataclass
class TenantEvaluation:
    """Pace and health of every active customer of a tenant."""

    pace_results: list = field(default_factory=list)
    health_results: list = field(default_factory=list)
    failures: list = field(default_factory=list)


@dataclass
class IntelligenceRunResult:
    """Result payload of a tenant-wide refresh."""

    tenant_id: str
    customer_count: int
    alerts: list
    snapshots_created: int
    failed_count: int
    failures: list[dict]


def _context(tenant_id, as_of, config, reader):
    return (
        as_of or timezone.now(),
        config or get_intelligence_config(tenant_id),
        reader or OrderHistoryReader(),
    )


def _health_since(as_of: datetime, config: IntelligenceConfig) -> datetime:
    local = timezone.localtime(as_of)
    year, month = shift_month(local.year, local.month, -config.health.lookback_months)
    return timezone.make_aware(datetime(year, month, 1))


def _pace_since(as_of: datetime, config: IntelligenceConfig) -> datetime:
    return as_of - timedelta(days=config.pace.lookback_days)


# ---------------------------------------------------------------------------
# Pace
# ---------------------------------------------------------------------------

def calculate_customer_pace(*, tenant_id, customer_id, as_of=None, config=None, reader=None) -> PaceResult:
    """Pace of one customer.

    Raises:
        Customer.DoesNotExist: if the customer is not part of the tenant.
        DataSourceUnavailable: if the order history cannot be read.
    """
    as_of, config, reader = _context(tenant_id, as_of, config, reader)
    customer = reader.get_customer(tenant_id, customer_id)
    orders = reader.list_fulfilled_orders(tenant_id, customer.id, _pace_since(as_of, config))
    return calculate_pace(
        customer.id,
        orders,
        as_of=as_of,
        config=config.pace,
        customer_name=customer.display_name,
    )


def calculate_tenant_pace(*, tenant_id, as_of=None, only_at_risk=False, config=None, reader=None) -> list:
    """Pace of every active customer, most overdue first."""
    evaluation = evaluate_tenant(tenant_id=tenant_id, as_of=as_of, config=config, reader=reader, health=False)
    results = evaluation.pace_results
    if only_at_risk:
        results = [r for r in results if r.is_past_due]
    return sort_pace_results(results)


# ---------------------------------------------------------------------------
# Revenue health
# ---------------------------------------------------------------------------

def evaluate_customer_health(
    *,
    tenant_id,
    customer_id,
    as_of=None,
    config=None,
    reader=None,
    persist_snapshot=False,
) -> HealthResult:
    """Revenue health of one customer, optionally appended as a snapshot."""
    as_of, config, reader = _context(tenant_id, as_of, config, reader)
    customer = reader.get_customer(tenant_id, customer_id)
    monthly = reader.list_monthly_revenue(tenant_id, customer.id, _health_since(as_of, config))
    result = calculate_health(
        customer.id,
        monthly,
        as_of=timezone.localtime(as_of).date(),
        config=config.health,
        history_start=reader.first_fulfilled_order_date(tenant_id, customer.id),
        customer_name=customer.display_name,
    )
    if persist_snapshot:
        reader.persist_health_snapshot(
            tenant_id=tenant_id,
            health=result,
            snapshot_date=timezone.localtime(as_of).date(),
        )
    return result


def evaluate_tenant_health(*, tenant_id, as_of=None, only_at_risk=False, config=None, reader=None) -> list:
    """Revenue health of every active customer, steepest drops first."""
    evaluation = evaluate_tenant(tenant_id=tenant_id, as_of=as_of, config=config, reader=reader, pace=False)
    results = evaluation.health_results
    if only_at_risk:
        results = [r for r in results if r.is_at_risk]
    return sort_health_results(results)


# ---------------------------------------------------------------------------
# Tenant-wide evaluation
# ---------------------------------------------------------------------------

def _fan_out(work, customers, *, tenant_id, label):
    """Apply ``work`` to every customer, on a thread pool when configured.

    Returns ``(customer, result, error)`` triples in input order; a failing
    customer is logged and reported with its error, the others still run.
    """

    def guarded(customer):
        try:
            return customer, work(customer), None
        except Exception as exc:
            logger.warning(
                "%s failed for customer %s (tenant %s)",
                label, customer.id, tenant_id,
                exc_info=True,
            )
            return customer, None, exc

    max_workers = int(getattr(settings, "INTELLIGENCE_MAX_WORKERS", 1) or 1)
    if max_workers > 1 and len(customers) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(guarded, customers))
    return [guarded(customer) for customer in customers]


def evaluate_tenant(*, tenant_id, as_of=None, config=None, reader=None, pace=True, health=True) -> TenantEvaluation:
    """Run the pace and/or health calculators for all active customers.

    History is read once for the tenant; a customer whose calculation fails
    is logged and skipped, the others are still evaluated. Reader failures
    abort the run with ``DataSourceUnavailable``.
    """
    as_of, config, reader = _context(tenant_id, as_of, config, reader)
    customers = reader.list_customers(tenant_id, active_only=True)
    orders_by_customer = reader.list_fulfilled_orders_by_customer(tenant_id, _pace_since(as_of, config)) if pace else {}
    monthly_by_customer = reader.list_monthly_revenue_by_customer(tenant_id, _health_since(as_of, config)) if health else {}
    first_orders = reader.first_fulfilled_order_dates(tenant_id) if health else {}
    today = timezone.localtime(as_of).date()

    def evaluate(customer):
        pace_result = health_result = None
        if pace:
            pace_result = calculate_pace(
                customer.id,
                orders_by_customer.get(customer.id, []),
                as_of=as_of,
                config=config.pace,
                customer_name=customer.display_name,
            )
        if health:
            health_result = calculate_health(
                customer.id,
                monthly_by_customer.get(customer.id, []),
                as_of=today,
                config=config.health,
                history_start=first_orders.get(customer.id),
                customer_name=customer.display_name,
            )
        return pace_result, health_result

    outcomes = _fan_out(evaluate, customers, tenant_id=tenant_id, label="Intelligence calculation")

    evaluation = TenantEvaluation()
    for customer, results, error in outcomes:
        if error is not None:
            evaluation.failures.append({"customer_id": customer.id, "error": str(error)})
            continue
        pace_result, health_result = results
        if pace_result is not None:
            evaluation.pace_results.append(pace_result)
        if health_result is not None:
            evaluation.health_results.append(health_result)
    return evaluation


def _days_since_activity(last_activity: dict, as_of: datetime) -> dict:
    return {
        customer_id: max((as_of - moment).days, 0)
        for customer_id, moment in last_activity.items()
    }


def build_priority_alerts(*, tenant_id, as_of=None, config=None, reader=None) -> list:
    """Ranked action list for the tenant (pace and health combined)."""
    as_of, config, reader = _context(tenant_id, as_of, config, reader)
    evaluation = evaluate_tenant(tenant_id=tenant_id, as_of=as_of, config=config, reader=reader)
    return prioritize_alerts(
        evaluation.pace_results,
        evaluation.health_results,
        days_since_activity=_days_since_activity(reader.last_activity_by_customer(tenant_id), as_of),
    )


def run_tenant_intelligence(*, tenant_id, as_of=None, persist_snapshots=None, config=None, reader=None) -> IntelligenceRunResult:
    """Refresh a tenant: evaluate every customer, append snapshots, build alerts."""
    as_of, config, reader = _context(tenant_id, as_of, config, reader)
    if persist_snapshots is None:
        persist_snapshots = bool(getattr(settings, "INTELLIGENCE_PERSIST_SNAPSHOTS", True))

    evaluation = evaluate_tenant(tenant_id=tenant_id, as_of=as_of, config=config, reader=reader)
    alerts = prioritize_alerts(
        evaluation.pace_results,
        evaluation.health_results,
        days_since_activity=_days_since_activity(reader.last_activity_by_customer(tenant_id), as_of),
    )

    created = 0
    if persist_snapshots:
        pace_by_customer = {r.customer_id: r for r in evaluation.pace_results}
        snapshot_date = timezone.localtime(as_of).date()
        with transaction.atomic():
            for health_result in evaluation.health_results:
                reader.persist_health_snapshot(
                    tenant_id=tenant_id,
                    health=health_result,
                    pace=pace_by_customer.get(health_result.customer_id),
                    snapshot_date=snapshot_date,
                )
                created += 1

    customer_count = len(evaluation.health_results) + len(evaluation.failures)
    logger.info(
        "Intelligence refreshed for tenant %s: %d customers, %d alerts, %d snapshots, %d failures",
        tenant_id, customer_count, len(alerts), created, len(evaluation.failures),
    )
    return IntelligenceRunResult(
        tenant_id=str(tenant_id),
        customer_count=customer_count,
        alerts=alerts,
        snapshots_created=created,
        failed_count=len(evaluation.failures),
        failures=evaluation.failures,
    )


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------

def get_rep_allowance(*, tenant_id, sales_rep_id, month: Optional[date] = None, config=None, reader=None) -> AllowanceStatus:
    """Sample usage of a rep for the month containing ``month`` (default: today)."""
    config = config or get_intelligence_config(tenant_id)
    reader = reader or OrderHistoryReader()
    start, end = month_bounds(month or timezone.localdate())
    transfers = reader.list_sample_transfers(tenant_id, sales_rep_id, start, end)
    return allowance_status(
        sales_rep_id,
        transfers,
        config=config.samples,
        month_start=start,
        month_end=end,
    )


@transaction.atomic
def record_sample_transfer(
    *,
    tenant,
    sales_rep,
    customer,
    product,
    quantity: int,
    transfer_date: Optional[date] = None,
    approved_by=None,
    purpose_notes: str = "",
    config=None,
    reader=None,
) -> SampleTransfer:
    """Record a sample pull and decrement stock in the same transaction.

    The rep row is locked so that two concurrent pulls cannot both pass
    the allowance check.

    Raises:
        AllowanceExceeded: over the approval threshold without ``approved_by``.
        ValueError: invalid quantity, foreign customer/product, approver
            lacking the role, or insufficient stock.
    """
    config = config or get_intelligence_config(tenant.pk)
    reader = reader or OrderHistoryReader()
    transfer_date = transfer_date or timezone.localdate()

    if customer.tenant_id != tenant.pk:
        raise ValueError("Ce client n'appartient pas a ce tenant.")
    if product.tenant_id != tenant.pk:
        raise ValueError(f"Le produit '{product}' n'appartient pas a ce tenant.")
    if approved_by is not None and not approved_by.can_approve_samples:
        raise ValueError(f"{approved_by} n'est pas habilite a valider des echantillons.")

    User.objects.select_for_update().get(pk=sales_rep.pk)
    start, end = month_bounds(transfer_date)
    pulls = total_pulls(reader.list_sample_transfers(tenant.pk, sales_rep.pk, start, end))

    try:
        ensure_transfer_allowed(
            pulls,
            quantity,
            config=config.samples,
            approved_by_manager_id=approved_by.pk if approved_by is not None else None,
        )
    except AllowanceExceeded:
        logger.info(
            "Sample transfer refused for %s: %s already pulled, %s requested",
            sales_rep, pulls, quantity,
        )
        raise

    transfer = reader.create_sample_transfer(
        tenant=tenant,
        sales_rep=sales_rep,
        customer=customer,
        product=product,
        quantity=quantity,
        transfer_date=transfer_date,
        approved_by_manager=approved_by,
        purpose_notes=purpose_notes,
    )
    logger.info(
        "Sample transfer %s recorded: %s x%d to %s by %s (approved_by=%s)",
        transfer.pk, product, quantity, customer, sales_rep, approved_by,
    )
    return transfer


@transaction.atomic
def record_tasting_feedback(
    *,
    transfer: SampleTransfer,
    actor,
    customer_interest: str = FollowUpActivity.Interest.MEDIUM,
    rating: Optional[int] = None,
    order_placed: bool = False,
    order_amount=Decimal("0.00"),
    follow_up_required: bool = False,
    notes: str = "",
    activity_date: Optional[date] = None,
) -> FollowUpActivity:
    """Log tasting feedback for a sample and link it to the transfer.

    Raises:
        ValueError: if feedback was already logged or the values are invalid.
    """
    transfer = SampleTransfer.objects.select_for_update().select_related("customer").get(pk=transfer.pk)
    if transfer.follow_up_activity_id:
        raise ValueError("Un retour de degustation est deja enregistre pour cet echantillon.")
    if customer_interest not in FollowUpActivity.Interest.values:
        raise ValueError(f"Niveau d'interet inconnu: {customer_interest!r}.")
    if rating is not None and not 1 <= int(rating) <= 5:
        raise ValueError("La note doit etre comprise entre 1 et 5.")
    order_amount = Decimal(str(order_amount or 0))
    if order_amount < 0:
        raise ValueError("Le montant de commande ne peut pas etre negatif.")

    activity = FollowUpActivity.objects.create(
        tenant_id=transfer.tenant_id,
        customer_id=transfer.customer_id,
        product_id=transfer.product_id,
        sales_rep=actor,
        activity_date=activity_date or timezone.localdate(),
        customer_interest=customer_interest,
        rating=rating,
        order_placed=order_placed,
        order_amount=order_amount,
        follow_up_required=follow_up_required,
        notes=notes,
    )
    transfer.follow_up_activity = activity
    transfer.save(update_fields=["follow_up_activity", "updated_at"])

    customer = transfer.customer
    customer.last_activity_at = timezone.now()
    customer.save(update_fields=["last_activity_at", "updated_at"])

    logger.info("Tasting feedback %s logged for sample %s by %s", activity.pk, transfer.pk, actor)
    return activity


def list_pending_feedback(*, tenant_id, sales_rep_id=None, as_of=None, config=None, reader=None) -> list:
    """Samples still waiting for tasting feedback after the grace period."""
    config = config or get_intelligence_config(tenant_id)
    if not config.samples.track_tasting_feedback:
        return []
    reader = reader or OrderHistoryReader()
    today = as_of or timezone.localdate()
    transfers = reader.list_sample_transfers_between(
        tenant_id, None, today, sales_rep_id=sales_rep_id, without_feedback=True,
    )
    return pending_feedback(transfers, as_of=today, config=config.samples)


def get_rep_feedback_report(
    *,
    tenant_id,
    sales_rep_id,
    start: Optional[date] = None,
    end: Optional[date] = None,
    as_of=None,
    config=None,
    reader=None,
) -> FeedbackReport:
    """Feedback rate of a rep for samples dated in ``[start, end]`` (default: last 90 days)."""
    config = config or get_intelligence_config(tenant_id)
    reader = reader or OrderHistoryReader()
    today = as_of or timezone.localdate()
    end = end or today
    start = start or end - timedelta(days=90)
    transfers = reader.list_sample_transfers_between(tenant_id, start, end, sales_rep_id=sales_rep_id)
    return feedback_report(sales_rep_id, transfers, as_of=today, config=config.samples)


# ---------------------------------------------------------------------------
# Opportunities
# ---------------------------------------------------------------------------

def detect_customer_opportunities(
    *,
    tenant_id,
    customer_id,
    metric: Optional[str] = None,
    limit: Optional[int] = None,
    truncate: bool = True,
    as_of=None,
    config=None,
    reader=None,
) -> list:
    """Top products the customer has not bought in the lookback window."""
    as_of, config, reader = _context(tenant_id, as_of, config, reader)
    options = config.opportunities
    customer = reader.get_customer(tenant_id, customer_id)
    since = as_of - timedelta(days=options.lookback_days)

    products = reader.list_products(tenant_id, include_inactive=options.include_inactive_products)
    purchased = reader.list_purchased_product_ids(tenant_id, customer.id, since)
    candidate_ids = [p.id for p in products if p.id not in purchased]
    sales = reader.list_order_lines_for_products(tenant_id, candidate_ids, since) if candidate_ids else []

    return rank_opportunities(
        customer.id,
        products=products,
        sales=sales,
        purchased_product_ids=purchased,
        total_active_customers=reader.count_active_customers(tenant_id),
        config=options,
        metric=metric,
        limit=limit,
        truncate=truncate,
    )


def detect_tenant_opportunities(
    *,
    tenant_id,
    metric: Optional[str] = None,
    limit: Optional[int] = None,
    as_of=None,
    config=None,
    reader=None,
) -> dict:
    """Opportunities of every active customer, keyed by customer id.

    Products and the tenant's sale lines are read once; each customer's
    purchases are taken from those lines. A customer whose ranking fails is
    logged and left out.
    """
    as_of, config, reader = _context(tenant_id, as_of, config, reader)
    options = config.opportunities
    since = as_of - timedelta(days=options.lookback_days)

    customers = reader.list_customers(tenant_id, active_only=True)
    products = reader.list_products(tenant_id, include_inactive=options.include_inactive_products)
    sales = reader.list_order_lines_for_products(tenant_id, [p.id for p in products], since) if products else []
    purchased_by_customer = defaultdict(set)
    for line in sales:
        purchased_by_customer[line.customer_id].add(line.product_id)

    def rank(customer):
        return rank_opportunities(
            customer.id,
            products=products,
            sales=sales,
            purchased_product_ids=purchased_by_customer.get(customer.id, set()),
            total_active_customers=len(customers),
            config=options,
            metric=metric,
            limit=limit,
        )

    outcomes = _fan_out(rank, customers, tenant_id=tenant_id, label="Opportunity ranking")
    return {
        customer.id: opportunities
        for customer, opportunities, error in outcomes
        if error is None
    }


def get_opportunity_summary(*, tenant_id, customer_id, metric=None, as_of=None, config=None, reader=None) -> dict:
    opportunities = detect_customer_opportunities(
        tenant_id=tenant_id,
        customer_id=customer_id,
        metric=metric,
        truncate=False,
        as_of=as_of,
        config=config,
        reader=reader,
    )
    return summarize_opportunities(opportunities)
