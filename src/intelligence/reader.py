"""Order history reader -- the only part of the engine that talks to the database.

Every method takes the tenant id explicitly and returns plain records from
:mod:`intelligence.records`. Database failures surface as
:class:`DataSourceUnavailable`; nothing is retried here.
"""
from __future__ import annotations

import functools
import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Iterable, Optional

from django.db import DatabaseError, transaction
from django.db.models import Count, Min, Prefetch, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from catalog.models import Product
from customers.models import Customer
from intelligence.exceptions import DataSourceUnavailable
from intelligence.models import HealthSnapshot, SampleTransfer
from intelligence.records import (
    CustomerRecord,
    MonthlyRevenue,
    OrderLineRecord,
    OrderRecord,
    PaceRisk,
    ProductRecord,
    ProductSaleLine,
    SampleTransferRecord,
)
from orders.models import Order, OrderLine
from stock.models import InventoryMovement
from stock.services import adjust_stock

logger = logging.getLogger("portal")


def _guard(method):
    """Translate database errors into DataSourceUnavailable."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except DatabaseError as exc:
            logger.error("Order history read failed in %s: %s", method.__name__, exc)
            raise DataSourceUnavailable(
                "Donnees temporairement indisponibles, reessayez plus tard."
            ) from exc

    return wrapper


def _order_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=str(order.pk),
        customer_id=str(order.customer_id),
        tenant_id=str(order.tenant_id),
        fulfilled_at=order.fulfilled_at,
        lines=tuple(
            OrderLineRecord(
                product_id=str(line.product_id),
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in order.lines.all()
        ),
    )


def sample_transfer_record(transfer: SampleTransfer) -> SampleTransferRecord:
    return SampleTransferRecord(
        id=str(transfer.pk),
        tenant_id=str(transfer.tenant_id),
        sales_rep_id=str(transfer.sales_rep_id),
        customer_id=str(transfer.customer_id),
        product_id=str(transfer.product_id),
        quantity=transfer.quantity,
        transfer_date=transfer.transfer_date,
        follow_up_activity_id=(
            str(transfer.follow_up_activity_id) if transfer.follow_up_activity_id else None
        ),
        approved_by_manager_id=(
            str(transfer.approved_by_manager_id) if transfer.approved_by_manager_id else None
        ),
    )


def _customer_record(customer: Customer) -> CustomerRecord:
    return CustomerRecord(
        id=str(customer.pk),
        tenant_id=str(customer.tenant_id),
        display_name=customer.display_name,
        is_active=customer.is_active,
        last_activity_at=customer.last_activity_at,
    )


def _product_record(product: Product) -> ProductRecord:
    return ProductRecord(
        id=str(product.pk),
        tenant_id=str(product.tenant_id),
        is_active=product.is_active,
        name=product.name,
        category=product.category.name if product.category_id else "",
    )


class OrderHistoryReader:
    """ORM-backed read (and sample write) access for one request or batch."""

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def _fulfilled_orders(self, tenant_id, since: Optional[datetime]):
        qs = Order.objects.filter(
            tenant_id=tenant_id,
            status=Order.Status.FULFILLED,
            fulfilled_at__isnull=False,
        )
        if since is not None:
            qs = qs.filter(fulfilled_at__gte=since)
        return qs.prefetch_related(
            Prefetch("lines", queryset=OrderLine.objects.order_by("created_at"))
        ).order_by("fulfilled_at", "created_at")

    @_guard
    def list_fulfilled_orders(self, tenant_id, customer_id, since: Optional[datetime]) -> list:
        """Fulfilled orders of a customer since ``since``, oldest first."""
        orders = self._fulfilled_orders(tenant_id, since).filter(customer_id=customer_id)
        return [_order_record(order) for order in orders]

    @_guard
    def list_fulfilled_orders_by_customer(self, tenant_id, since: Optional[datetime]) -> dict:
        """Same as :meth:`list_fulfilled_orders` for every customer of the tenant."""
        grouped = defaultdict(list)
        for order in self._fulfilled_orders(tenant_id, since):
            grouped[str(order.customer_id)].append(_order_record(order))
        return dict(grouped)

    def _monthly_rows(self, tenant_id, since: Optional[datetime]):
        qs = OrderLine.objects.filter(
            order__tenant_id=tenant_id,
            order__status=Order.Status.FULFILLED,
            order__fulfilled_at__isnull=False,
        )
        if since is not None:
            qs = qs.filter(order__fulfilled_at__gte=since)
        return (
            qs.annotate(month=TruncMonth("order__fulfilled_at"))
            .values("order__customer_id", "month")
            .annotate(revenue=Sum("line_total"), order_count=Count("order", distinct=True))
            .order_by("order__customer_id", "month")
        )

    @staticmethod
    def _monthly_record(row) -> MonthlyRevenue:
        month = row["month"]
        return MonthlyRevenue(
            year=month.year,
            month=month.month,
            revenue=row["revenue"],
            order_count=row["order_count"],
        )

    @_guard
    def list_monthly_revenue(self, tenant_id, customer_id, since: Optional[datetime]) -> list:
        """Fulfilled revenue of a customer per calendar month, oldest first."""
        rows = self._monthly_rows(tenant_id, since).filter(order__customer_id=customer_id)
        return [self._monthly_record(row) for row in rows]

    @_guard
    def list_monthly_revenue_by_customer(self, tenant_id, since: Optional[datetime]) -> dict:
        grouped = defaultdict(list)
        for row in self._monthly_rows(tenant_id, since):
            grouped[str(row["order__customer_id"])].append(self._monthly_record(row))
        return dict(grouped)

    @_guard
    def first_fulfilled_order_date(self, tenant_id, customer_id) -> Optional[date]:
        first = (
            Order.objects
            .filter(tenant_id=tenant_id, customer_id=customer_id, status=Order.Status.FULFILLED)
            .aggregate(first=Min("fulfilled_at"))["first"]
        )
        return timezone.localtime(first).date() if first else None

    @_guard
    def first_fulfilled_order_dates(self, tenant_id) -> dict:
        rows = (
            Order.objects
            .filter(tenant_id=tenant_id, status=Order.Status.FULFILLED, fulfilled_at__isnull=False)
            .values("customer_id")
            .annotate(first=Min("fulfilled_at"))
        )
        return {str(row["customer_id"]): timezone.localtime(row["first"]).date() for row in rows}

    # ------------------------------------------------------------------
    # Products and order lines
    # ------------------------------------------------------------------

    @_guard
    def list_active_products(self, tenant_id) -> list:
        return self.list_products(tenant_id, include_inactive=False)

    @_guard
    def list_products(self, tenant_id, include_inactive: bool = False) -> list:
        qs = Product.objects.filter(tenant_id=tenant_id).select_related("category")
        if not include_inactive:
            qs = qs.filter(is_active=True)
        return [_product_record(product) for product in qs.order_by("pk")]

    def _sale_lines(self, tenant_id, since: Optional[datetime]):
        qs = OrderLine.objects.filter(
            order__tenant_id=tenant_id,
            order__status=Order.Status.FULFILLED,
            order__fulfilled_at__isnull=False,
        )
        if since is not None:
            qs = qs.filter(order__fulfilled_at__gte=since)
        return qs.values_list("product_id", "order__customer_id", "quantity", "line_total")

    @_guard
    def list_order_lines_for_product(self, tenant_id, product_id, since: Optional[datetime]) -> list:
        """Fulfilled lines of one product joined with the buying customer."""
        return self.list_order_lines_for_products(tenant_id, [product_id], since)

    @_guard
    def list_order_lines_for_products(self, tenant_id, product_ids: Iterable, since: Optional[datetime]) -> list:
        rows = self._sale_lines(tenant_id, since).filter(product_id__in=list(product_ids))
        return [
            ProductSaleLine(
                product_id=str(product_id),
                customer_id=str(customer_id),
                quantity=quantity,
                line_total=line_total,
            )
            for product_id, customer_id, quantity, line_total in rows
        ]

    @_guard
    def list_purchased_product_ids(self, tenant_id, customer_id, since: Optional[datetime]) -> set:
        rows = self._sale_lines(tenant_id, since).filter(order__customer_id=customer_id)
        return {str(product_id) for product_id, _customer, _qty, _total in rows}

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    @_guard
    def get_customer(self, tenant_id, customer_id) -> CustomerRecord:
        """Raises ``Customer.DoesNotExist`` for an id outside the tenant."""
        return _customer_record(Customer.objects.get(tenant_id=tenant_id, pk=customer_id))

    @_guard
    def list_customers(self, tenant_id, active_only: bool = True) -> list:
        qs = Customer.objects.filter(tenant_id=tenant_id)
        if active_only:
            qs = qs.filter(is_active=True)
        return [_customer_record(customer) for customer in qs.order_by("pk")]

    @_guard
    def count_active_customers(self, tenant_id) -> int:
        return Customer.objects.filter(tenant_id=tenant_id, is_active=True).count()

    @_guard
    def last_activity_by_customer(self, tenant_id) -> dict:
        rows = (
            Customer.objects
            .filter(tenant_id=tenant_id, last_activity_at__isnull=False)
            .values_list("pk", "last_activity_at")
        )
        return {str(pk): last_activity for pk, last_activity in rows}

    # ------------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------------

    @_guard
    def list_sample_transfers(self, tenant_id, sales_rep_id, month_start: date, month_end: date) -> list:
        """Transfers of one rep dated within ``[month_start, month_end]``."""
        return self.list_sample_transfers_between(
            tenant_id, month_start, month_end, sales_rep_id=sales_rep_id,
        )

    @_guard
    def list_sample_transfers_between(
        self,
        tenant_id,
        start: Optional[date],
        end: Optional[date],
        *,
        sales_rep_id=None,
        without_feedback: bool = False,
    ) -> list:
        qs = SampleTransfer.objects.filter(tenant_id=tenant_id)
        if sales_rep_id is not None:
            qs = qs.filter(sales_rep_id=sales_rep_id)
        if start is not None:
            qs = qs.filter(transfer_date__gte=start)
        if end is not None:
            qs = qs.filter(transfer_date__lte=end)
        if without_feedback:
            qs = qs.filter(follow_up_activity__isnull=True)
        return [sample_transfer_record(t) for t in qs.order_by("transfer_date", "created_at")]

    @_guard
    def create_sample_transfer(
        self,
        *,
        tenant,
        sales_rep,
        customer,
        product,
        quantity: int,
        transfer_date: date,
        approved_by_manager=None,
        purpose_notes: str = "",
    ) -> SampleTransfer:
        """Insert the transfer and its negative SAMPLE stock movement together.

        Raises:
            ValueError: when stock is insufficient; nothing is written.
        """
        with transaction.atomic():
            movement = adjust_stock(
                tenant=tenant,
                product=product,
                qty_delta=-quantity,
                movement_type=InventoryMovement.MovementType.SAMPLE,
                reason=f"Echantillon pour {customer}",
                actor=sales_rep,
                reference=f"ECH-{customer.pk}",
            )
            return SampleTransfer.objects.create(
                tenant=tenant,
                sales_rep=sales_rep,
                customer=customer,
                product=product,
                quantity=quantity,
                transfer_date=transfer_date,
                purpose_notes=purpose_notes,
                approved_by_manager=approved_by_manager,
                inventory_movement=movement,
            )

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @_guard
    def persist_health_snapshot(self, *, tenant_id, health, pace=None, snapshot_date: date) -> HealthSnapshot:
        """Append one snapshot; existing snapshots are never touched."""
        return HealthSnapshot.objects.create(
            tenant_id=tenant_id,
            customer_id=health.customer_id,
            snapshot_date=snapshot_date,
            current_month_revenue=health.current_month_revenue,
            baseline_average=health.baseline_average,
            percentage_change=health.percentage_change,
            health_risk=health.risk_level,
            is_at_risk=health.is_at_risk,
            pace_risk=pace.risk_level if pace else PaceRisk.INSUFFICIENT_DATA,
            arpdd=pace.arpdd if pace else None,
            days_since_last_order=pace.days_since_last_order if pace else None,
            monthly_revenue=health.as_payload()["monthly_revenue"],
        )
