"""Business-logic / service functions for the orders app."""
from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from orders.models import Order, OrderLine
from tenants.models import Tenant

logger = logging.getLogger("portal")


def generate_order_number(tenant) -> str:
    """Return the next ``CMD-YYYYMM-NNNNN`` number for the tenant.

    Must run inside a transaction holding the tenant row lock.
    """
    prefix = f"CMD-{timezone.now():%Y%m}-"
    count = Order.objects.filter(tenant=tenant, order_number__startswith=prefix).count()
    return f"{prefix}{count + 1:05d}"


@transaction.atomic
def create_order(*, tenant, customer, lines, sales_rep=None, notes="") -> Order:
    """Create a PENDING order with its lines.

    ``lines`` is an iterable of dicts with ``product``, ``quantity`` and
    optionally ``unit_price`` (defaults to the catalog price) and
    ``discount``.

    Raises:
        ValueError: on an empty order, a non-positive quantity or a
            customer/product belonging to another tenant.
    """
    lines = list(lines)
    if not lines:
        raise ValueError("Une commande doit contenir au moins une ligne.")
    if customer.tenant_id != tenant.pk:
        raise ValueError("Ce client n'appartient pas a ce tenant.")

    Tenant.objects.select_for_update().get(pk=tenant.pk)
    order = Order.objects.create(
        tenant=tenant,
        customer=customer,
        sales_rep=sales_rep,
        order_number=generate_order_number(tenant),
        status=Order.Status.PENDING,
        notes=notes,
    )

    for line in lines:
        product = line["product"]
        qty = int(line["quantity"])
        if qty <= 0:
            raise ValueError("La quantite doit etre superieure a zero.")
        if product.tenant_id != tenant.pk:
            raise ValueError(f"Le produit '{product}' n'appartient pas a ce tenant.")
        unit_price = Decimal(str(line.get("unit_price", product.unit_price)))
        if unit_price < 0:
            raise ValueError("Le prix unitaire ne peut pas etre negatif.")
        OrderLine.objects.create(
            order=order,
            product=product,
            quantity=qty,
            unit_price=unit_price,
            discount_amount=Decimal(str(line.get("discount", 0))),
        )

    order.recalculate_totals()
    order.save(update_fields=["total", "updated_at"])
    logger.info("Order %s created for %s (%d lines)", order.order_number, customer, len(lines))
    return order


@transaction.atomic
def fulfill_order(order: Order, *, fulfilled_at=None, actor=None) -> Order:
    """Mark an order as fulfilled; its lines become read-only.

    Raises:
        ValueError: if the order has no line or is not pending/confirmed.
    """
    order = Order.objects.select_for_update().get(pk=order.pk)
    if not order.can_fulfill():
        if not order.lines.exists():
            raise ValueError("Impossible de livrer une commande sans ligne.")
        raise ValueError(
            f"La commande {order.order_number} ne peut pas etre livree "
            f"(statut: {order.get_status_display()})."
        )

    order.status = Order.Status.FULFILLED
    order.fulfilled_at = fulfilled_at or timezone.now()
    order.save(update_fields=["status", "fulfilled_at", "updated_at"])
    logger.info("Order %s fulfilled by %s", order.order_number, actor)
    return order


@transaction.atomic
def cancel_order(order: Order, *, reason: str = "", actor=None) -> Order:
    order = Order.objects.select_for_update().get(pk=order.pk)
    if not order.can_cancel():
        raise ValueError(
            f"La commande {order.order_number} ne peut pas etre annulee "
            f"(statut: {order.get_status_display()})."
        )
    order.status = Order.Status.CANCELLED
    if reason:
        order.notes = f"{order.notes}\nAnnulation: {reason}".strip()
    order.save(update_fields=["status", "notes", "updated_at"])
    logger.info("Order %s cancelled by %s", order.order_number, actor)
    return order
