"""Business logic / service functions for stock management."""
import logging

from django.db import transaction

from .models import InventoryMovement, ProductStock

logger = logging.getLogger("portal")


@transaction.atomic
def adjust_stock(
    tenant,
    product,
    qty_delta,
    movement_type,
    reason,
    actor,
    reference="",
):
    """
    Adjust the stock level of a product for a tenant.

    Uses ``select_for_update`` on the ProductStock row to prevent race
    conditions.  Creates an InventoryMovement record for traceability.

    Args:
        tenant: The Tenant owning the stock.
        product: The Product instance.
        qty_delta: Integer delta (positive to add, negative to remove).
        movement_type: An InventoryMovement.MovementType value.
        reason: Free-text reason for the movement.
        actor: The User performing the action.
        reference: Optional reference string (order number, sample id, etc.).

    Returns:
        The created InventoryMovement instance.

    Raises:
        ValueError: If the product belongs to another tenant, the delta is
            zero, or an outgoing movement would result in negative stock.
    """
    if product.tenant_id != tenant.pk:
        raise ValueError(f"Le produit '{product}' n'appartient pas a ce tenant.")
    if not qty_delta:
        raise ValueError("La quantite du mouvement ne peut pas etre nulle.")

    stock, _created = ProductStock.objects.select_for_update().get_or_create(
        tenant=tenant,
        product=product,
        defaults={"quantity": 0},
    )

    if qty_delta < 0 and (stock.quantity + qty_delta) < 0:
        raise ValueError(
            f"Stock insuffisant pour {product}. "
            f"Disponible: {stock.quantity}, demande: {abs(qty_delta)}."
        )

    stock.quantity += qty_delta
    stock.save(update_fields=["quantity", "updated_at"])

    movement = InventoryMovement.objects.create(
        tenant=tenant,
        product=product,
        movement_type=movement_type,
        quantity=qty_delta,
        reference=reference,
        reason=reason,
        actor=actor,
    )

    logger.info(
        "Stock adjusted: %s %+d for %s by %s (type=%s, ref=%s)",
        product, qty_delta, tenant, actor, movement_type, reference,
    )

    return movement
