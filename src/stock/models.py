"""Models for the stock management app."""
from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class ProductStock(TimeStampedModel):
    """Current stock level of a product for a tenant."""

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="product_stocks",
        verbose_name="tenant",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="stock_records",
        verbose_name="produit",
    )
    quantity = models.IntegerField("quantite en stock", default=0)

    class Meta:
        ordering = ["product__name"]
        unique_together = [["tenant", "product"]]
        verbose_name = "Stock produit"
        verbose_name_plural = "Stocks produits"

    def __str__(self):
        return f"{self.product} : {self.quantity} en stock"


class InventoryMovement(TimeStampedModel):
    """Records every stock movement for full traceability."""

    class MovementType(models.TextChoices):
        IN = "IN", "Entree"
        OUT = "OUT", "Sortie"
        ADJUST = "ADJUST", "Ajustement"
        SAMPLE = "SAMPLE", "Echantillon"
        SALE = "SALE", "Vente"
        RETURN = "RETURN", "Retour"

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="inventory_movements",
        verbose_name="tenant",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="inventory_movements",
        verbose_name="produit",
    )
    movement_type = models.CharField(
        "type de mouvement",
        max_length=20,
        choices=MovementType.choices,
    )
    quantity = models.IntegerField(
        "quantite",
        help_text="Positif pour les entrees, negatif pour les sorties.",
    )
    reference = models.CharField(
        "reference",
        max_length=255,
        blank=True,
        default="",
        help_text="Numero de commande, d'echantillon, etc.",
    )
    reason = models.TextField("motif", blank=True, default="")
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="inventory_movements",
        verbose_name="utilisateur",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Mouvement de stock"
        verbose_name_plural = "Mouvements de stock"

    def __str__(self):
        return f"{self.get_movement_type_display()} {self.product} ({self.quantity:+d})"
