"""Models for the orders app."""
from decimal import Decimal

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class Order(TimeStampedModel):
    """A customer order placed through the portal.

    Only FULFILLED orders (with ``fulfilled_at`` set) feed the intelligence
    calculations.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Brouillon"
        PENDING = "pending", "En attente"
        CONFIRMED = "confirmed", "Confirmee"
        FULFILLED = "fulfilled", "Livree"
        CANCELLED = "cancelled", "Annulee"

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="orders",
        verbose_name="tenant",
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
        verbose_name="client",
    )
    sales_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders_as_rep",
        verbose_name="commercial",
    )
    order_number = models.CharField("numero de commande", max_length=50, db_index=True)
    status = models.CharField(
        "statut",
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    fulfilled_at = models.DateTimeField("livree le", null=True, blank=True, db_index=True)
    total = models.DecimalField(
        "total",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    notes = models.TextField("notes", blank=True, default="")

    class Meta:
        verbose_name = "commande"
        verbose_name_plural = "commandes"
        ordering = ["-created_at"]
        unique_together = [["tenant", "order_number"]]
        indexes = [
            models.Index(
                fields=["tenant", "customer", "status", "fulfilled_at"],
                name="order_tenant_cust_status_idx",
            ),
        ]

    def __str__(self):
        return f"Commande {self.order_number}"

    @property
    def is_fulfilled(self) -> bool:
        return self.status == self.Status.FULFILLED

    def recalculate_totals(self):
        """Recompute ``total`` from the lines. Does not call ``save()``."""
        self.total = sum((line.line_total for line in self.lines.all()), Decimal("0.00"))

    def can_fulfill(self) -> bool:
        return (
            self.status in (self.Status.PENDING, self.Status.CONFIRMED)
            and self.lines.exists()
        )

    def can_cancel(self) -> bool:
        return self.status in (
            self.Status.DRAFT,
            self.Status.PENDING,
            self.Status.CONFIRMED,
        )


class OrderLine(TimeStampedModel):
    """A single product line on an order."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="lines",
        verbose_name="commande",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="order_lines",
        verbose_name="produit",
    )
    quantity = models.PositiveIntegerField("quantite", default=1)
    unit_price = models.DecimalField(
        "prix unitaire",
        max_digits=12,
        decimal_places=2,
    )
    discount_amount = models.DecimalField(
        "remise ligne",
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    line_total = models.DecimalField(
        "total ligne",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    class Meta:
        verbose_name = "ligne de commande"
        verbose_name_plural = "lignes de commande"
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.product} x{self.quantity}"

    def save(self, *args, **kwargs):
        """Calculate line_total before saving; fulfilled orders are frozen."""
        if self.order.is_fulfilled:
            raise ValueError("Les lignes d'une commande livree ne sont plus modifiables.")
        self.line_total = (self.unit_price * self.quantity) - self.discount_amount
        if self.line_total < 0:
            self.line_total = Decimal("0.00")
        super().save(*args, **kwargs)
