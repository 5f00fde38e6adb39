"""Models for the intelligence app (samples, tasting feedback, health snapshots)."""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel
from intelligence.records import HealthRisk, PaceRisk


# ---------------------------------------------------------------------------
# FollowUpActivity
# ---------------------------------------------------------------------------

class FollowUpActivity(TimeStampedModel):
    """Tasting feedback logged by a rep after leaving a sample."""

    class Interest(models.TextChoices):
        HIGH = "high", "Fort"
        MEDIUM = "medium", "Moyen"
        LOW = "low", "Faible"
        NONE = "none", "Aucun"

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="follow_up_activities",
        verbose_name="tenant",
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.CASCADE,
        related_name="follow_up_activities",
        verbose_name="client",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="follow_up_activities",
        verbose_name="produit",
    )
    sales_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="follow_up_activities",
        verbose_name="commercial",
    )
    activity_date = models.DateField("date du retour", default=timezone.localdate)
    customer_interest = models.CharField(
        "interet client",
        max_length=10,
        choices=Interest.choices,
        default=Interest.MEDIUM,
    )
    rating = models.PositiveSmallIntegerField(
        "note",
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    order_placed = models.BooleanField("commande passee", default=False)
    order_amount = models.DecimalField(
        "montant commande",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    follow_up_required = models.BooleanField("relance necessaire", default=False)
    notes = models.TextField("notes", blank=True, default="")

    class Meta:
        ordering = ["-activity_date", "-created_at"]
        verbose_name = "Retour degustation"
        verbose_name_plural = "Retours degustation"

    def __str__(self):
        return f"Retour {self.customer} - {self.product} ({self.get_customer_interest_display()})"


# ---------------------------------------------------------------------------
# SampleTransfer
# ---------------------------------------------------------------------------

class SampleTransfer(TimeStampedModel):
    """Outbound sample given to a customer, counted against the rep's allowance."""

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="sample_transfers",
        verbose_name="tenant",
    )
    sales_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sample_transfers",
        verbose_name="commercial",
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="sample_transfers",
        verbose_name="client",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="sample_transfers",
        verbose_name="produit",
    )
    quantity = models.PositiveIntegerField("quantite")
    transfer_date = models.DateField("date", default=timezone.localdate, db_index=True)
    purpose_notes = models.TextField("objet", blank=True, default="")
    approved_by_manager = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_sample_transfers",
        verbose_name="valide par",
    )
    follow_up_activity = models.OneToOneField(
        FollowUpActivity,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sample_transfer",
        verbose_name="retour degustation",
    )
    inventory_movement = models.OneToOneField(
        "stock.InventoryMovement",
        on_delete=models.PROTECT,
        related_name="sample_transfer",
        verbose_name="mouvement de stock",
    )

    class Meta:
        ordering = ["-transfer_date", "-created_at"]
        verbose_name = "Echantillon"
        verbose_name_plural = "Echantillons"
        indexes = [
            models.Index(fields=["tenant", "sales_rep", "transfer_date"], name="sample_tenant_rep_date_idx"),
        ]

    def __str__(self):
        return f"Echantillon {self.product} x{self.quantity} -> {self.customer}"


# ---------------------------------------------------------------------------
# HealthSnapshot
# ---------------------------------------------------------------------------

class HealthSnapshot(TimeStampedModel):
    """Append-only point-in-time copy of a customer's health evaluation."""

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="health_snapshots",
        verbose_name="tenant",
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.CASCADE,
        related_name="health_snapshots",
        verbose_name="client",
    )
    snapshot_date = models.DateField("date", db_index=True)
    current_month_revenue = models.DecimalField(
        "CA du mois", max_digits=14, decimal_places=2, default=Decimal("0.00"),
    )
    baseline_average = models.DecimalField(
        "moyenne de reference", max_digits=14, decimal_places=2, default=Decimal("0.00"),
    )
    percentage_change = models.DecimalField(
        "variation (%)", max_digits=10, decimal_places=2, default=Decimal("0.00"),
    )
    health_risk = models.CharField(
        "risque chiffre d'affaires",
        max_length=20,
        choices=HealthRisk.choices,
    )
    is_at_risk = models.BooleanField("a risque", default=False)
    pace_risk = models.CharField(
        "risque rythme",
        max_length=20,
        choices=PaceRisk.choices,
        default=PaceRisk.INSUFFICIENT_DATA,
    )
    arpdd = models.PositiveIntegerField("rythme moyen (jours)", null=True, blank=True)
    days_since_last_order = models.IntegerField("jours depuis commande", null=True, blank=True)
    monthly_revenue = models.JSONField("CA mensuel de reference", default=list, blank=True)

    class Meta:
        ordering = ["-snapshot_date", "-created_at"]
        verbose_name = "Instantane sante client"
        verbose_name_plural = "Instantanes sante client"
        indexes = [
            models.Index(fields=["tenant", "customer", "snapshot_date"], name="snapshot_tenant_cust_date_idx"),
        ]

    def __str__(self):
        return f"{self.customer} {self.snapshot_date}: {self.health_risk}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Un instantane de sante ne peut pas etre modifie.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Un instantane de sante ne peut pas etre supprime.")
