"""Models for the tenants app."""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from core.models import TimeStampedModel
from intelligence.config import (
    RANKING_METRICS,
    HealthConfig,
    IntelligenceConfig,
    OpportunityConfig,
    PaceConfig,
    SampleConfig,
)
from intelligence.exceptions import InvalidConfiguration


class Tenant(TimeStampedModel):
    """An isolated distributor organisation; no data crosses tenants."""

    name = models.CharField("nom", max_length=255)
    code = models.CharField("code", max_length=50, unique=True)
    legal_name = models.CharField("raison sociale", max_length=255, blank=True, default="")
    currency = models.CharField("devise", max_length=10, default="USD")
    email = models.EmailField("email", blank=True, default="")
    is_active = models.BooleanField("actif", default=True, db_index=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Tenant"
        verbose_name_plural = "Tenants"

    def __str__(self):
        return self.name


class TenantMembership(models.Model):
    """Links a user to one or more tenants."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tenant_memberships",
    )
    is_default = models.BooleanField(
        default=False,
        help_text="If True, this tenant is the user's default tenant.",
    )

    class Meta:
        unique_together = [("tenant", "user")]
        verbose_name = "Membre tenant"
        verbose_name_plural = "Membres tenant"

    def __str__(self):
        return f"{self.user} - {self.tenant}"


class TenantSettings(TimeStampedModel):
    """Intelligence thresholds of one tenant.

    Mutated only by tenant admins/managers; the engine reads it through
    :meth:`to_config`, which validates every value.
    """

    tenant = models.OneToOneField(
        Tenant,
        on_delete=models.CASCADE,
        related_name="settings",
        verbose_name="tenant",
    )

    # Pace
    pace_lookback_days = models.PositiveIntegerField("fenetre rythme (jours)", default=180)
    pace_minimum_orders = models.PositiveIntegerField("commandes minimum", default=3)
    pace_warning_multiplier = models.DecimalField(
        "multiplicateur alerte", max_digits=5, decimal_places=2, default=Decimal("1.20"),
    )
    pace_critical_multiplier = models.DecimalField(
        "multiplicateur critique", max_digits=5, decimal_places=2, default=Decimal("1.50"),
    )

    # Revenue health
    health_lookback_months = models.PositiveIntegerField("fenetre sante (mois)", default=6)
    health_minimum_months = models.PositiveIntegerField("mois minimum", default=3)
    health_warning_percent = models.DecimalField(
        "seuil alerte (%)", max_digits=6, decimal_places=2, default=Decimal("-10.00"),
    )
    health_critical_percent = models.DecimalField(
        "seuil critique (%)", max_digits=6, decimal_places=2, default=Decimal("-15.00"),
    )
    health_exclude_current_month = models.BooleanField("exclure le mois en cours", default=True)

    # Samples
    sample_monthly_allowance = models.IntegerField("allocation mensuelle", default=60)
    sample_approval_threshold = models.IntegerField(
        "validation responsable au-dela de",
        default=60,
        help_text="Independant de l'allocation mensuelle.",
    )
    sample_feedback_grace_days = models.IntegerField("delai retour degustation (jours)", default=7)
    sample_track_feedback = models.BooleanField("suivi des degustations", default=True)

    # Opportunities
    opportunity_lookback_days = models.PositiveIntegerField("fenetre opportunites (jours)", default=180)
    opportunity_minimum_customers = models.PositiveIntegerField("clients acheteurs minimum", default=3)
    opportunity_result_size = models.PositiveIntegerField("nombre de resultats", default=20)
    opportunity_default_metric = models.CharField(
        "critere de classement",
        max_length=20,
        choices=[(metric, metric) for metric in RANKING_METRICS],
        default="revenue",
    )
    opportunity_include_inactive = models.BooleanField("inclure produits inactifs", default=False)

    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="modifie par",
    )

    class Meta:
        verbose_name = "Parametres intelligence"
        verbose_name_plural = "Parametres intelligence"

    def __str__(self):
        return f"Parametres {self.tenant}"

    def to_config(self) -> IntelligenceConfig:
        """Build the validated calculator configuration for this tenant."""
        return IntelligenceConfig(
            pace=PaceConfig(
                lookback_days=int(self.pace_lookback_days),
                minimum_orders_required=int(self.pace_minimum_orders),
                warning_multiplier=Decimal(str(self.pace_warning_multiplier)),
                critical_multiplier=Decimal(str(self.pace_critical_multiplier)),
            ),
            health=HealthConfig(
                lookback_months=int(self.health_lookback_months),
                minimum_months_required=int(self.health_minimum_months),
                warning_threshold_percent=Decimal(str(self.health_warning_percent)),
                critical_threshold_percent=Decimal(str(self.health_critical_percent)),
                exclude_current_month=bool(self.health_exclude_current_month),
            ),
            samples=SampleConfig(
                monthly_allowance=int(self.sample_monthly_allowance),
                require_manager_approval_over=int(self.sample_approval_threshold),
                minimum_feedback_days=int(self.sample_feedback_grace_days),
                track_tasting_feedback=bool(self.sample_track_feedback),
            ),
            opportunities=OpportunityConfig(
                lookback_days=int(self.opportunity_lookback_days),
                minimum_customer_threshold=int(self.opportunity_minimum_customers),
                result_size=int(self.opportunity_result_size),
                default_metric=self.opportunity_default_metric,
                include_inactive_products=bool(self.opportunity_include_inactive),
            ),
        ).validate()

    def apply_config(self, config: IntelligenceConfig) -> None:
        """Copy a validated configuration onto the model columns."""
        self.pace_lookback_days = config.pace.lookback_days
        self.pace_minimum_orders = config.pace.minimum_orders_required
        self.pace_warning_multiplier = config.pace.warning_multiplier
        self.pace_critical_multiplier = config.pace.critical_multiplier
        self.health_lookback_months = config.health.lookback_months
        self.health_minimum_months = config.health.minimum_months_required
        self.health_warning_percent = config.health.warning_threshold_percent
        self.health_critical_percent = config.health.critical_threshold_percent
        self.health_exclude_current_month = config.health.exclude_current_month
        self.sample_monthly_allowance = config.samples.monthly_allowance
        self.sample_approval_threshold = config.samples.require_manager_approval_over
        self.sample_feedback_grace_days = config.samples.minimum_feedback_days
        self.sample_track_feedback = config.samples.track_tasting_feedback
        self.opportunity_lookback_days = config.opportunities.lookback_days
        self.opportunity_minimum_customers = config.opportunities.minimum_customer_threshold
        self.opportunity_result_size = config.opportunities.result_size
        self.opportunity_default_metric = config.opportunities.default_metric
        self.opportunity_include_inactive = config.opportunities.include_inactive_products

    def clean(self):
        super().clean()
        try:
            self.to_config()
        except InvalidConfiguration as exc:
            raise ValidationError(str(exc)) from exc
