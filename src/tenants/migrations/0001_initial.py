import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Tenant",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("name", models.CharField(max_length=255, verbose_name="nom")),
                ("code", models.CharField(max_length=50, unique=True, verbose_name="code")),
                ("legal_name", models.CharField(blank=True, default="", max_length=255, verbose_name="raison sociale")),
                ("currency", models.CharField(default="USD", max_length=10, verbose_name="devise")),
                ("email", models.EmailField(blank=True, default="", max_length=254, verbose_name="email")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="actif")),
            ],
            options={
                "verbose_name": "Tenant",
                "verbose_name_plural": "Tenants",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="TenantMembership",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "is_default",
                    models.BooleanField(default=False, help_text="If True, this tenant is the user's default tenant."),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="tenants.tenant",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tenant_memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Membre tenant",
                "verbose_name_plural": "Membres tenant",
                "unique_together": {("tenant", "user")},
            },
        ),
        migrations.CreateModel(
            name="TenantSettings",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("pace_lookback_days", models.PositiveIntegerField(default=180, verbose_name="fenetre rythme (jours)")),
                ("pace_minimum_orders", models.PositiveIntegerField(default=3, verbose_name="commandes minimum")),
                (
                    "pace_warning_multiplier",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("1.20"), max_digits=5, verbose_name="multiplicateur alerte",
                    ),
                ),
                (
                    "pace_critical_multiplier",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("1.50"), max_digits=5, verbose_name="multiplicateur critique",
                    ),
                ),
                ("health_lookback_months", models.PositiveIntegerField(default=6, verbose_name="fenetre sante (mois)")),
                ("health_minimum_months", models.PositiveIntegerField(default=3, verbose_name="mois minimum")),
                (
                    "health_warning_percent",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("-10.00"), max_digits=6, verbose_name="seuil alerte (%)",
                    ),
                ),
                (
                    "health_critical_percent",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("-15.00"), max_digits=6, verbose_name="seuil critique (%)",
                    ),
                ),
                (
                    "health_exclude_current_month",
                    models.BooleanField(default=True, verbose_name="exclure le mois en cours"),
                ),
                ("sample_monthly_allowance", models.IntegerField(default=60, verbose_name="allocation mensuelle")),
                (
                    "sample_approval_threshold",
                    models.IntegerField(
                        default=60,
                        help_text="Independant de l'allocation mensuelle.",
                        verbose_name="validation responsable au-dela de",
                    ),
                ),
                (
                    "sample_feedback_grace_days",
                    models.IntegerField(default=7, verbose_name="delai retour degustation (jours)"),
                ),
                ("sample_track_feedback", models.BooleanField(default=True, verbose_name="suivi des degustations")),
                (
                    "opportunity_lookback_days",
                    models.PositiveIntegerField(default=180, verbose_name="fenetre opportunites (jours)"),
                ),
                (
                    "opportunity_minimum_customers",
                    models.PositiveIntegerField(default=3, verbose_name="clients acheteurs minimum"),
                ),
                ("opportunity_result_size", models.PositiveIntegerField(default=20, verbose_name="nombre de resultats")),
                (
                    "opportunity_default_metric",
                    models.CharField(
                        choices=[("revenue", "revenue"), ("volume", "volume"), ("penetration", "penetration")],
                        default="revenue",
                        max_length=20,
                        verbose_name="critere de classement",
                    ),
                ),
                (
                    "opportunity_include_inactive",
                    models.BooleanField(default=False, verbose_name="inclure produits inactifs"),
                ),
                (
                    "tenant",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="settings",
                        to="tenants.tenant",
                        verbose_name="tenant",
                    ),
                ),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="modifie par",
                    ),
                ),
            ],
            options={
                "verbose_name": "Parametres intelligence",
                "verbose_name_plural": "Parametres intelligence",
            },
        ),
    ]
