import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("customers", "0001_initial"),
        ("stock", "0001_initial"),
        ("tenants", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="FollowUpActivity",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                (
                    "activity_date",
                    models.DateField(default=django.utils.timezone.localdate, verbose_name="date du retour"),
                ),
                (
                    "customer_interest",
                    models.CharField(
                        choices=[("high", "Fort"), ("medium", "Moyen"), ("low", "Faible"), ("none", "Aucun")],
                        default="medium",
                        max_length=10,
                        verbose_name="interet client",
                    ),
                ),
                (
                    "rating",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(5),
                        ],
                        verbose_name="note",
                    ),
                ),
                ("order_placed", models.BooleanField(default=False, verbose_name="commande passee")),
                (
                    "order_amount",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="montant commande",
                    ),
                ),
                ("follow_up_required", models.BooleanField(default=False, verbose_name="relance necessaire")),
                ("notes", models.TextField(blank=True, default="", verbose_name="notes")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="follow_up_activities",
                        to="customers.customer",
                        verbose_name="client",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="follow_up_activities",
                        to="catalog.product",
                        verbose_name="produit",
                    ),
                ),
                (
                    "sales_rep",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="follow_up_activities",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="commercial",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="follow_up_activities",
                        to="tenants.tenant",
                        verbose_name="tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Retour degustation",
                "verbose_name_plural": "Retours degustation",
                "ordering": ["-activity_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="SampleTransfer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("quantity", models.PositiveIntegerField(verbose_name="quantite")),
                (
                    "transfer_date",
                    models.DateField(db_index=True, default=django.utils.timezone.localdate, verbose_name="date"),
                ),
                ("purpose_notes", models.TextField(blank=True, default="", verbose_name="objet")),
                (
                    "approved_by_manager",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="approved_sample_transfers",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="valide par",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sample_transfers",
                        to="customers.customer",
                        verbose_name="client",
                    ),
                ),
                (
                    "follow_up_activity",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sample_transfer",
                        to="intelligence.followupactivity",
                        verbose_name="retour degustation",
                    ),
                ),
                (
                    "inventory_movement",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sample_transfer",
                        to="stock.inventorymovement",
                        verbose_name="mouvement de stock",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sample_transfers",
                        to="catalog.product",
                        verbose_name="produit",
                    ),
                ),
                (
                    "sales_rep",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sample_transfers",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="commercial",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sample_transfers",
                        to="tenants.tenant",
                        verbose_name="tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Echantillon",
                "verbose_name_plural": "Echantillons",
                "ordering": ["-transfer_date", "-created_at"],
                "indexes": [
                    models.Index(
                        fields=["tenant", "sales_rep", "transfer_date"],
                        name="sample_tenant_rep_date_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="HealthSnapshot",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("snapshot_date", models.DateField(db_index=True, verbose_name="date")),
                (
                    "current_month_revenue",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="CA du mois",
                    ),
                ),
                (
                    "baseline_average",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="moyenne de reference",
                    ),
                ),
                (
                    "percentage_change",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=10, verbose_name="variation (%)",
                    ),
                ),
                (
                    "health_risk",
                    models.CharField(
                        choices=[
                            ("healthy", "Sain"),
                            ("warning", "En baisse"),
                            ("critical", "Critique"),
                            ("insufficient-data", "Donnees insuffisantes"),
                        ],
                        max_length=20,
                        verbose_name="risque chiffre d'affaires",
                    ),
                ),
                ("is_at_risk", models.BooleanField(default=False, verbose_name="a risque")),
                (
                    "pace_risk",
                    models.CharField(
                        choices=[
                            ("on-track", "Dans le rythme"),
                            ("warning", "En retard"),
                            ("critical", "Critique"),
                            ("insufficient-data", "Donnees insuffisantes"),
                        ],
                        default="insufficient-data",
                        max_length=20,
                        verbose_name="risque rythme",
                    ),
                ),
                ("arpdd", models.PositiveIntegerField(blank=True, null=True, verbose_name="rythme moyen (jours)")),
                (
                    "days_since_last_order",
                    models.IntegerField(blank=True, null=True, verbose_name="jours depuis commande"),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="health_snapshots",
                        to="customers.customer",
                        verbose_name="client",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="health_snapshots",
                        to="tenants.tenant",
                        verbose_name="tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Instantane sante client",
                "verbose_name_plural": "Instantanes sante client",
                "ordering": ["-snapshot_date", "-created_at"],
                "indexes": [
                    models.Index(
                        fields=["tenant", "customer", "snapshot_date"],
                        name="snapshot_tenant_cust_date_idx",
                    ),
                ],
            },
        ),
    ]
