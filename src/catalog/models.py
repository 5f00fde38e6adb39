"""Models for the catalog app (categories and products)."""
from decimal import Decimal

from django.db import models
from django.utils.text import slugify

from core.models import TimeStampedModel


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------

class Category(TimeStampedModel):
    """Product category (wine, spirits, beer...) of one tenant."""

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="categories",
        verbose_name="tenant",
    )
    name = models.CharField("nom", max_length=255)
    slug = models.SlugField("slug", max_length=255)
    is_active = models.BooleanField("actif", default=True)

    class Meta:
        verbose_name = "categorie"
        verbose_name_plural = "categories"
        ordering = ["name"]
        unique_together = [["tenant", "slug"]]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name) or "cat"
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------

class Product(TimeStampedModel):
    """A sellable item of a tenant's catalog.

    Only active products are recommended as opportunities unless the tenant
    explicitly includes inactive ones.
    """

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="products",
        verbose_name="tenant",
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
        verbose_name="categorie",
    )
    name = models.CharField("nom", max_length=255)
    sku = models.CharField(
        "SKU",
        max_length=50,
        help_text="Reference interne unique du produit.",
    )
    unit_price = models.DecimalField(
        "prix unitaire",
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    is_active = models.BooleanField("actif", default=True, db_index=True)

    class Meta:
        verbose_name = "produit"
        verbose_name_plural = "produits"
        ordering = ["name"]
        unique_together = [["tenant", "sku"]]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def category_name(self) -> str:
        return self.category.name if self.category_id else ""
