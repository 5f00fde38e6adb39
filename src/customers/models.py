"""Models for the customers app."""
from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class Customer(TimeStampedModel):
    """A trade account (restaurant, retailer, bar) belonging to one tenant."""

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="customers",
        verbose_name="tenant",
    )
    company_name = models.CharField("raison sociale", max_length=200)
    contact_name = models.CharField("contact", max_length=200, blank=True, default="")
    phone = models.CharField("telephone", max_length=30, blank=True, default="")
    email = models.EmailField("e-mail", blank=True, default="")
    is_active = models.BooleanField("actif", default=True, db_index=True)
    assigned_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="assigned_customers",
        verbose_name="commercial attitre",
    )
    last_activity_at = models.DateTimeField(
        "derniere activite",
        null=True,
        blank=True,
        help_text="Derniere visite, appel ou degustation enregistree par le CRM.",
    )

    class Meta:
        verbose_name = "client"
        verbose_name_plural = "clients"
        ordering = ["company_name"]

    @property
    def display_name(self):
        return self.company_name

    def __str__(self):
        return self.company_name
