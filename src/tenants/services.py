"""Service functions for the tenants app."""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from intelligence.config import IntelligenceConfig
from tenants.models import Tenant, TenantMembership, TenantSettings

logger = logging.getLogger("portal")


def get_intelligence_config(tenant_id) -> IntelligenceConfig:
    """Return the validated configuration of a tenant (defaults when unset).

    Raises:
        InvalidConfiguration: if the stored thresholds are nonsensical.
    """
    tenant_settings = TenantSettings.objects.filter(tenant_id=tenant_id).first()
    if tenant_settings is None:
        return IntelligenceConfig.defaults()
    return tenant_settings.to_config()


@transaction.atomic
def update_tenant_settings(*, tenant_id, overrides: dict, actor=None) -> TenantSettings:
    """Merge ``overrides`` into the tenant settings, validate, then save.

    ``overrides`` uses the section layout of
    :meth:`IntelligenceConfig.from_mapping`. Nothing is written when
    validation fails.
    """
    tenant = Tenant.objects.get(pk=tenant_id)
    tenant_settings, _created = TenantSettings.objects.select_for_update().get_or_create(tenant=tenant)
    config = tenant_settings.to_config().merged(overrides)

    tenant_settings.apply_config(config)
    tenant_settings.updated_by = actor
    tenant_settings.save()
    logger.info("Intelligence settings updated for tenant %s by %s", tenant, actor)
    return tenant_settings


def resolve_user_tenant(user, tenant_id=None):
    """Return the tenant the user acts for, or ``None`` when not a member.

    An explicit ``tenant_id`` is honoured only when the user belongs to it;
    otherwise the default membership (then the oldest one) is used.
    """
    memberships = (
        TenantMembership.objects
        .filter(user=user, tenant__is_active=True)
        .select_related("tenant")
    )
    if tenant_id:
        try:
            membership = memberships.filter(tenant_id=tenant_id).first()
        except (ValueError, ValidationError):
            return None
        return membership.tenant if membership else None
    membership = memberships.order_by("-is_default", "tenant__created_at").first()
    return membership.tenant if membership else None
