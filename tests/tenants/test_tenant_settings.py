from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from intelligence.config import IntelligenceConfig
from intelligence.exceptions import InvalidConfiguration
from tenants.models import TenantMembership, TenantSettings
from tenants.services import get_intelligence_config, resolve_user_tenant, update_tenant_settings


@pytest.mark.django_db
def test_tenant_without_settings_uses_defaults(tenant):
    assert get_intelligence_config(tenant.pk) == IntelligenceConfig.defaults()


@pytest.mark.django_db
def test_update_settings_persists_and_merges(tenant, manager_user):
    update_tenant_settings(
        tenant_id=tenant.pk,
        overrides={"health": {"warning_threshold_percent": "-8"}},
        actor=manager_user,
    )
    update_tenant_settings(tenant_id=tenant.pk, overrides={"samples": {"monthly_allowance": 80}})

    config = get_intelligence_config(tenant.pk)
    assert config.health.warning_threshold_percent == Decimal("-8")
    assert config.samples.monthly_allowance == 80
    assert TenantSettings.objects.get(tenant=tenant).updated_by is None


@pytest.mark.django_db
def test_invalid_update_writes_nothing(tenant):
    with pytest.raises(InvalidConfiguration):
        update_tenant_settings(
            tenant_id=tenant.pk,
            overrides={"pace": {"warning_multiplier": "2", "critical_multiplier": "1.5"}},
        )

    assert not TenantSettings.objects.filter(tenant=tenant).exists()


@pytest.mark.django_db
def test_model_validation_reports_inconsistent_thresholds(tenant):
    tenant_settings = TenantSettings(tenant=tenant, health_warning_percent=Decimal("-20.00"))

    with pytest.raises(ValidationError):
        tenant_settings.clean()


@pytest.mark.django_db
def test_resolve_user_tenant(tenant, other_tenant, sales_user, tenant_sales):
    assert resolve_user_tenant(sales_user) == tenant
    assert resolve_user_tenant(sales_user, tenant.pk) == tenant
    assert resolve_user_tenant(sales_user, other_tenant.pk) is None

    TenantMembership.objects.create(tenant=other_tenant, user=sales_user)
    assert resolve_user_tenant(sales_user, other_tenant.pk) == other_tenant
    assert resolve_user_tenant(sales_user) == tenant
