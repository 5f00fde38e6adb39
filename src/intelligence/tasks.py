"""Celery tasks for the intelligence refresh pipeline."""
import logging

from celery import shared_task

from intelligence import services
from intelligence.exceptions import DataSourceUnavailable, InvalidConfiguration

logger = logging.getLogger(__name__)


def _iter_tenants(tenant_id=None):
    from tenants.models import Tenant

    qs = Tenant.objects.filter(is_active=True)
    if tenant_id:
        qs = qs.filter(pk=tenant_id)
    return qs


@shared_task(name="intelligence.tasks.refresh_tenant_intelligence")
def refresh_tenant_intelligence(tenant_id=None):
    """Refresh pace, health snapshots and alerts for one/all active tenants.

    A tenant whose history cannot be read or whose settings are invalid is
    logged and skipped; the next scheduled run picks it up again.
    """
    alerts = snapshots = failed = 0
    for tenant in _iter_tenants(tenant_id):
        try:
            result = services.run_tenant_intelligence(tenant_id=tenant.pk)
        except (DataSourceUnavailable, InvalidConfiguration):
            logger.error("Intelligence refresh skipped for tenant %s", tenant, exc_info=True)
            failed += 1
            continue
        alerts += len(result.alerts)
        snapshots += result.snapshots_created
        failed += result.failed_count
    return f"alerts={alerts} snapshots={snapshots} failures={failed}"
