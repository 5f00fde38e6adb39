"""Custom DRF permissions for the intelligence API."""
from rest_framework.permissions import BasePermission

from tenants.services import resolve_user_tenant


class IsTenantMember(BasePermission):
    """Resolve the caller's tenant and expose it as ``request.tenant``.

    An explicit ``tenant`` parameter (query or body) is honoured only when
    the user is a member of that tenant.
    """

    message = "Acces tenant refuse."

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        data = request.data if isinstance(request.data, dict) else {}
        tenant_id = request.query_params.get("tenant") or data.get("tenant")
        tenant = resolve_user_tenant(request.user, tenant_id)
        if tenant is None:
            return False
        request.tenant = tenant
        return True


class IsManagerOrAdmin(BasePermission):
    """Allow access to users with the ADMIN or MANAGER role."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.can_manage_team


class IsManagerOrAdminForWrites(IsManagerOrAdmin):
    """Read for every member, write for ADMIN/MANAGER only."""

    def has_permission(self, request, view):
        if request.method in ("GET", "HEAD", "OPTIONS"):
            return request.user.is_authenticated
        return super().has_permission(request, view)
