"""REST API endpoints for the sales intelligence engine."""
from datetime import date, timedelta

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import User
from api.v1.permissions import IsManagerOrAdminForWrites, IsTenantMember
from api.v1.serializers import (
    SampleTransferCreateSerializer,
    SampleTransferSerializer,
    TastingFeedbackSerializer,
)
from catalog.models import Product
from customers.models import Customer
from intelligence import services
from intelligence.models import SampleTransfer
from intelligence.samples import transfer_payload
from tenants.services import get_intelligence_config, update_tenant_settings


def _parse_date(value, default):
    try:
        return date.fromisoformat(value) if value else default
    except (TypeError, ValueError):
        return default


def _parse_period_month(value, default):
    if not value:
        return default.replace(day=1)
    try:
        if len(value) == 7:
            parsed = date.fromisoformat(f"{value}-01")
        else:
            parsed = date.fromisoformat(value)
        return parsed.replace(day=1)
    except (TypeError, ValueError):
        return None


def _parse_int(value, default, *, minimum=None, maximum=None):
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = int(default)
    if minimum is not None:
        parsed = max(minimum, parsed)
    if maximum is not None:
        parsed = min(maximum, parsed)
    return parsed


def _parse_bool(value, default=False):
    if value is None:
        return bool(default)
    raw = str(value).strip().lower()
    if raw in {"1", "true", "yes", "oui", "on"}:
        return True
    if raw in {"0", "false", "no", "non", "off"}:
        return False
    return bool(default)


def _can_manage(user) -> bool:
    return bool(user.can_manage_team)


def _tenant_member(tenant, user_id):
    return get_object_or_404(User, pk=user_id, tenant_memberships__tenant=tenant, is_active=True)


def _resolve_rep(request):
    """Sales reps only see themselves; managers may pass ``rep``."""
    rep_id = request.query_params.get("rep")
    if not rep_id or str(rep_id) == str(request.user.pk):
        return request.user
    if not _can_manage(request.user):
        return None
    return _tenant_member(request.tenant, rep_id)


def _config_payload(config) -> dict:
    return {
        section: {key: str(value) if not isinstance(value, (bool, int)) else value for key, value in values.items()}
        for section, values in config.as_dict().items()
    }


# ---------------------------------------------------------------------------
# Customer-level endpoints
# ---------------------------------------------------------------------------

class CustomerPaceAPIView(APIView):
    """Ordering cadence and overdue risk of one customer."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request, customer_id):
        result = services.calculate_customer_pace(tenant_id=request.tenant.pk, customer_id=customer_id)
        return Response(result.as_payload())


class CustomerHealthAPIView(APIView):
    """Revenue health of one customer; ``snapshot=1`` appends a snapshot."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request, customer_id):
        result = services.evaluate_customer_health(
            tenant_id=request.tenant.pk,
            customer_id=customer_id,
            persist_snapshot=_parse_bool(request.query_params.get("snapshot"), default=False),
        )
        return Response(result.as_payload())


class CustomerOpportunitiesAPIView(APIView):
    """Products the customer has not bought, ranked by metric."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request, customer_id):
        metric = request.query_params.get("metric") or None
        limit = request.query_params.get("limit")
        opportunities = services.detect_customer_opportunities(
            tenant_id=request.tenant.pk,
            customer_id=customer_id,
            metric=metric,
            limit=_parse_int(limit, 20, minimum=1, maximum=100) if limit else None,
        )
        return Response({
            "customer_id": str(customer_id),
            "count": len(opportunities),
            "results": [o.as_payload() for o in opportunities],
        })


class CustomerOpportunitySummaryAPIView(APIView):
    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request, customer_id):
        summary = services.get_opportunity_summary(
            tenant_id=request.tenant.pk,
            customer_id=customer_id,
            metric=request.query_params.get("metric") or None,
        )
        return Response({"customer_id": str(customer_id), **summary})


# ---------------------------------------------------------------------------
# Tenant-level endpoints
# ---------------------------------------------------------------------------

class TenantPaceAPIView(APIView):
    """Pace of every active customer, most overdue first."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request):
        results = services.calculate_tenant_pace(
            tenant_id=request.tenant.pk,
            only_at_risk=_parse_bool(request.query_params.get("only_at_risk"), default=False),
        )
        return Response({"count": len(results), "results": [r.as_payload() for r in results]})


class TenantHealthAPIView(APIView):
    """Revenue health of every active customer, steepest drops first."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request):
        results = services.evaluate_tenant_health(
            tenant_id=request.tenant.pk,
            only_at_risk=_parse_bool(request.query_params.get("only_at_risk"), default=False),
        )
        return Response({"count": len(results), "results": [r.as_payload() for r in results]})


class TenantOpportunitiesAPIView(APIView):
    """Opportunities of every active customer, for the sales dashboard."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request):
        limit = request.query_params.get("limit")
        by_customer = services.detect_tenant_opportunities(
            tenant_id=request.tenant.pk,
            metric=request.query_params.get("metric") or None,
            limit=_parse_int(limit, 20, minimum=1, maximum=100) if limit else None,
        )
        return Response({
            "count": len(by_customer),
            "results": [
                {
                    "customer_id": customer_id,
                    "count": len(opportunities),
                    "opportunities": [o.as_payload() for o in opportunities],
                }
                for customer_id, opportunities in by_customer.items()
            ],
        })


class PriorityAlertsAPIView(APIView):
    """Prioritized action list combining pace and health risks."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request):
        limit = _parse_int(request.query_params.get("limit"), 50, minimum=1, maximum=500)
        alerts = services.build_priority_alerts(tenant_id=request.tenant.pk)
        return Response({
            "count": len(alerts),
            "results": [a.as_payload() for a in alerts[:limit]],
        })


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------

class RepAllowanceAPIView(APIView):
    """Monthly sample usage of a rep (``month=YYYY-MM``)."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request):
        rep = _resolve_rep(request)
        if rep is None:
            return Response({"detail": "Acces refuse."}, status=status.HTTP_403_FORBIDDEN)
        month = _parse_period_month(request.query_params.get("month"), timezone.localdate())
        if month is None:
            return Response({"detail": "Mois invalide (format attendu: YYYY-MM)."}, status=status.HTTP_400_BAD_REQUEST)
        allowance = services.get_rep_allowance(tenant_id=request.tenant.pk, sales_rep_id=rep.pk, month=month)
        return Response(allowance.as_payload())


class SampleTransferCreateAPIView(APIView):
    """Record a sample pull; 409 when manager approval is required."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def post(self, request):
        serializer = SampleTransferCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        tenant = request.tenant

        rep = request.user
        if data.get("sales_rep") and str(data["sales_rep"]) != str(request.user.pk):
            if not _can_manage(request.user):
                return Response(
                    {"detail": "Vous ne pouvez enregistrer que vos propres echantillons."},
                    status=status.HTTP_403_FORBIDDEN,
                )
            rep = _tenant_member(tenant, data["sales_rep"])

        # Sign-off is only ever given by the approving manager in person.
        approved_by = None
        if data.get("approved_by"):
            if str(data["approved_by"]) != str(request.user.pk) or not request.user.can_approve_samples:
                return Response(
                    {"detail": "Seul un responsable peut approuver, en son propre nom."},
                    status=status.HTTP_403_FORBIDDEN,
                )
            approved_by = request.user

        transfer = services.record_sample_transfer(
            tenant=tenant,
            sales_rep=rep,
            customer=get_object_or_404(Customer, pk=data["customer"], tenant=tenant),
            product=get_object_or_404(Product, pk=data["product"], tenant=tenant),
            quantity=data["quantity"],
            transfer_date=data.get("transfer_date"),
            approved_by=approved_by,
            purpose_notes=data.get("purpose_notes", ""),
        )
        return Response(SampleTransferSerializer(transfer).data, status=status.HTTP_201_CREATED)


class SampleFeedbackAPIView(APIView):
    """Log tasting feedback for a sample transfer."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def post(self, request, transfer_id):
        transfer = get_object_or_404(SampleTransfer, pk=transfer_id, tenant=request.tenant)
        if transfer.sales_rep_id != request.user.pk and not _can_manage(request.user):
            return Response({"detail": "Acces refuse."}, status=status.HTTP_403_FORBIDDEN)

        serializer = TastingFeedbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        activity = services.record_tasting_feedback(
            transfer=transfer,
            actor=request.user,
            **serializer.validated_data,
        )
        return Response(
            {
                "id": str(activity.pk),
                "transfer_id": str(transfer.pk),
                "customer_interest": activity.customer_interest,
                "rating": activity.rating,
                "order_placed": activity.order_placed,
                "order_amount": str(activity.order_amount),
                "activity_date": activity.activity_date.isoformat(),
            },
            status=status.HTTP_201_CREATED,
        )


class PendingFeedbackAPIView(APIView):
    """Samples whose tasting feedback is overdue."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request):
        rep_id = None
        if not _can_manage(request.user):
            rep_id = request.user.pk
        elif request.query_params.get("rep"):
            rep_id = _tenant_member(request.tenant, request.query_params["rep"]).pk
        pending = services.list_pending_feedback(tenant_id=request.tenant.pk, sales_rep_id=rep_id)
        return Response({"count": len(pending), "results": [transfer_payload(t) for t in pending]})


class FeedbackReportAPIView(APIView):
    """Feedback rate of a rep over a date window."""

    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request):
        rep = _resolve_rep(request)
        if rep is None:
            return Response({"detail": "Acces refuse."}, status=status.HTTP_403_FORBIDDEN)
        today = timezone.localdate()
        date_to = _parse_date(request.query_params.get("date_to"), today)
        date_from = _parse_date(request.query_params.get("date_from"), date_to - timedelta(days=90))
        if date_from > date_to:
            date_from, date_to = date_to, date_from
        report = services.get_rep_feedback_report(
            tenant_id=request.tenant.pk,
            sales_rep_id=rep.pk,
            start=date_from,
            end=date_to,
        )
        return Response({
            **report.as_payload(),
            "date_from": date_from.isoformat(),
            "date_to": date_to.isoformat(),
        })


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TenantSettingsAPIView(APIView):
    """Read (members) or update (ADMIN/MANAGER) the tenant's thresholds."""

    permission_classes = [IsAuthenticated, IsTenantMember, IsManagerOrAdminForWrites]

    def get(self, request):
        config = get_intelligence_config(request.tenant.pk)
        return Response(_config_payload(config))

    def patch(self, request):
        overrides = {k: v for k, v in request.data.items() if k != "tenant"}
        tenant_settings = update_tenant_settings(
            tenant_id=request.tenant.pk,
            overrides=overrides,
            actor=request.user,
        )
        return Response(_config_payload(tenant_settings.to_config()))
