"""Main API URL router for /api/v1/."""
from django.urls import path

from api.v1 import intelligence_views as views

app_name = "api"

urlpatterns = [
    # Customer intelligence
    path("intelligence/customers/<uuid:customer_id>/pace/", views.CustomerPaceAPIView.as_view(), name="customer-pace"),
    path("intelligence/customers/<uuid:customer_id>/health/", views.CustomerHealthAPIView.as_view(), name="customer-health"),
    path(
        "intelligence/customers/<uuid:customer_id>/opportunities/",
        views.CustomerOpportunitiesAPIView.as_view(),
        name="customer-opportunities",
    ),
    path(
        "intelligence/customers/<uuid:customer_id>/opportunities/summary/",
        views.CustomerOpportunitySummaryAPIView.as_view(),
        name="customer-opportunities-summary",
    ),
    # Tenant intelligence
    path("intelligence/pace/", views.TenantPaceAPIView.as_view(), name="tenant-pace"),
    path("intelligence/health/", views.TenantHealthAPIView.as_view(), name="tenant-health"),
    path("intelligence/opportunities/", views.TenantOpportunitiesAPIView.as_view(), name="tenant-opportunities"),
    path("intelligence/alerts/", views.PriorityAlertsAPIView.as_view(), name="priority-alerts"),
    path("intelligence/settings/", views.TenantSettingsAPIView.as_view(), name="tenant-settings"),
    # Samples
    path("samples/allowance/", views.RepAllowanceAPIView.as_view(), name="sample-allowance"),
    path("samples/transfers/", views.SampleTransferCreateAPIView.as_view(), name="sample-transfer-create"),
    path(
        "samples/transfers/<uuid:transfer_id>/feedback/",
        views.SampleFeedbackAPIView.as_view(),
        name="sample-feedback",
    ),
    path("samples/feedback/pending/", views.PendingFeedbackAPIView.as_view(), name="sample-feedback-pending"),
    path("samples/feedback/report/", views.FeedbackReportAPIView.as_view(), name="sample-feedback-report"),
]
