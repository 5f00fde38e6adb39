from datetime import date, datetime
from decimal import Decimal

import pytest
from django.utils import timezone

from intelligence import services
from intelligence.config import IntelligenceConfig
from intelligence.exceptions import AllowanceExceeded, InvalidConfiguration
from intelligence.models import FollowUpActivity, HealthSnapshot, SampleTransfer
from intelligence.records import AlertType, HealthRisk, PaceRisk
from stock.models import ProductStock
from tenants.services import update_tenant_settings


def _aware(year, month, day):
    return timezone.make_aware(datetime(year, month, day, 10, 0))


@pytest.fixture
def declining_customer(customer, product, fulfilled_order):
    """1000/month in April-June, 800 so far in July 2024."""
    for month in (4, 5, 6):
        fulfilled_order(customer, _aware(2024, month, 10), [(product, 100, "10.00")])
    fulfilled_order(customer, _aware(2024, 7, 5), [(product, 80, "10.00")])
    return customer


@pytest.fixture
def regular_customer(make_customer, product, fulfilled_order, at):
    customer = make_customer(company_name="Cave Reguliere")
    for day in (0, 30, 60, 90):
        fulfilled_order(customer, at(day), [(product, 1, "10.00")])
    return customer


# ---------------------------------------------------------------------------
# Pace / health
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_customer_pace_end_to_end(tenant, regular_customer, at):
    result = services.calculate_customer_pace(tenant_id=tenant.pk, customer_id=regular_customer.pk, as_of=at(130))

    assert result.arpdd == 30
    assert result.days_since_last_order == 40
    assert result.risk_level == PaceRisk.WARNING
    assert result.customer_name == "Cave Reguliere"


@pytest.mark.django_db
def test_customer_pace_uses_tenant_settings(tenant, regular_customer, at):
    update_tenant_settings(
        tenant_id=tenant.pk,
        overrides={"pace": {"warning_multiplier": "1.4", "critical_multiplier": "2"}},
    )

    result = services.calculate_customer_pace(tenant_id=tenant.pk, customer_id=regular_customer.pk, as_of=at(130))

    assert result.risk_level == PaceRisk.ON_TRACK


@pytest.mark.django_db
def test_customer_of_another_tenant_is_not_found(other_tenant, regular_customer, at):
    from customers.models import Customer

    with pytest.raises(Customer.DoesNotExist):
        services.calculate_customer_pace(tenant_id=other_tenant.pk, customer_id=regular_customer.pk, as_of=at(130))


@pytest.mark.django_db
def test_tenant_pace_filters_and_sorts(tenant, regular_customer, make_customer, at):
    make_customer(company_name="Nouveau client")

    everyone = services.calculate_tenant_pace(tenant_id=tenant.pk, as_of=at(130))
    at_risk = services.calculate_tenant_pace(tenant_id=tenant.pk, as_of=at(130), only_at_risk=True)

    assert [r.risk_level for r in everyone] == [PaceRisk.WARNING, PaceRisk.INSUFFICIENT_DATA]
    assert [r.customer_id for r in at_risk] == [str(regular_customer.pk)]


@pytest.mark.django_db
def test_customer_health_with_snapshot(tenant, declining_customer):
    result = services.evaluate_customer_health(
        tenant_id=tenant.pk,
        customer_id=declining_customer.pk,
        as_of=_aware(2024, 7, 15),
        persist_snapshot=True,
    )

    assert result.baseline_average == Decimal("1000.00")
    assert result.current_month_revenue == Decimal("800.00")
    assert result.percentage_change == Decimal("-20.00")
    assert result.risk_level == HealthRisk.CRITICAL
    snapshot = HealthSnapshot.objects.get(customer=declining_customer)
    assert snapshot.snapshot_date == date(2024, 7, 15)
    assert snapshot.health_risk == HealthRisk.CRITICAL
    assert [
        (m["year"], m["month"], Decimal(m["revenue"]))
        for m in snapshot.monthly_revenue
        if m["order_count"]
    ] == [
        (2024, 4, Decimal("1000")),
        (2024, 5, Decimal("1000")),
        (2024, 6, Decimal("1000")),
        (2024, 7, Decimal("800")),
    ]


@pytest.mark.django_db
def test_tenant_health_only_at_risk(tenant, declining_customer, make_customer):
    make_customer()

    results = services.evaluate_tenant_health(tenant_id=tenant.pk, as_of=_aware(2024, 7, 15), only_at_risk=True)

    assert [r.customer_id for r in results] == [str(declining_customer.pk)]


@pytest.mark.django_db
def test_priority_alerts_combine_both_signals(tenant, declining_customer):
    declining_customer.last_activity_at = _aware(2024, 7, 1)
    declining_customer.save()

    alerts = services.build_priority_alerts(tenant_id=tenant.pk, as_of=_aware(2024, 7, 15))

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.account_id == str(declining_customer.pk)
    assert alert.health_risk == HealthRisk.CRITICAL
    assert alert.type == AlertType.HEALTH_CRITICAL
    # health critical (10) + 14 days of inactivity (2)
    assert alert.priority_score == Decimal("12.00")


@pytest.mark.django_db
def test_run_tenant_intelligence_appends_snapshots(tenant, declining_customer, make_customer):
    make_customer()

    first = services.run_tenant_intelligence(tenant_id=tenant.pk, as_of=_aware(2024, 7, 15))
    second = services.run_tenant_intelligence(tenant_id=tenant.pk, as_of=_aware(2024, 7, 16))

    assert first.customer_count == 2
    assert first.snapshots_created == 2
    assert second.snapshots_created == 2
    assert HealthSnapshot.objects.filter(tenant=tenant).count() == 4
    assert [a.account_id for a in first.alerts] == [str(declining_customer.pk)]


@pytest.mark.django_db
def test_run_tenant_intelligence_skips_failing_customer(tenant, declining_customer, make_customer, monkeypatch):
    broken = make_customer(company_name="Donnees corrompues")
    real_calculate_pace = services.calculate_pace

    def flaky(customer_id, *args, **kwargs):
        if customer_id == str(broken.pk):
            raise ArithmeticError("boom")
        return real_calculate_pace(customer_id, *args, **kwargs)

    monkeypatch.setattr(services, "calculate_pace", flaky)

    result = services.run_tenant_intelligence(tenant_id=tenant.pk, as_of=_aware(2024, 7, 15))

    assert result.failed_count == 1
    assert result.failures == [{"customer_id": str(broken.pk), "error": "boom"}]
    assert result.snapshots_created == 1
    assert [a.account_id for a in result.alerts] == [str(declining_customer.pk)]


@pytest.mark.django_db
def test_run_without_snapshots(tenant, declining_customer):
    result = services.run_tenant_intelligence(
        tenant_id=tenant.pk,
        as_of=_aware(2024, 7, 15),
        persist_snapshots=False,
    )

    assert result.snapshots_created == 0
    assert not HealthSnapshot.objects.exists()


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_product(make_product):
    return make_product(name="Chablis 2021", stock=200)


@pytest.mark.django_db
def test_sample_pulls_up_to_threshold_then_require_approval(
    tenant, sales_user, manager_user, customer, sample_product,
):
    def pull(quantity, approved_by=None):
        return services.record_sample_transfer(
            tenant=tenant,
            sales_rep=sales_user,
            customer=customer,
            product=sample_product,
            quantity=quantity,
            transfer_date=date(2024, 3, 12),
            approved_by=approved_by,
        )

    pull(55)
    pull(5)
    with pytest.raises(AllowanceExceeded) as excinfo:
        pull(1)
    approved = pull(1, approved_by=manager_user)

    assert excinfo.value.as_payload() == {"current": 60, "requested": 1, "limit": 60}
    assert approved.approved_by_manager == manager_user
    assert SampleTransfer.objects.filter(sales_rep=sales_user).count() == 3
    assert ProductStock.objects.get(product=sample_product).quantity == 139

    status = services.get_rep_allowance(tenant_id=tenant.pk, sales_rep_id=sales_user.pk, month=date(2024, 3, 1))
    assert status.pulls_this_month == 61
    assert status.remaining_allowance == -1
    assert status.is_over_allowance


@pytest.mark.django_db
def test_refused_pull_leaves_stock_untouched(tenant, sales_user, customer, sample_product):
    with pytest.raises(AllowanceExceeded):
        services.record_sample_transfer(
            tenant=tenant,
            sales_rep=sales_user,
            customer=customer,
            product=sample_product,
            quantity=61,
            transfer_date=date(2024, 3, 12),
        )

    assert ProductStock.objects.get(product=sample_product).quantity == 200
    assert not SampleTransfer.objects.exists()


@pytest.mark.django_db
def test_previous_month_pulls_do_not_count(tenant, sales_user, customer, sample_product):
    services.record_sample_transfer(
        tenant=tenant, sales_rep=sales_user, customer=customer, product=sample_product,
        quantity=60, transfer_date=date(2024, 2, 28),
    )

    transfer = services.record_sample_transfer(
        tenant=tenant, sales_rep=sales_user, customer=customer, product=sample_product,
        quantity=60, transfer_date=date(2024, 3, 1),
    )

    assert transfer.pk is not None


@pytest.mark.django_db
def test_sales_rep_cannot_approve_samples(tenant, sales_user, other_sales_user, customer, sample_product):
    with pytest.raises(ValueError):
        services.record_sample_transfer(
            tenant=tenant,
            sales_rep=sales_user,
            customer=customer,
            product=sample_product,
            quantity=70,
            approved_by=other_sales_user,
        )


@pytest.mark.django_db
def test_sample_for_foreign_product_is_refused(tenant, other_tenant, sales_user, customer, make_product):
    foreign_product = make_product(owner=other_tenant)

    with pytest.raises(ValueError):
        services.record_sample_transfer(
            tenant=tenant, sales_rep=sales_user, customer=customer, product=foreign_product, quantity=1,
        )


@pytest.mark.django_db
def test_threshold_comes_from_tenant_settings(tenant, sales_user, customer, sample_product):
    update_tenant_settings(tenant_id=tenant.pk, overrides={"samples": {"require_manager_approval_over": 10}})

    with pytest.raises(AllowanceExceeded):
        services.record_sample_transfer(
            tenant=tenant, sales_rep=sales_user, customer=customer, product=sample_product, quantity=11,
        )


@pytest.mark.django_db
def test_tasting_feedback_closes_pending_sample(tenant, sales_user, customer, sample_product):
    transfer = services.record_sample_transfer(
        tenant=tenant, sales_rep=sales_user, customer=customer, product=sample_product,
        quantity=2, transfer_date=date(2024, 3, 1),
    )

    pending = services.list_pending_feedback(tenant_id=tenant.pk, as_of=date(2024, 3, 20))
    assert [t.id for t in pending] == [str(transfer.pk)]

    activity = services.record_tasting_feedback(
        transfer=transfer,
        actor=sales_user,
        customer_interest=FollowUpActivity.Interest.HIGH,
        rating=5,
        order_placed=True,
        order_amount="240.00",
    )

    transfer.refresh_from_db()
    customer.refresh_from_db()
    assert transfer.follow_up_activity == activity
    assert activity.order_amount == Decimal("240.00")
    assert customer.last_activity_at is not None
    assert services.list_pending_feedback(tenant_id=tenant.pk, as_of=date(2024, 3, 20)) == []

    with pytest.raises(ValueError):
        services.record_tasting_feedback(transfer=transfer, actor=sales_user)


@pytest.mark.django_db
@pytest.mark.parametrize(
    "values",
    [
        {"customer_interest": "enorme"},
        {"rating": 6},
        {"order_amount": "-1"},
    ],
)
def test_invalid_tasting_feedback_is_rejected(tenant, sales_user, customer, sample_product, values):
    transfer = services.record_sample_transfer(
        tenant=tenant, sales_rep=sales_user, customer=customer, product=sample_product, quantity=1,
    )

    with pytest.raises(ValueError):
        services.record_tasting_feedback(transfer=transfer, actor=sales_user, **values)

    assert not FollowUpActivity.objects.exists()


@pytest.mark.django_db
def test_pending_feedback_disabled_by_settings(tenant, sales_user, customer, sample_product):
    services.record_sample_transfer(
        tenant=tenant, sales_rep=sales_user, customer=customer, product=sample_product,
        quantity=1, transfer_date=date(2024, 3, 1),
    )
    update_tenant_settings(tenant_id=tenant.pk, overrides={"samples": {"track_tasting_feedback": False}})

    assert services.list_pending_feedback(tenant_id=tenant.pk, as_of=date(2024, 3, 20)) == []


@pytest.mark.django_db
def test_rep_feedback_report(tenant, sales_user, customer, sample_product):
    done = services.record_sample_transfer(
        tenant=tenant, sales_rep=sales_user, customer=customer, product=sample_product,
        quantity=1, transfer_date=date(2024, 3, 1),
    )
    services.record_sample_transfer(
        tenant=tenant, sales_rep=sales_user, customer=customer, product=sample_product,
        quantity=1, transfer_date=date(2024, 3, 2),
    )
    services.record_tasting_feedback(transfer=done, actor=sales_user)

    report = services.get_rep_feedback_report(
        tenant_id=tenant.pk,
        sales_rep_id=sales_user.pk,
        start=date(2024, 3, 1),
        end=date(2024, 3, 31),
        as_of=date(2024, 3, 31),
    )

    assert report.total_transfers == 2
    assert report.feedback_rate == Decimal("50.00")


# ---------------------------------------------------------------------------
# Opportunities
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_customer_opportunities(tenant, customer, make_customer, make_product, fulfilled_order, at):
    house_red = make_product(name="Cuvee Maison", price="9.00")
    champagne = make_product(name="Champagne Brut", price="30.00")
    rose = make_product(name="Rose de Provence", price="11.00")
    buyers = [make_customer() for _ in range(3)]
    for buyer in buyers:
        fulfilled_order(buyer, at(10), [(house_red, 10, "9.00"), (champagne, 2, "30.00")])
    fulfilled_order(buyers[0], at(11), [(rose, 1, "11.00")])
    fulfilled_order(customer, at(12), [(house_red, 1, "9.00")])

    result = services.detect_customer_opportunities(tenant_id=tenant.pk, customer_id=customer.pk, as_of=at(20))

    assert [o.product_id for o in result] == [str(champagne.pk)]
    assert result[0].revenue_score == Decimal("180.00")
    assert result[0].customer_count == 3
    assert result[0].penetration_score == Decimal("75.00")

    summary = services.get_opportunity_summary(tenant_id=tenant.pk, customer_id=customer.pk, as_of=at(20))
    assert summary["total"] == 1
    assert summary["by_category"] == {"Vins rouges": 1}


@pytest.mark.django_db
def test_opportunities_reject_unknown_metric(tenant, customer, at):
    with pytest.raises(InvalidConfiguration):
        services.detect_customer_opportunities(
            tenant_id=tenant.pk, customer_id=customer.pk, metric="marge", as_of=at(20),
        )


@pytest.mark.django_db
def test_opportunity_summary_counts_beyond_result_size(tenant, customer, make_customer, make_product, fulfilled_order, at):
    config = IntelligenceConfig.from_mapping({"opportunities": {"result_size": 2}})
    products = [make_product(price="10.00") for _ in range(4)]
    for buyer in [make_customer() for _ in range(3)]:
        fulfilled_order(buyer, at(10), [(p, 1, "10.00") for p in products])

    top = services.detect_customer_opportunities(
        tenant_id=tenant.pk, customer_id=customer.pk, as_of=at(20), config=config,
    )
    summary = services.get_opportunity_summary(
        tenant_id=tenant.pk, customer_id=customer.pk, as_of=at(20), config=config,
    )

    assert len(top) == 2
    assert summary["total"] == 4
    assert summary["by_category"] == {"Vins rouges": 4}


@pytest.mark.django_db
def test_tenant_opportunities_per_active_customer(tenant, customer, make_customer, make_product, fulfilled_order, at):
    house_red = make_product(name="Cuvee Maison", price="9.00")
    champagne = make_product(name="Champagne Brut", price="30.00")
    buyers = [make_customer() for _ in range(3)]
    for buyer in buyers:
        fulfilled_order(buyer, at(10), [(house_red, 10, "9.00"), (champagne, 2, "30.00")])
    fulfilled_order(customer, at(12), [(house_red, 1, "9.00")])
    newcomer = make_customer(company_name="Nouveau client")
    dormant = make_customer(is_active=False)

    by_customer = services.detect_tenant_opportunities(tenant_id=tenant.pk, as_of=at(20))

    assert set(by_customer) == {str(c.pk) for c in [customer, newcomer, *buyers]}
    assert str(dormant.pk) not in by_customer
    assert [o.product_id for o in by_customer[str(newcomer.pk)]] == [str(house_red.pk), str(champagne.pk)]
    assert [o.product_id for o in by_customer[str(customer.pk)]] == [str(champagne.pk)]
    assert by_customer[str(customer.pk)][0].penetration_score == Decimal("60.00")
    assert all(by_customer[str(b.pk)] == [] for b in buyers)
    assert by_customer[str(customer.pk)] == services.detect_customer_opportunities(
        tenant_id=tenant.pk, customer_id=customer.pk, as_of=at(20),
    )


@pytest.mark.django_db
def test_tenant_opportunities_skip_a_failing_customer(tenant, customer, make_customer, make_product, fulfilled_order, at, monkeypatch):
    champagne = make_product(name="Champagne Brut", price="30.00")
    for buyer in [make_customer() for _ in range(3)]:
        fulfilled_order(buyer, at(10), [(champagne, 1, "30.00")])
    real_rank = services.rank_opportunities

    def flaky_rank(customer_id, **kwargs):
        if customer_id == str(customer.pk):
            raise ArithmeticError("boom")
        return real_rank(customer_id, **kwargs)

    monkeypatch.setattr(services, "rank_opportunities", flaky_rank)

    by_customer = services.detect_tenant_opportunities(tenant_id=tenant.pk, as_of=at(20))

    assert str(customer.pk) not in by_customer
    assert len(by_customer) == 3


@pytest.mark.django_db
def test_explicit_config_overrides_tenant_settings(tenant, regular_customer, at):
    config = IntelligenceConfig.from_mapping({"pace": {"minimum_orders_required": 5}})

    result = services.calculate_customer_pace(
        tenant_id=tenant.pk, customer_id=regular_customer.pk, as_of=at(130), config=config,
    )

    assert result.risk_level == PaceRisk.INSUFFICIENT_DATA
