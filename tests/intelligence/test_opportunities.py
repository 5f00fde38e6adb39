from decimal import Decimal

import pytest

from intelligence.config import OpportunityConfig
from intelligence.exceptions import InvalidConfiguration
from intelligence.opportunities import rank_opportunities, summarize_opportunities
from intelligence.records import ProductRecord, ProductSaleLine


def _product(pk, *, active=True, category="Vins"):
    return ProductRecord(id=pk, tenant_id="t-1", is_active=active, name=pk.upper(), category=category)


def _sales(product_id, *buyers, quantity=1, total="10.00"):
    return [
        ProductSaleLine(product_id=product_id, customer_id=buyer, quantity=quantity, line_total=Decimal(total))
        for buyer in buyers
    ]


CONFIG = OpportunityConfig(minimum_customer_threshold=2)


def _rank(products, sales, purchased=(), **kwargs):
    kwargs.setdefault("config", CONFIG)
    kwargs.setdefault("total_active_customers", 10)
    return rank_opportunities(
        "me",
        products=products,
        sales=sales,
        purchased_product_ids=purchased,
        **kwargs,
    )


def test_products_bought_by_the_customer_are_never_suggested():
    products = [_product("best"), _product("other")]
    sales = _sales("best", "a", "b", "c", total="1000.00") + _sales("other", "a", "b") + _sales("best", "me")

    result = _rank(products, sales, purchased={"best"})

    assert [o.product_id for o in result] == ["other"]


def test_ranking_by_revenue_volume_and_penetration():
    products = [_product("p1"), _product("p2"), _product("p3")]
    sales = (
        _sales("p1", "a", "b", quantity=1, total="500.00")
        + _sales("p2", "a", "b", "c", quantity=2, total="50.00")
        + _sales("p3", "a", "b", quantity=10, total="20.00")
    )

    by_revenue = _rank(products, sales, metric="revenue")
    by_volume = _rank(products, sales, metric="volume")
    by_penetration = _rank(products, sales, metric="penetration")

    assert [o.product_id for o in by_revenue] == ["p1", "p2", "p3"]
    assert [o.product_id for o in by_volume] == ["p3", "p2", "p1"]
    assert [o.product_id for o in by_penetration] == ["p2", "p1", "p3"]
    assert by_revenue[0].revenue_score == Decimal("1000.00")
    assert by_volume[0].volume_score == 20
    assert by_penetration[0].penetration_score == Decimal("30.00")
    assert [o.rank for o in by_revenue] == [1, 2, 3]


def test_ties_break_on_buyer_count_then_product_id():
    products = [_product("b"), _product("a"), _product("c")]
    sales = (
        _sales("b", "x", "y", total="50.00")
        + _sales("a", "x", "y", total="50.00")
        + _sales("c", "x", "y", total="50.00")
        + _sales("c", "z", total="0.00")
    )

    result = _rank(products, sales, metric="revenue")

    assert [o.product_id for o in result] == ["c", "a", "b"]


def test_ranking_is_deterministic():
    products = [_product(f"p{n}") for n in range(6)]
    sales = []
    for n in range(6):
        sales += _sales(f"p{n}", "a", "b", total="10.00")

    first = _rank(products, list(reversed(sales)))
    second = _rank(list(reversed(products)), sales)

    assert first == second
    assert [o.product_id for o in first] == [f"p{n}" for n in range(6)]


def test_products_below_buyer_threshold_are_dropped():
    products = [_product("popular"), _product("niche")]
    sales = _sales("popular", "a", "b") + _sales("niche", "a", "a", "a", total="900.00")

    result = _rank(products, sales)

    assert [o.product_id for o in result] == ["popular"]


def test_inactive_products_are_excluded_unless_configured():
    products = [_product("live"), _product("retired", active=False)]
    sales = _sales("live", "a", "b") + _sales("retired", "a", "b", total="99.00")

    default = _rank(products, sales)
    included = _rank(
        products,
        sales,
        config=OpportunityConfig(minimum_customer_threshold=2, include_inactive_products=True),
    )

    assert [o.product_id for o in default] == ["live"]
    assert [o.product_id for o in included] == ["retired", "live"]


def test_result_is_truncated():
    products = [_product(f"p{n}") for n in range(5)]
    sales = []
    for n in range(5):
        sales += _sales(f"p{n}", "a", "b", total=f"{n + 1}0.00")

    assert len(_rank(products, sales, limit=2)) == 2
    assert len(_rank(products, sales, config=OpportunityConfig(minimum_customer_threshold=2, result_size=3))) == 3


def test_penetration_is_zero_without_active_customers():
    result = _rank([_product("p1")], _sales("p1", "a", "b"), total_active_customers=0)

    assert result[0].penetration_score == Decimal("0.00")


def test_unknown_metric_is_rejected():
    with pytest.raises(InvalidConfiguration):
        _rank([_product("p1")], [], metric="margin")


def test_default_metric_comes_from_config():
    products = [_product("p1"), _product("p2")]
    sales = _sales("p1", "a", "b", quantity=1, total="100.00") + _sales("p2", "a", "b", quantity=5, total="1.00")

    result = _rank(products, sales, config=OpportunityConfig(minimum_customer_threshold=2, default_metric="volume"))

    assert result[0].product_id == "p2"
    assert result[0].ranking_metric == "volume"


def test_summary_groups_by_category():
    products = [_product("p1", category="Vins"), _product("p2", category=""), _product("p3", category="Vins")]
    sales = _sales("p1", "a", "b", total="30.00") + _sales("p2", "a", "b", total="20.00") + _sales("p3", "a", "b")

    summary = summarize_opportunities(_rank(products, sales))

    assert summary["total"] == 3
    assert summary["by_category"] == {"Sans categorie": 1, "Vins": 2}
    assert summary["top"]["product_id"] == "p1"
    assert summarize_opportunities([])["top"] is None
