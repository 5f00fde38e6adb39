from decimal import Decimal

import pytest

from orders.models import Order, OrderLine
from orders.services import cancel_order, create_order, fulfill_order


@pytest.mark.django_db
def test_create_order_computes_lines_and_total(tenant, customer, product, make_product, sales_user):
    other = make_product(price="7.50")

    order = create_order(
        tenant=tenant,
        customer=customer,
        sales_rep=sales_user,
        lines=[
            {"product": product, "quantity": 2},
            {"product": other, "quantity": 4, "discount": "5.00"},
        ],
    )

    assert order.status == Order.Status.PENDING
    assert order.order_number.startswith("CMD-")
    assert order.order_number.endswith("-00001")
    assert order.total == Decimal("50.00")


@pytest.mark.django_db
def test_order_numbers_are_sequential_per_tenant(tenant, other_tenant, customer, product, make_customer, make_product):
    first = create_order(tenant=tenant, customer=customer, lines=[{"product": product, "quantity": 1}])
    second = create_order(tenant=tenant, customer=customer, lines=[{"product": product, "quantity": 1}])
    foreign = create_order(
        tenant=other_tenant,
        customer=make_customer(owner=other_tenant),
        lines=[{"product": make_product(owner=other_tenant), "quantity": 1}],
    )

    assert first.order_number.endswith("-00001")
    assert second.order_number.endswith("-00002")
    assert foreign.order_number.endswith("-00001")


@pytest.mark.django_db
@pytest.mark.parametrize("lines", [[], [{"quantity": 0}], [{"quantity": 1, "unit_price": "-1"}]])
def test_invalid_orders_are_rejected(tenant, customer, product, lines):
    lines = [{"product": product, **line} for line in lines]

    with pytest.raises(ValueError):
        create_order(tenant=tenant, customer=customer, lines=lines)

    assert not Order.objects.exists()


@pytest.mark.django_db
def test_foreign_product_is_rejected(tenant, other_tenant, customer, make_product):
    with pytest.raises(ValueError):
        create_order(
            tenant=tenant,
            customer=customer,
            lines=[{"product": make_product(owner=other_tenant), "quantity": 1}],
        )


@pytest.mark.django_db
def test_fulfilled_order_lines_are_frozen(tenant, customer, product, at):
    order = create_order(tenant=tenant, customer=customer, lines=[{"product": product, "quantity": 1}])

    fulfilled = fulfill_order(order, fulfilled_at=at(3))

    assert fulfilled.status == Order.Status.FULFILLED
    assert fulfilled.fulfilled_at == at(3)
    line = OrderLine.objects.get(order=fulfilled)
    line.order = fulfilled
    line.quantity = 10
    with pytest.raises(ValueError):
        line.save()
    with pytest.raises(ValueError):
        fulfill_order(fulfilled)


@pytest.mark.django_db
def test_cancelled_order_cannot_be_fulfilled(tenant, customer, product):
    order = create_order(tenant=tenant, customer=customer, lines=[{"product": product, "quantity": 1}])

    cancelled = cancel_order(order, reason="Client injoignable")

    assert cancelled.status == Order.Status.CANCELLED
    assert "Client injoignable" in cancelled.notes
    with pytest.raises(ValueError):
        fulfill_order(cancelled)
    with pytest.raises(ValueError):
        cancel_order(cancelled)
