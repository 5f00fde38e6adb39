from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from accounts.models import User
from catalog.models import Category, Product
from customers.models import Customer
from orders.services import create_order, fulfill_order
from stock.models import ProductStock
from tenants.models import Tenant, TenantMembership

EPOCH = datetime(2024, 1, 1, 10, 0)


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
    )


@pytest.fixture
def manager_user(db):
    return User.objects.create_user(
        email="manager@test.com",
        password="testpass123",
        first_name="Manager",
        last_name="User",
        role=User.Role.MANAGER,
    )


@pytest.fixture
def sales_user(db):
    return User.objects.create_user(
        email="sales@test.com",
        password="testpass123",
        first_name="Sales",
        last_name="User",
        role=User.Role.SALES,
    )


@pytest.fixture
def other_sales_user(db):
    return User.objects.create_user(
        email="sales2@test.com",
        password="testpass123",
        first_name="Autre",
        last_name="Commercial",
        role=User.Role.SALES,
    )


@pytest.fixture
def tenant(db):
    return Tenant.objects.create(
        name="Cave Test",
        code="CAVE-TEST",
        legal_name="Cave Test SARL",
        currency="EUR",
    )


@pytest.fixture
def other_tenant(db):
    return Tenant.objects.create(
        name="Distributeur Concurrent",
        code="DIST-002",
        legal_name="Distributeur Concurrent SAS",
        currency="EUR",
    )


@pytest.fixture
def tenant_admin(tenant, admin_user):
    return TenantMembership.objects.create(tenant=tenant, user=admin_user, is_default=True)


@pytest.fixture
def tenant_manager(tenant, manager_user):
    return TenantMembership.objects.create(tenant=tenant, user=manager_user, is_default=True)


@pytest.fixture
def tenant_sales(tenant, sales_user):
    return TenantMembership.objects.create(tenant=tenant, user=sales_user, is_default=True)


@pytest.fixture
def category(tenant):
    return Category.objects.create(tenant=tenant, name="Vins rouges", slug="vins-rouges")


@pytest.fixture
def make_product(tenant, category):
    """Create a product of ``tenant`` with some stock on hand."""
    counter = {"n": 0}

    def _make(name=None, price="20.00", stock=100, is_active=True, owner=None, product_category=category):
        counter["n"] += 1
        owner = owner or tenant
        product = Product.objects.create(
            tenant=owner,
            category=product_category if owner == tenant else None,
            name=name or f"Produit {counter['n']}",
            sku=f"SKU-{counter['n']:03d}",
            unit_price=Decimal(price),
            is_active=is_active,
        )
        ProductStock.objects.create(tenant=owner, product=product, quantity=stock)
        return product

    return _make


@pytest.fixture
def product(make_product):
    return make_product(name="Bordeaux Superieur 2019", price="12.50")


@pytest.fixture
def make_customer(tenant):
    counter = {"n": 0}

    def _make(company_name=None, owner=None, **extra):
        counter["n"] += 1
        return Customer.objects.create(
            tenant=owner or tenant,
            company_name=company_name or f"Client {counter['n']}",
            **extra,
        )

    return _make


@pytest.fixture
def customer(make_customer):
    return make_customer(company_name="Bistrot du Port", contact_name="Jean Dupont")


@pytest.fixture
def at():
    """``at(30)`` is an aware datetime 30 days after the reference date."""

    def _at(days=0, hours=0):
        return timezone.make_aware(EPOCH + timedelta(days=days, hours=hours))

    return _at


@pytest.fixture
def fulfilled_order(tenant, sales_user):
    """Create and fulfil an order through the order services."""

    def _make(customer, fulfilled_at, items):
        order = create_order(
            tenant=tenant,
            customer=customer,
            sales_rep=sales_user,
            lines=[
                {"product": product, "quantity": quantity, "unit_price": price}
                for product, quantity, price in items
            ],
        )
        return fulfill_order(order, fulfilled_at=fulfilled_at, actor=sales_user)

    return _make
