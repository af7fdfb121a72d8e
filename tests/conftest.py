from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from modules.orders.constants import OrderStatus


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def seller(django_user_model):
    return django_user_model.objects.create_user(
        username="acme-manufacturing", password="testpass123"
    )


@pytest.fixture()
def other_seller(django_user_model):
    return django_user_model.objects.create_user(
        username="globex-industrial", password="testpass123"
    )


@pytest.fixture()
def buyer(django_user_model):
    return django_user_model.objects.create_user(
        username="initech-purchasing", password="testpass123"
    )


@pytest.fixture()
def seller_client(api_client, seller):
    api_client.force_authenticate(user=seller)
    return api_client


@pytest.fixture()
def make_order(seller, buyer):
    """Factory for orders owned by ``seller``.

    ``version`` and ``created_at`` are written with ``update()`` so the
    test controls them independently of ``auto_now_add``.
    """

    def _make(
        status=OrderStatus.PENDING,
        *,
        version=0,
        hours_ago=None,
        with_buyer=True,
        owner=None,
    ):
        from modules.orders.models import Order

        order = Order.objects.create(
            seller=owner or seller,
            buyer=buyer if with_buyer else None,
            status=status,
        )
        changes = {}
        if version:
            changes["version"] = version
        if hours_ago is not None:
            changes["created_at"] = timezone.now() - timedelta(hours=hours_ago)
        if changes:
            Order.objects.filter(pk=order.pk).update(**changes)
            order.refresh_from_db()
        return order

    return _make
