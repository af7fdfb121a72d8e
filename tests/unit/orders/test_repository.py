"""Unit tests for OrderDjangoRepository.

Covers:
- get_by_id for existing, unknown and malformed ids.
- Seller scoping of list_for_seller.
- conditional_update: version guard, patch columns, history append.
- recent_history ordering and limit.
- DatabaseError -> RepositoryUnavailable.
"""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest
from django.db import DatabaseError
from django.utils import timezone

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.exceptions import RepositoryUnavailable
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories import HistoryEntry, OrderDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return OrderDjangoRepository()


def entry(old, new, **kwargs):
    return HistoryEntry(old_status=old, new_status=new, **kwargs)


# ===========================================================================
# Reads
# ===========================================================================


class TestGetById:
    def test_returns_order(self, repo, make_order):
        order = make_order()
        assert repo.get_by_id(str(order.id)) == order

    def test_unknown_id_returns_none(self, repo):
        assert repo.get_by_id(str(uuid4())) is None

    def test_malformed_id_returns_none(self, repo):
        assert repo.get_by_id("not-a-uuid") is None

    def test_database_error_is_translated(self, repo):
        with patch.object(Order.objects, "select_related", side_effect=DatabaseError):
            with pytest.raises(RepositoryUnavailable):
                repo.get_by_id(str(uuid4()))


class TestListForSeller:
    def test_only_seller_orders(self, repo, make_order, other_seller):
        mine = make_order()
        make_order(owner=other_seller)

        assert list(repo.list_for_seller(mine.seller_id)) == [mine]

    def test_list_with_filters(self, repo, make_order):
        make_order(OrderStatus.PENDING)
        shipped = make_order(OrderStatus.SHIPPED)

        assert list(repo.list({"status": OrderStatus.SHIPPED})) == [shipped]


# ===========================================================================
# Conditional update
# ===========================================================================


class TestConditionalUpdate:
    def test_applies_status_patch_and_history(self, repo, make_order, seller):
        order = make_order(OrderStatus.PENDING, version=3)
        now = timezone.now()

        updated = repo.conditional_update(
            order.id,
            3,
            OrderStatus.CONFIRMED,
            {"confirmed_at": now, "payment_status": PaymentStatus.PENDING},
            entry(OrderStatus.PENDING, OrderStatus.CONFIRMED, actor_id=seller.pk),
        )

        assert updated.status == OrderStatus.CONFIRMED
        assert updated.version == 4
        assert updated.confirmed_at == now
        assert updated.updated_at >= order.updated_at

        history = OrderStatusHistory.objects.get(order=order)
        assert history.old_status == OrderStatus.PENDING
        assert history.new_status == OrderStatus.CONFIRMED
        assert history.actor_id == seller.pk

    def test_stale_version_writes_nothing(self, repo, make_order):
        order = make_order(OrderStatus.PENDING, version=3)

        result = repo.conditional_update(
            order.id,
            2,
            OrderStatus.CONFIRMED,
            {},
            entry(OrderStatus.PENDING, OrderStatus.CONFIRMED),
        )

        assert result is None
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert order.version == 3
        assert not OrderStatusHistory.objects.filter(order=order).exists()

    def test_second_writer_with_same_version_loses(self, repo, make_order):
        order = make_order(OrderStatus.PENDING, version=3)
        args = (
            order.id,
            3,
            OrderStatus.CONFIRMED,
            {},
            entry(OrderStatus.PENDING, OrderStatus.CONFIRMED),
        )

        first = repo.conditional_update(*args)
        second = repo.conditional_update(*args)

        assert first.version == 4
        assert second is None
        order.refresh_from_db()
        assert order.version == 4
        assert OrderStatusHistory.objects.filter(order=order).count() == 1

    def test_history_failure_rolls_back_status(self, repo, make_order):
        order = make_order(OrderStatus.PENDING)

        with patch.object(
            OrderStatusHistory.objects, "create", side_effect=DatabaseError("disk full")
        ):
            with pytest.raises(RepositoryUnavailable):
                repo.conditional_update(
                    order.id,
                    0,
                    OrderStatus.CONFIRMED,
                    {},
                    entry(OrderStatus.PENDING, OrderStatus.CONFIRMED),
                )

        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert order.version == 0


class TestRecentHistory:
    def test_last_entries_oldest_first(self, repo, make_order):
        order = make_order(OrderStatus.DRAFT)
        path = [
            OrderStatus.PENDING,
            OrderStatus.CONFIRMED,
            OrderStatus.PROCESSING,
            OrderStatus.MANUFACTURING,
            OrderStatus.READY_TO_SHIP,
            OrderStatus.SHIPPED,
            OrderStatus.IN_TRANSIT,
        ]
        previous = OrderStatus.DRAFT
        for version, status in enumerate(path):
            repo.conditional_update(order.id, version, status, {}, entry(previous, status))
            previous = status

        history = repo.recent_history(order.id, 5)

        assert [h.new_status for h in history] == path[-5:]

    def test_empty_history(self, repo, make_order):
        assert repo.recent_history(make_order().id, 5) == []
