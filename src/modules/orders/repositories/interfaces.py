"""Order repository interface.

Extends ``IRepository[Order]`` with the write protocol of the order
lifecycle: a single compare-and-swap update guarded by ``version`` that
also appends one status-history entry.

The Service Layer depends exclusively on this contract (DIP).  Any store
able to express ``UPDATE ... WHERE id = ? AND version = ?`` atomically
can implement it.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderStatusHistory


@dataclass(frozen=True)
class HistoryEntry:
    """One status-history record to append with a conditional update."""

    old_status: Optional[str]
    new_status: str
    actor_id: Any = None
    note: str = ""
    reason: str = ""


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    Implementations raise ``RepositoryUnavailable`` when the store
    cannot be reached.
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order, or ``None`` for unknown or malformed ids."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List orders with optional ORM-style filters."""

    @abstractmethod
    def list_for_seller(self, seller_id: Any) -> QuerySet:
        """List the orders owned by *seller_id*."""

    @abstractmethod
    def conditional_update(
        self,
        order_id: Any,
        expected_version: int,
        new_status: str,
        patch: Dict[str, Any],
        history: HistoryEntry,
    ) -> Optional[Order]:
        """Atomically apply a transition if ``version == expected_version``.

        Sets ``status`` and every column in *patch*, increments
        ``version`` and appends *history*, all or nothing.  Returns the
        refreshed order, or ``None`` when no row matched (another writer
        committed first).
        """

    @abstractmethod
    def recent_history(
        self, order_id: Any, limit: int
    ) -> List[OrderStatusHistory]:
        """Return the last *limit* history entries, oldest first."""
