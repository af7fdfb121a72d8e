"""Order repositories package."""

from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.repositories.interfaces import HistoryEntry, IOrderRepository

__all__ = ["HistoryEntry", "IOrderRepository", "OrderDjangoRepository"]
