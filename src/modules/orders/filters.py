import django_filters

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    payment_status = django_filters.ChoiceFilter(choices=PaymentStatus.choices)
    buyer = django_filters.NumberFilter(field_name="buyer_id")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = [
            "status",
            "payment_status",
            "buyer",
            "start_date",
            "end_date",
        ]
