import decimal

import django.db.models.deletion
import uuid6
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [
    ("draft", "Draft"),
    ("pending", "Pending"),
    ("confirmed", "Confirmed"),
    ("processing", "Processing"),
    ("manufacturing", "Manufacturing"),
    ("ready_to_ship", "Ready to ship"),
    ("shipped", "Shipped"),
    ("out_for_delivery", "Out for delivery"),
    ("in_transit", "In transit"),
    ("delivered", "Delivered"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
    ("refunded", "Refunded"),
    ("disputed", "Disputed"),
]

PAYMENT_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("partial", "Partial"),
    ("paid", "Paid"),
    ("overdue", "Overdue"),
    ("refunded", "Refunded"),
]


def _timestamp():
    return models.DateTimeField(blank=True, null=True)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order_number",
                    models.CharField(editable=False, max_length=20, unique=True),
                ),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES, default="pending", max_length=20
                    ),
                ),
                ("version", models.PositiveIntegerField(default=0)),
                (
                    "total_amount",
                    models.DecimalField(
                        decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12
                    ),
                ),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("confirmed_at", _timestamp()),
                ("processing_started_at", _timestamp()),
                ("manufacturing_started_at", _timestamp()),
                ("ready_to_ship_at", _timestamp()),
                ("completed_at", _timestamp()),
                ("cancelled_at", _timestamp()),
                ("refunded_at", _timestamp()),
                ("disputed_at", _timestamp()),
                ("shipped_at", _timestamp()),
                ("estimated_delivery", models.DateField(blank=True, null=True)),
                ("out_for_delivery_at", _timestamp()),
                ("in_transit_at", _timestamp()),
                ("delivered_at", _timestamp()),
                ("actual_delivery", _timestamp()),
                (
                    "payment_status",
                    models.CharField(
                        choices=PAYMENT_STATUS_CHOICES, default="pending", max_length=20
                    ),
                ),
                ("paid_date", _timestamp()),
                ("refund_date", _timestamp()),
                (
                    "delivery_time_hours",
                    models.PositiveIntegerField(blank=True, null=True),
                ),
                (
                    "processing_time_hours",
                    models.PositiveIntegerField(blank=True, null=True),
                ),
                ("cancellation_reason", models.TextField(blank=True, default="")),
                ("dispute_reason", models.TextField(blank=True, default="")),
                (
                    "buyer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="purchase_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "cancelled_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "disputed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["seller", "status"], name="orders_seller_status_idx"
                    ),
                    models.Index(
                        fields=["buyer", "status"], name="orders_buyer_status_idx"
                    ),
                    models.Index(fields=["-created_at"], name="orders_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "old_status",
                    models.CharField(
                        blank=True, choices=STATUS_CHOICES, max_length=20, null=True
                    ),
                ),
                (
                    "new_status",
                    models.CharField(choices=STATUS_CHOICES, max_length=20),
                ),
                ("note", models.TextField(blank=True, default="")),
                ("reason", models.TextField(blank=True, default="")),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="status_history",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_status_history",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["order", "created_at"], name="osh_order_created_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderNotification",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("type", models.CharField(default="order_status", max_length=30)),
                ("title", models.CharField(max_length=200)),
                ("message", models.TextField(max_length=1000)),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("medium", "Medium"),
                            ("high", "High"),
                        ],
                        default="low",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("sent", "Sent"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("sent_at", _timestamp()),
                ("error_message", models.TextField(blank=True, default="")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="orders.order",
                    ),
                ),
                (
                    "recipient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="order_notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "order_notifications",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["recipient", "status"],
                        name="onotif_recipient_status_idx",
                    ),
                ],
            },
        ),
    ]
