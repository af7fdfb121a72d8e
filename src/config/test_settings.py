"""Settings for the test suite: SQLite, eager Celery, relaxed throttles."""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

from config.settings import *  # noqa: E402,F401,F403
from config.settings import REST_FRAMEWORK  # noqa: E402

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

ORDERS_NOTIFICATION_SINK = "modules.orders.notifications.DjangoNotificationSink"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_RATES": {
        "anon": "10000/minute",
        "user": "10000/minute",
        "order_status_update": "10000/minute",
        "order_listing": "10000/minute",
    },
}
