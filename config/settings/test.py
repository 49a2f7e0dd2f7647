# config/settings/test.py
from .base import *  # noqa

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

LAB_ORDERS = {
    "AUTO_CANCEL_CUTOFF": "17:00",
    "TIME_ZONE": "Asia/Manila",
    "TRACK_AVERAGE_TAT": True,
}

LOG_DIR = None
