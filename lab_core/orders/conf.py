# lab_core/orders/conf.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import time, tzinfo
from zoneinfo import ZoneInfo

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULTS = {
    "AUTO_CANCEL_CUTOFF": "17:00",
    "TIME_ZONE": None,
    "TRACK_AVERAGE_TAT": True,
}


@dataclass(frozen=True)
class LabOrderSettings:
    auto_cancel_cutoff: time
    time_zone: tzinfo
    track_average_tat: bool


def _parse_cutoff(raw) -> time:
    if isinstance(raw, time):
        return raw
    try:
        return time.fromisoformat(str(raw).strip())
    except ValueError:
        raise ImproperlyConfigured(f"LAB_ORDERS['AUTO_CANCEL_CUTOFF'] must be HH:MM[:SS], got {raw!r}")


def lab_orders_settings() -> LabOrderSettings:
    """
    Read LAB_ORDERS from Django settings on every call so override_settings works.
    """
    conf = {**DEFAULTS, **getattr(settings, "LAB_ORDERS", {})}
    tz_name = conf["TIME_ZONE"] or settings.TIME_ZONE
    return LabOrderSettings(
        auto_cancel_cutoff=_parse_cutoff(conf["AUTO_CANCEL_CUTOFF"]),
        time_zone=ZoneInfo(tz_name),
        track_average_tat=bool(conf["TRACK_AVERAGE_TAT"]),
    )
