"""
Ready condition bookkeeping for CloudflareDNSRecord status
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from cloudflare_dns_operator.models import Condition

READY = "Ready"

REASON_APPLIED = "RecordApplied"
REASON_PENDING = "Pending"
REASON_MISSING_CONTENT = "MissingContent"
REASON_MISSING_ZONE = "MissingZone"


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def last_ready_condition(conditions: Optional[Iterable[Condition]]) -> Optional[Condition]:
    for condition in conditions or []:
        if condition.type == READY:
            return condition
    return None


def _ready_condition(
    conditions: Optional[Iterable[Condition]],
    ready: bool,
    reason: str,
    message: str,
    observed_generation: Optional[int],
    now: Optional[Callable[[], str]],
) -> Condition:
    # The transition time only moves when the Ready value flips
    previous = last_ready_condition(conditions)
    if previous is not None and previous.is_true == ready:
        last_transition_time = previous.last_transition_time
    else:
        last_transition_time = (now or utc_now)()

    return Condition(
        type=READY,
        status="True" if ready else "False",
        reason=reason,
        message=message,
        last_transition_time=last_transition_time,
        observed_generation=observed_generation,
    )


def error_condition(
    conditions: Optional[Iterable[Condition]],
    reason: str,
    message: str,
    observed_generation: Optional[int] = None,
    now: Optional[Callable[[], str]] = None,
) -> Condition:
    return _ready_condition(conditions, False, reason, message, observed_generation, now)


def success_condition(
    conditions: Optional[Iterable[Condition]],
    observed_generation: Optional[int] = None,
    now: Optional[Callable[[], str]] = None,
) -> Condition:
    return _ready_condition(
        conditions, True, REASON_APPLIED, "DNS record ready", observed_generation, now
    )


def pending_condition(
    conditions: Optional[Iterable[Condition]],
    observed_generation: Optional[int] = None,
    now: Optional[Callable[[], str]] = None,
) -> Condition:
    return error_condition(
        conditions,
        REASON_PENDING,
        "DNS record pending, propagation may take time",
        observed_generation,
        now,
    )
