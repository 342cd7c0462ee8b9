"""
Apply and cleanup of CloudflareDNSRecord resources
"""

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from cloudflare_dns_operator.cloudflare.client import CloudflareClient
from cloudflare_dns_operator.cloudflare.errors import ProviderError, RecordNotFoundError
from cloudflare_dns_operator.conditions import (
    REASON_MISSING_CONTENT,
    REASON_MISSING_ZONE,
    error_condition,
    pending_condition,
    success_condition,
)
from cloudflare_dns_operator.dns_check import DnsPropagationChecker
from cloudflare_dns_operator.models import (
    DnsRecordStatus,
    parse_spec,
    parse_status,
    record_key,
)
from cloudflare_dns_operator.references import resolve_zone_id
from cloudflare_dns_operator.services import MissingIngressError, resolve_content
from cloudflare_dns_operator.state import DnsMatchState
from cloudflare_dns_operator.utils.validation import validate_dns_record

logger = logging.getLogger(__name__)

FINALIZER = "dns.cloudflare.com/delete-dns-record"
REAPPLY_INTERVAL = 300.0
ERROR_RETRY_DELAY = 15


@dataclass
class OperatorContext:
    """State shared by the handlers and the DNS propagation checker"""

    kube: Any
    provider: CloudflareClient
    match_state: DnsMatchState
    checker: DnsPropagationChecker

    @property
    def dns_check_enabled(self) -> bool:
        return self.checker.enabled


class Phase(Enum):
    ACTIVE = "Active"
    TERMINATING = "Terminating"


def lifecycle_phase(meta: Mapping[str, Any]) -> Phase:
    """Objects with a deletion timestamp only await cleanup and finalizer removal"""
    if meta.get("deletionTimestamp"):
        return Phase.TERMINATING
    return Phase.ACTIVE


def _failure(status: DnsRecordStatus, reason: str, message: str, generation, now) -> Dict[str, Any]:
    condition = error_condition(status.conditions, reason, message, generation, now)
    return {"conditions": [condition.model_dump(by_alias=True, exclude_none=True)]}


def remove_renamed_record(
    ctx: OperatorContext,
    name: str,
    previous_name: Optional[str],
    zone_id: Optional[str],
    log: logging.Logger = logger,
) -> bool:
    """Delete the record created under a previous DNS name of this resource"""
    if not previous_name or previous_name == name or not zone_id:
        return False

    log.info(f"DNS name changed from {previous_name} to {name}, removing old record")
    try:
        ctx.provider.delete_record_by_name(zone_id, previous_name)
    except RecordNotFoundError:
        log.warning(f"Old record {previous_name} no longer exists in zone {zone_id}")
        return False
    return True


def apply_record(
    ctx: OperatorContext,
    name: str,
    namespace: str,
    spec: Mapping[str, Any],
    status: Optional[Mapping[str, Any]],
    generation: Optional[int] = None,
    old: Optional[Mapping[str, Any]] = None,
    log: logging.Logger = logger,
    now: Optional[Callable[[], str]] = None,
) -> Dict[str, Any]:
    """Converge Cloudflare towards the resource and return the status to patch.

    Raises ValueError for an invalid spec and ProviderError / requests errors
    when the Cloudflare API fails.
    """
    record = parse_spec(spec)
    validate_dns_record(record)
    current = parse_status(status)
    key = record_key(namespace, name)

    log.info(f"Reconcile request: CloudflareDNSRecord {namespace}/{name}")

    previous_name = ((old or {}).get("spec") or {}).get("name") or current.record_name
    previous_zone_id = current.zone_id
    if previous_name and previous_name != record.name and previous_zone_id is None:
        previous_zone_id = resolve_zone_id(record.zone, namespace, ctx.kube, ctx.provider)
    remove_renamed_record(ctx, record.name, previous_name, previous_zone_id, log)

    try:
        content = resolve_content(record, namespace, ctx.kube)
    except MissingIngressError as e:
        log.warning(str(e))
        content = None
    if content is None:
        return _failure(
            current, REASON_MISSING_CONTENT, "Unable to resolve the record content", generation, now
        )

    zone_id = resolve_zone_id(record.zone, namespace, ctx.kube, ctx.provider)
    if zone_id is None:
        return _failure(
            current, REASON_MISSING_ZONE, "Unable to resolve the cloudflare zone", generation, now
        )

    log.debug(f"Updating dns record for CloudflareDNSRecord {namespace}/{name}")
    created = ctx.provider.create_or_replace_and_wait(
        zone_id,
        record.name,
        record.record_type.value,
        content,
        ttl=record.ttl,
        proxied=record.proxied,
        comment=record.comment,
        tags=record.tags,
    )

    pending = ctx.dns_check_enabled and not ctx.match_state.matches(key)
    if pending:
        condition = pending_condition(current.conditions, generation, now)
    else:
        condition = success_condition(current.conditions, generation, now)

    if current.record_id is None and ctx.dns_check_enabled:
        ctx.checker.request_check(name, namespace)

    return DnsRecordStatus(
        record_id=created.id,
        zone_id=zone_id,
        record_name=record.name,
        pending=pending,
        conditions=[condition],
    ).to_patch()


def cleanup_record(
    ctx: OperatorContext,
    name: str,
    namespace: str,
    status: Optional[Mapping[str, Any]],
    log: logging.Logger = logger,
) -> bool:
    """Delete the Cloudflare record created for the resource.

    Uses the identifiers persisted in the status since the referenced secrets or
    config maps may already be gone. Never raises for provider failures so the
    finalizer can be removed; returns whether the record is known to be gone.
    """
    log.info(f"Delete request: CloudflareDNSRecord {namespace}/{name}")
    ctx.match_state.forget(record_key(namespace, name))

    current = parse_status(status)
    if not current.record_id or not current.zone_id:
        log.error(
            f"No cloudflare record id stored for {namespace}/{name}. "
            "If a record was created, please delete it manually"
        )
        return False

    try:
        ctx.provider.delete_record(current.zone_id, current.record_id)
    except ProviderError as e:
        if e.is_not_found:
            log.warning(f"Cloudflare record {current.record_id} is already gone")
            return True
        log.error(f"Unable to delete dns record for cloudflare: {e}")
    except requests.RequestException as e:
        log.error(f"Unable to delete dns record for cloudflare: {e}")
    else:
        return True

    log.error(
        f"This means we are unable to delete the dns record {current.record_name} "
        f"(id {current.record_id}, zone {current.zone_id}), please do so manually"
    )
    return False
