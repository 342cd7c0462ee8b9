"""
Handlers for CloudflareDNSRecord resources
"""

import kopf
import logging

from cloudflare_dns_operator.cloudflare.errors import ProviderError
from cloudflare_dns_operator.models import GROUP, PLURAL, VERSION, parse_spec
from cloudflare_dns_operator.reconcile import (
    ERROR_RETRY_DELAY,
    REAPPLY_INTERVAL,
    Phase,
    apply_record,
    cleanup_record,
    lifecycle_phase,
)
from cloudflare_dns_operator.utils.validation import validate_dns_record

logger = logging.getLogger(__name__)


def run_apply(ctx, name, namespace, spec, status, meta, patch, logger, old=None):
    """Apply a record, translating failures into kopf retry semantics"""
    try:
        validate_dns_record(parse_spec(spec))
    except ValueError as e:
        raise kopf.PermanentError(f"Invalid record: {e}")

    try:
        result = apply_record(
            ctx,
            name,
            namespace,
            spec,
            status,
            generation=meta.get("generation"),
            old=old,
            log=logger,
        )
    except ProviderError as e:
        if e.is_conflict:
            logger.warning(f"Cloudflare reported a conflict for {namespace}/{name}, retrying later: {e}")
            return None
        if e.is_not_found:
            logger.warning(f"Cloudflare object for {namespace}/{name} not found, it may already be gone: {e}")
            return None
        raise kopf.TemporaryError(f"Record management failed: {e}", delay=ERROR_RETRY_DELAY)
    except Exception as e:
        raise kopf.TemporaryError(f"Record management failed: {e}", delay=ERROR_RETRY_DELAY)

    patch.setdefault("status", {}).update(result)
    return result


@kopf.on.create(GROUP, VERSION, PLURAL)
@kopf.on.update(GROUP, VERSION, PLURAL)
@kopf.on.resume(GROUP, VERSION, PLURAL)
def apply_dns_record(spec, status, meta, name, namespace, patch, memo, logger, old=None, **kwargs):
    """Create or replace the Cloudflare record"""
    if lifecycle_phase(meta) is Phase.TERMINATING:
        return
    run_apply(memo.context, name, namespace, spec, status, meta, patch, logger, old=old)


@kopf.timer(GROUP, VERSION, PLURAL, interval=REAPPLY_INTERVAL, initial_delay=REAPPLY_INTERVAL)
def reapply_dns_record(spec, status, meta, name, namespace, patch, memo, logger, **kwargs):
    """Periodically re-apply to undo drift on the Cloudflare side"""
    if lifecycle_phase(meta) is Phase.TERMINATING:
        return
    run_apply(memo.context, name, namespace, spec, status, meta, patch, logger)


@kopf.on.delete(GROUP, VERSION, PLURAL)
def cleanup_dns_record(status, name, namespace, memo, logger, **kwargs):
    """Delete the Cloudflare record before kopf releases the finalizer"""
    cleanup_record(memo.context, name, namespace, status, log=logger)
