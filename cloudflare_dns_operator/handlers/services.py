"""
Handlers for Services backing CloudflareDNSRecords
"""

import kopf
import logging

from cloudflare_dns_operator.models import parse_spec
from cloudflare_dns_operator.services import is_suitable_service, references_service

logger = logging.getLogger(__name__)


def records_for_service(kube, name, namespace):
    """(name, namespace) of every record whose content comes from the service"""
    refs = []
    for resource in kube.list_dns_records():
        meta = resource.get("metadata") or {}
        record_namespace = meta.get("namespace")
        try:
            spec = parse_spec(resource.get("spec"))
        except ValueError:
            continue
        if references_service(spec, record_namespace, name, namespace):
            refs.append((meta.get("name"), record_namespace))
    return refs


def _is_public(spec, **_):
    return is_suitable_service(spec)


@kopf.on.event("v1", "services", when=_is_public)
def service_changed(event, name, namespace, memo, logger, **kwargs):
    """Reconcile records pointing at a LoadBalancer / externalIPs service"""
    if event.get("type") is None:
        # Initial listing; records are resumed on their own
        return

    kube = memo.context.kube
    for record_name, record_namespace in records_for_service(kube, name, namespace):
        logger.info(f"Service {namespace}/{name} changed, reconciling {record_namespace}/{record_name}")
        kube.request_reconcile(record_name, record_namespace)
