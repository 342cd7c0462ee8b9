"""
Public IP lookup for LoadBalancer / externalIPs services
"""

import ipaddress
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from cloudflare_dns_operator.models import (
    DnsRecordSpec,
    LiteralValue,
    RecordType,
    ServiceContent,
)

logger = logging.getLogger(__name__)

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class MissingIngressError(Exception):
    """A LoadBalancer service has not been assigned an ingress address yet"""


def is_suitable_service(spec: Optional[Dict[str, Any]]) -> bool:
    """Only services with a public address can back a DNS record"""
    if not spec:
        return False
    return spec.get("type") == "LoadBalancer" or bool(spec.get("externalIPs"))


def _parse_ips(values) -> List[IpAddress]:
    ips = []
    for value in values or []:
        try:
            ips.append(ipaddress.ip_address(value))
        except ValueError:
            logger.debug(f"Ignoring unparseable address {value!r}")
    return ips


def select_ip(
    ips: Sequence[IpAddress],
    record_type: Optional[RecordType],
    name: str = "",
    namespace: str = "",
) -> Optional[IpAddress]:
    """Pick one address, honouring the address family the record type asks for"""
    if not ips:
        logger.warning(f"Service {namespace}/{name} has no lb/external ip")
        return None

    wanted = {RecordType.A: 4, RecordType.AAAA: 6}.get(record_type)

    if len(ips) == 1:
        ip = ips[0]
        if wanted is not None and ip.version != wanted:
            logger.warning(f"Expected ipv{wanted} address, but found ipv{ip.version} address")
        return ip

    if wanted is None:
        logger.warning(
            f"Service {namespace}/{name} has multiple load balancer ips, "
            "using the first ipv4 one or the first one if none are ipv4"
        )
        wanted = 4

    return next((ip for ip in ips if ip.version == wanted), ips[0])


def public_ip_from_service(
    kube, name: str, namespace: str, record_type: Optional[RecordType]
) -> Optional[IpAddress]:
    svc = kube.read_service(name, namespace)
    if svc is None:
        return None

    spec = svc.get("spec")
    if not spec:
        logger.warning(f"Service {namespace}/{name} has no spec")
        return None

    if spec.get("type") == "LoadBalancer":
        ingress = ((svc.get("status") or {}).get("loadBalancer") or {}).get("ingress")
        if not ingress:
            raise MissingIngressError(f"no load balancer ip found for service {namespace}/{name}")
        ips = _parse_ips(entry.get("ip") for entry in ingress)
        return select_ip(ips, record_type, name, namespace)

    external_ips = spec.get("externalIPs")
    if external_ips is not None:
        return select_ip(_parse_ips(external_ips), record_type, name, namespace)

    logger.warning(f"Service {namespace}/{name} is not a LoadBalancer and has no external IPs")
    return None


def resolve_content(spec: DnsRecordSpec, namespace: str, kube) -> Optional[str]:
    """The literal record content, or the public IP of the referenced service"""
    content = spec.content
    if isinstance(content, LiteralValue):
        return content.value

    if isinstance(content, ServiceContent):
        selector = content.service
        service_namespace = selector.namespace or namespace
        ip = public_ip_from_service(kube, selector.name, service_namespace, spec.record_type)
        if ip is None:
            logger.error(f"No public ip found for service {service_namespace}/{selector.name}")
            return None
        return str(ip)

    raise TypeError(f"Unknown content source {content!r}")


def references_service(spec: DnsRecordSpec, record_namespace: str, name: str, namespace: str) -> bool:
    content = spec.content
    if not isinstance(content, ServiceContent):
        return False
    return content.service.name == name and (content.service.namespace or record_namespace) == namespace
