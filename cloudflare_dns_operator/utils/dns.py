"""
DNS utility functions
"""

import logging
from typing import List, Optional, Tuple

import dns.resolver

from cloudflare_dns_operator.models import RecordType

logger = logging.getLogger(__name__)

DEFAULT_NAMESERVER = "1.1.1.1:53"
DNS_TIMEOUT = 10.0

RESOLVABLE_TYPES = (
    RecordType.A,
    RecordType.AAAA,
    RecordType.CNAME,
    RecordType.MX,
    RecordType.TXT,
    RecordType.NS,
)


def parse_nameserver(address: str) -> Tuple[str, int]:
    """Split `host[:port]`, accepting `[v6]:port` and bare IPv6 addresses"""
    address = address.strip()
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port = rest.lstrip(":")
        return host, int(port) if port else 53
    if address.count(":") == 1:
        host, port = address.split(":")
        return host, int(port)
    return address, 53


def format_rdata(record_type: RecordType, rdata) -> str:
    if record_type in (RecordType.A, RecordType.AAAA):
        return rdata.address
    if record_type in (RecordType.CNAME, RecordType.NS):
        return rdata.target.to_text(omit_final_dot=True)
    if record_type == RecordType.MX:
        return f"{rdata.preference} {rdata.exchange.to_text(omit_final_dot=True)}"
    if record_type == RecordType.TXT:
        return b"".join(rdata.strings).decode("utf-8", errors="replace")
    raise ValueError(f"Cannot format {record_type.value} record data")


def resolve(
    qname: str,
    record_type: RecordType,
    nameserver: str = DEFAULT_NAMESERVER,
    timeout: float = DNS_TIMEOUT,
) -> Optional[List[str]]:
    """Query `nameserver` for `qname` and return the answers as strings.

    Returns None for record types that cannot be looked up, and an empty list
    when the name or the requested type does not exist. Other resolver errors
    (timeouts, SERVFAIL) propagate.
    """
    if record_type not in RESOLVABLE_TYPES:
        logger.error(f"Cannot resolve record type {record_type.value}")
        return None

    host, port = parse_nameserver(nameserver)
    resolver = dns.resolver.Resolver(configure=False)
    resolver.nameservers = [host]
    resolver.port = port
    resolver.lifetime = timeout

    logger.debug(f"DNS lookup {qname} {record_type.value} @{host}:{port}")
    try:
        answer = resolver.resolve(qname, record_type.value)
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return []

    return [format_rdata(record_type, rdata) for rdata in answer]
