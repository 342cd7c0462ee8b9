"""
DNS record validation
"""

import ipaddress

from cloudflare_dns_operator.models import DnsRecordSpec, LiteralValue, RecordType

AUTOMATIC_TTL = 1
MIN_TTL = 30
MAX_TTL = 86400


def validate_dns_record(spec: DnsRecordSpec) -> None:
    """Validate a parsed record spec, raising ValueError for invalid input"""

    if not spec.name.strip():
        raise ValueError("Record name must not be empty")

    validate_ttl(spec.ttl)

    if isinstance(spec.content, LiteralValue):
        validators = {
            RecordType.A: validate_a_record,
            RecordType.AAAA: validate_aaaa_record,
            RecordType.CNAME: validate_cname_record,
        }
        validator = validators.get(spec.record_type)
        if validator:
            validator(spec.content.value)


def validate_ttl(ttl) -> None:
    if ttl is None or ttl == AUTOMATIC_TTL:
        return
    if not MIN_TTL <= ttl <= MAX_TTL:
        raise ValueError(
            f"Invalid TTL {ttl}: use {AUTOMATIC_TTL} for automatic or {MIN_TTL}-{MAX_TTL} seconds"
        )


def validate_a_record(content: str) -> None:
    """Validate A record"""
    try:
        ipaddress.IPv4Address(content)
    except ValueError:
        raise ValueError(f"Invalid IPv4 address: {content}")


def validate_aaaa_record(content: str) -> None:
    """Validate AAAA record"""
    try:
        ipaddress.IPv6Address(content)
    except ValueError:
        raise ValueError(f"Invalid IPv6 address: {content}")


def validate_cname_record(content: str) -> None:
    """Validate CNAME record"""
    if not content.strip():
        raise ValueError("Target required for CNAME")
