"""
CloudflareDNSRecord custom resource models
"""

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

GROUP = "dns.cloudflare.com"
VERSION = "v1alpha1"
KIND = "CloudflareDNSRecord"
PLURAL = "cloudflarednsrecords"
SINGULAR = "cloudflarednsrecord"


class RecordType(str, Enum):
    """https://developers.cloudflare.com/dns/manage-dns-records/reference/dns-record-types/"""

    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    MX = "MX"
    TXT = "TXT"
    SRV = "SRV"
    LOC = "LOC"
    SPF = "SPF"
    NS = "NS"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class KeySelector(_Model):
    name: str
    key: str
    optional: Optional[bool] = None


class ConfigMapReference(_Model):
    config_map: KeySelector = Field(alias="configMap")


class SecretReference(_Model):
    secret: KeySelector


Reference = Union[ConfigMapReference, SecretReference]


class LiteralValue(_Model):
    value: str


class ReferencedValue(_Model):
    from_: Reference = Field(alias="from")


ValueOrReference = Union[LiteralValue, ReferencedValue]


class ZoneByName(_Model):
    name: ValueOrReference


class ZoneById(_Model):
    id: ValueOrReference


ZoneNameOrId = Union[ZoneByName, ZoneById]


class ServiceSelector(_Model):
    name: str
    namespace: Optional[str] = None


class ServiceContent(_Model):
    service: ServiceSelector


ContentSource = Union[LiteralValue, ServiceContent]


class DnsRecordSpec(_Model):
    """Desired state of one Cloudflare DNS record"""

    name: str = Field(description="The name of the record (e.g example.com)")
    record_type: RecordType = Field(
        RecordType.A,
        alias="type",
        description="The type of the record (e.g A, CNAME, MX, TXT, SRV, LOC, SPF, NS). Defaults to A.",
    )
    content: ContentSource = Field(
        description="The content of the record such as an IP address or a service reference."
    )
    ttl: Optional[int] = Field(None, description="TTL in seconds")
    proxied: Optional[bool] = Field(None, description="Whether the record is proxied by Cloudflare")
    comment: Optional[str] = Field(None, description="Arbitrary comment")
    tags: Optional[List[str]] = Field(None, description="Tags to apply to the record")
    zone: ZoneNameOrId = Field(description="The cloudflare zone to create the record in")

    @field_validator("record_type", mode="before")
    @classmethod
    def _default_type(cls, value):
        return RecordType.A if value is None else value


class Condition(_Model):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    status: str
    reason: str
    message: str
    last_transition_time: str = Field(alias="lastTransitionTime")
    observed_generation: Optional[int] = Field(None, alias="observedGeneration")

    @property
    def is_true(self) -> bool:
        return self.status == "True"


class DnsRecordStatus(_Model):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    record_id: Optional[str] = Field(None, alias="recordId")
    zone_id: Optional[str] = Field(None, alias="zoneId")
    record_name: Optional[str] = Field(None, alias="recordName")
    pending: bool = True
    conditions: List[Condition] = Field(default_factory=list)

    def to_patch(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def parse_spec(spec) -> DnsRecordSpec:
    """Parse a custom resource spec, raising ValueError when it is malformed"""
    return DnsRecordSpec.model_validate(dict(spec or {}))


def parse_status(status) -> DnsRecordStatus:
    """Parse the status the controller wrote previously, tolerating foreign keys"""
    return DnsRecordStatus.model_validate(dict(status or {}))


def record_key(namespace: str, name: str) -> str:
    return f"{namespace}:{name}"
