"""
Cloudflare API payloads
"""

from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ResultInfo(BaseModel):
    page: int = 1
    per_page: int = 0
    count: int = 0
    total_count: int = 0
    total_pages: int = 1


class ApiResponse(BaseModel, Generic[T]):
    """Envelope every Cloudflare v4 endpoint answers with"""

    errors: List[Any] = Field(default_factory=list)
    messages: List[Any] = Field(default_factory=list)
    result: Optional[T] = None
    result_info: Optional[ResultInfo] = None
    success: bool


class Zone(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    status: Optional[str] = None


class DnsRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str
    record_type: str = Field(alias="type")
    content: str
    ttl: Optional[int] = None
    proxied: Optional[bool] = None
    comment: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    zone_id: Optional[str] = None
    zone_name: Optional[str] = None


class DnsRecordCreate(BaseModel):
    """Body of POST /zones/{zone_id}/dns_records"""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    record_type: str = Field(alias="type")
    content: str
    ttl: Optional[int] = None
    proxied: Optional[bool] = None
    comment: Optional[str] = None
    tags: Optional[List[str]] = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
