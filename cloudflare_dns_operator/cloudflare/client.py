"""
Cloudflare v4 API client with cached listings
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import TypeAdapter

from cloudflare_dns_operator.cloudflare.cache import ProviderCache
from cloudflare_dns_operator.cloudflare.errors import ProviderError, RecordNotFoundError
from cloudflare_dns_operator.cloudflare.models import (
    ApiResponse,
    DnsRecord,
    DnsRecordCreate,
    Zone,
)

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.cloudflare.com/client/v4"
REQUEST_TIMEOUT = 30
ZONES_PER_PAGE = 50
RECORDS_PER_PAGE = 100

_zones = TypeAdapter(List[Zone])
_records = TypeAdapter(List[DnsRecord])
_record = TypeAdapter(DnsRecord)


class CloudflareClient:
    """Authenticated access to the zones and DNS records of one API token"""

    def __init__(
        self,
        api_token: str,
        cache: Optional[ProviderCache] = None,
        session: Optional[requests.Session] = None,
        base_url: str = API_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.cache = cache if cache is not None else ProviderCache()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            }
        )

    # Reads

    def list_zones(self) -> List[Zone]:
        return self.cache.zone_list(self._fetch_zones)

    def list_records(self, zone_id: str) -> List[DnsRecord]:
        return self.cache.record_list(zone_id, lambda: self._fetch_records(zone_id))

    def _fetch_zones(self) -> List[Zone]:
        logger.debug("Fetching zones")
        return _zones.validate_python(self._paginate("/zones", ZONES_PER_PAGE))

    def _fetch_records(self, zone_id: str) -> List[DnsRecord]:
        logger.debug(f"Fetching dns records of zone {zone_id}")
        return _records.validate_python(
            self._paginate(f"/zones/{zone_id}/dns_records", RECORDS_PER_PAGE)
        )

    # Writes

    def create_record(
        self,
        zone_id: str,
        name: str,
        record_type: str,
        content: str,
        ttl: Optional[int] = None,
        proxied: Optional[bool] = None,
        comment: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> DnsRecord:
        """Create a new DNS record in the zone"""
        body = DnsRecordCreate(
            name=name,
            record_type=record_type,
            content=content,
            ttl=ttl,
            proxied=proxied,
            comment=comment,
            tags=tags,
        )
        logger.info(f"Creating {record_type} record {name} -> {content} in zone {zone_id}")
        try:
            response = self._request(
                "POST", f"/zones/{zone_id}/dns_records", json=body.to_payload()
            )
        finally:
            self.cache.invalidate_zone(zone_id)
        return _record.validate_python(response.result)

    def delete_record(self, zone_id: str, record_id: str) -> None:
        logger.info(f"Deleting record {record_id} from zone {zone_id}")
        try:
            self._request("DELETE", f"/zones/{zone_id}/dns_records/{record_id}")
        finally:
            self.cache.invalidate_zone(zone_id)

    def delete_record_by_name(self, zone_id: str, name: str) -> None:
        """Delete the first record of the zone called `name`"""
        logger.info(f"Deleting record {name} from zone {zone_id} by name")
        record = self.find_record(zone_id, name)
        if record is None:
            raise RecordNotFoundError(zone_id, name)
        self.delete_record(zone_id, record.id)

    def find_record(self, zone_id: str, name: str) -> Optional[DnsRecord]:
        for record in self.list_records(zone_id):
            if record.name == name:
                return record
        return None

    def create_or_replace_and_wait(
        self,
        zone_id: str,
        name: str,
        record_type: str,
        content: str,
        ttl: Optional[int] = None,
        proxied: Optional[bool] = None,
        comment: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> DnsRecord:
        """Make sure a record called `name` with `content` exists.

        Cloudflare records are replaced, not patched: a record with the same name
        but other content is deleted before the new one is created, so there is a
        short window where the name does not resolve.
        """
        existing = self.find_record(zone_id, name)
        if existing is not None:
            if existing.content == content:
                logger.info(f"DNS record for {name} already exists with {content}")
                return existing

            logger.warning(
                f"Found existing DNS record for {name} with content {existing.content}. Deleting."
            )
            self.delete_record(zone_id, existing.id)

        record = self.create_record(
            zone_id,
            name,
            record_type,
            content,
            ttl=ttl,
            proxied=proxied,
            comment=comment,
            tags=tags,
        )
        logger.debug(f"Registered record for {name} with {record.content}")
        return record

    # Transport

    def _paginate(self, path: str, per_page: int) -> List[Any]:
        items: List[Any] = []
        page = 1
        while True:
            response = self._request("GET", path, params={"page": page, "per_page": per_page})
            items.extend(response.result or [])
            info = response.result_info
            if info is None or page >= info.total_pages:
                return items
            page += 1

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        url = f"{self.base_url}{path}"
        res = self._session.request(method, url, params=params, json=json, timeout=self.timeout)

        if not res.ok:
            raise ProviderError(res.status_code, res.text)

        try:
            body = ApiResponse.model_validate(res.json())
        except ValueError as e:
            raise ProviderError(
                res.status_code, res.text, f"failed to parse cloudflare api response: {e}"
            ) from e

        if not body.success:
            raise ProviderError(res.status_code, res.text)

        return body
