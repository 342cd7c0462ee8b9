"""
Cloudflare API errors
"""

from typing import Optional

HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


class ProviderError(Exception):
    """Non-success response from the Cloudflare API"""

    def __init__(self, status_code: Optional[int], body: str, message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"cloudflare api error: status={status_code}, body={body!r}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == HTTP_NOT_FOUND

    @property
    def is_conflict(self) -> bool:
        return self.status_code == HTTP_CONFLICT


class RecordNotFoundError(ProviderError):
    """No record with the requested name exists in the zone"""

    def __init__(self, zone_id: str, name: str):
        self.zone_id = zone_id
        self.name = name
        super().__init__(
            HTTP_NOT_FOUND, "", f"no record found with name {name!r} in zone {zone_id}"
        )
