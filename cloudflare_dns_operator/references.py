"""
Resolution of literal values, config map / secret references and zones
"""

import base64
import logging
from typing import Any, Dict, Optional

from cloudflare_dns_operator.models import (
    ConfigMapReference,
    LiteralValue,
    ReferencedValue,
    SecretReference,
    ValueOrReference,
    ZoneById,
    ZoneByName,
    ZoneNameOrId,
)

logger = logging.getLogger(__name__)


def decode_secret_value(raw: bytes) -> Optional[str]:
    """Secret payloads are either plain UTF-8 or base64 of UTF-8"""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass

    try:
        return base64.b64decode(raw, validate=True).decode("utf-8")
    except ValueError:
        logger.error("Unable to decode secret reference value as utf8 or base64")
        return None


def secret_value(secret: Dict[str, Any], key: str) -> Optional[str]:
    """Look up `key` in a secret as returned by the API"""
    string_data = secret.get("stringData") or {}
    if key in string_data:
        return string_data[key]

    data = secret.get("data") or {}
    encoded = data.get(key)
    if encoded is None:
        return None

    # The API transports secret data base64 encoded
    try:
        raw = base64.b64decode(encoded)
    except ValueError:
        logger.error(f"Secret key {key} does not hold base64 transport data")
        return None
    return decode_secret_value(raw)


def resolve_reference(reference, namespace: str, kube) -> Optional[str]:
    if isinstance(reference, ConfigMapReference):
        selector = reference.config_map
        logger.debug(f"ConfigMap reference lookup {namespace}/{selector.name} key={selector.key}")
        config_map = kube.read_config_map(selector.name, namespace)
        if config_map is None:
            return None
        return (config_map.get("data") or {}).get(selector.key)

    if isinstance(reference, SecretReference):
        selector = reference.secret
        logger.debug(f"Secret reference lookup {namespace}/{selector.name} key={selector.key}")
        secret = kube.read_secret(selector.name, namespace)
        if secret is None:
            return None
        return secret_value(secret, selector.key)

    raise TypeError(f"Unknown reference {reference!r}")


def resolve_value(value: ValueOrReference, namespace: str, kube) -> Optional[str]:
    """Resolve a literal or referenced value, None when the reference is dangling"""
    if isinstance(value, LiteralValue):
        return value.value
    if isinstance(value, ReferencedValue):
        return resolve_reference(value.from_, namespace, kube)
    raise TypeError(f"Unknown value {value!r}")


def resolve_zone_id(zone: ZoneNameOrId, namespace: str, kube, provider) -> Optional[str]:
    if isinstance(zone, ZoneById):
        return resolve_value(zone.id, namespace, kube)

    if isinstance(zone, ZoneByName):
        zone_name = resolve_value(zone.name, namespace, kube)
        if zone_name is None:
            return None
        for candidate in provider.list_zones():
            if candidate.name == zone_name:
                return candidate.id
        logger.warning(f"No cloudflare zone named {zone_name}")
        return None

    raise TypeError(f"Unknown zone reference {zone!r}")
