"""
Operator configuration from the environment and command line
"""

from dataclasses import dataclass
import os
import re
from typing import Mapping, Optional

from cloudflare_dns_operator.utils.dns import DEFAULT_NAMESERVER, parse_nameserver

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600, "d": 86400}
_FALSY = {"", "0", "false", "off", "no", "disabled"}


def parse_duration(value: str) -> float:
    """Parse `90`, `30s`, `5m` or `1h30m` into seconds"""
    text = value.strip().lower().replace(" ", "")
    if not text:
        raise ValueError("Empty duration")
    if re.fullmatch(r"\d+(\.\d+)?", text):
        seconds = float(text)
    else:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            pos = match.end()
        if pos != len(text):
            raise ValueError(f"Invalid duration: {value!r}")
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds


def parse_dns_check_interval(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip().lower() in _FALSY:
        return None
    return parse_duration(value)


@dataclass
class OperatorConfig:
    cloudflare_api_token: str
    dns_check_interval: Optional[float] = None
    nameserver: str = DEFAULT_NAMESERVER
    namespace: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if not self.cloudflare_api_token:
            raise ValueError("A cloudflare API token is required (CLOUDFLARE_API_TOKEN)")
        # Fails early on a malformed address
        parse_nameserver(self.nameserver)

    @property
    def dns_check_enabled(self) -> bool:
        return self.dns_check_interval is not None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "OperatorConfig":
        """Read configuration from environment variables; non-None overrides win"""
        env = os.environ if environ is None else environ
        values = {
            "cloudflare_api_token": env.get("CLOUDFLARE_API_TOKEN", ""),
            "dns_check_interval": env.get("CHECK_DNS_RESOLUTION"),
            "nameserver": env.get("NAMESERVER_FOR_DNS_CHECK") or DEFAULT_NAMESERVER,
            "namespace": env.get("OPERATOR_NAMESPACE") or None,
            "log_level": env.get("LOG_LEVEL") or "INFO",
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values["dns_check_interval"] = parse_dns_check_interval(values["dns_check_interval"])
        return cls(**values)
