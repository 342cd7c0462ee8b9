"""Tests for DNS lookups"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import dns.exception
import dns.name
import dns.resolver
import pytest

from cloudflare_dns_operator.models import RecordType
from cloudflare_dns_operator.utils import dns as dns_utils


@pytest.mark.parametrize(
    "address, expected",
    [
        ("1.1.1.1:53", ("1.1.1.1", 53)),
        ("10.0.0.1:5353", ("10.0.0.1", 5353)),
        ("10.0.0.1", ("10.0.0.1", 53)),
        ("[2606:4700::1111]:53", ("2606:4700::1111", 53)),
        ("[2606:4700::1111]", ("2606:4700::1111", 53)),
        ("2606:4700::1111", ("2606:4700::1111", 53)),
    ],
)
def test_parse_nameserver(address, expected):
    assert dns_utils.parse_nameserver(address) == expected


def test_format_rdata():
    target = dns.name.from_text("target.example.com")

    assert dns_utils.format_rdata(RecordType.A, SimpleNamespace(address="10.0.0.1")) == "10.0.0.1"
    assert dns_utils.format_rdata(RecordType.CNAME, SimpleNamespace(target=target)) == (
        "target.example.com"
    )
    assert dns_utils.format_rdata(
        RecordType.MX, SimpleNamespace(preference=10, exchange=target)
    ) == "10 target.example.com"
    assert dns_utils.format_rdata(
        RecordType.TXT, SimpleNamespace(strings=[b"v=spf1 ", b"-all"])
    ) == "v=spf1 -all"


@pytest.fixture
def resolver(monkeypatch):
    instance = MagicMock()
    factory = MagicMock(return_value=instance)
    monkeypatch.setattr(dns.resolver, "Resolver", factory)
    return instance


def test_resolve_uses_configured_nameserver(resolver):
    resolver.resolve.return_value = [SimpleNamespace(address="10.0.0.1")]

    answers = dns_utils.resolve("app.example.com", RecordType.A, "9.9.9.9:5353", timeout=2.0)

    assert answers == ["10.0.0.1"]
    assert resolver.nameservers == ["9.9.9.9"]
    assert resolver.port == 5353
    assert resolver.lifetime == 2.0
    resolver.resolve.assert_called_once_with("app.example.com", "A")


def test_resolve_missing_name_is_empty(resolver):
    resolver.resolve.side_effect = dns.resolver.NXDOMAIN()

    assert dns_utils.resolve("gone.example.com", RecordType.A) == []


def test_resolve_unsupported_type(resolver):
    assert dns_utils.resolve("app.example.com", RecordType.SRV) is None
    resolver.resolve.assert_not_called()


def test_resolve_propagates_timeouts(resolver):
    resolver.resolve.side_effect = dns.exception.Timeout()

    with pytest.raises(dns.exception.Timeout):
        dns_utils.resolve("app.example.com", RecordType.A)
