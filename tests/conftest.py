"""Shared fakes for the Cloudflare API and the Kubernetes resources"""

import base64
import json
import re

import pytest

from cloudflare_dns_operator.cloudflare.cache import ProviderCache
from cloudflare_dns_operator.cloudflare.client import CloudflareClient
from cloudflare_dns_operator.dns_check import DnsPropagationChecker
from cloudflare_dns_operator.reconcile import OperatorContext
from cloudflare_dns_operator.state import DnsMatchState

BASE_URL = "https://api.test/client/v4"


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    @property
    def text(self):
        return json.dumps(self._payload)

    def json(self):
        return self._payload


def envelope(result, success=True, result_info=None):
    body = {"errors": [], "messages": [], "result": result, "success": success}
    if result_info is not None:
        body["result_info"] = result_info
    return body


class FakeCloudflareApi:
    """In-memory stand-in for the requests session talking to Cloudflare"""

    def __init__(self, zones=None):
        self.headers = {}
        self.zones = dict(zones or {"zone-1": "example.com"})
        self.records = {zone_id: [] for zone_id in self.zones}
        self.calls = []
        self._failures = []
        self._next_id = 1

    def add_record(self, zone_id, name, content, record_type="A"):
        record = {
            "id": f"rec-{self._next_id}",
            "name": name,
            "type": record_type,
            "content": content,
            "ttl": 1,
            "proxied": False,
            "tags": [],
            "zone_id": zone_id,
            "zone_name": self.zones[zone_id],
        }
        self._next_id += 1
        self.records[zone_id].append(record)
        return record

    def fail_next(self, method, status_code, errors=None):
        self._failures.append((method, status_code, errors or [{"code": status_code}]))

    def writes(self):
        return [call for call in self.calls if call[0] in ("POST", "DELETE")]

    def reads(self, path):
        return [call for call in self.calls if call == ("GET", path)]

    def request(self, method, url, params=None, json=None, timeout=None):
        assert timeout is not None
        path = url[len(BASE_URL):]
        self.calls.append((method, path))

        for i, (fail_method, status_code, errors) in enumerate(self._failures):
            if fail_method == method:
                del self._failures[i]
                return FakeResponse(status_code, envelope(None, success=False) | {"errors": errors})

        if path == "/zones" and method == "GET":
            zones = [{"id": zid, "name": name} for zid, name in self.zones.items()]
            return self._page(zones, params)

        match = re.fullmatch(r"/zones/([^/]+)/dns_records(?:/([^/]+))?", path)
        if match is None:
            return FakeResponse(404, envelope(None, success=False))
        zone_id, record_id = match.groups()
        if zone_id not in self.records:
            return FakeResponse(404, envelope(None, success=False))

        if method == "GET":
            return self._page(list(self.records[zone_id]), params)
        if method == "POST":
            record = self.add_record(zone_id, json["name"], json["content"], json["type"])
            record.update({k: v for k, v in json.items() if k in ("ttl", "proxied", "comment", "tags")})
            return FakeResponse(200, envelope(record))
        if method == "DELETE":
            for record in self.records[zone_id]:
                if record["id"] == record_id:
                    self.records[zone_id].remove(record)
                    return FakeResponse(200, envelope({"id": record_id}))
            return FakeResponse(404, envelope(None, success=False))
        return FakeResponse(405, envelope(None, success=False))

    def _page(self, items, params):
        page = (params or {}).get("page", 1)
        per_page = (params or {}).get("per_page", 100)
        total_pages = max(1, -(-len(items) // per_page))
        chunk = items[(page - 1) * per_page : page * per_page]
        info = {
            "page": page,
            "per_page": per_page,
            "count": len(chunk),
            "total_count": len(items),
            "total_pages": total_pages,
        }
        return FakeResponse(200, envelope(chunk, result_info=info))


class FakeKube:
    """In-memory KubernetesResources"""

    def __init__(self):
        self.secrets = {}
        self.config_maps = {}
        self.services = {}
        self.records = {}
        self.reconcile_requests = []

    def add_secret(self, namespace, name, data):
        encoded = {k: base64.b64encode(v).decode("ascii") for k, v in data.items()}
        self.secrets[(namespace, name)] = {"metadata": {"name": name}, "data": encoded}

    def add_config_map(self, namespace, name, data):
        self.config_maps[(namespace, name)] = {"metadata": {"name": name}, "data": dict(data)}

    def add_service(self, namespace, name, spec, status=None):
        self.services[(namespace, name)] = {
            "metadata": {"name": name, "namespace": namespace},
            "spec": spec,
            "status": status or {},
        }

    def add_record(self, namespace, name, spec, status=None):
        body = {"metadata": {"name": name, "namespace": namespace}, "spec": spec}
        if status is not None:
            body["status"] = status
        self.records[(namespace, name)] = body
        return body

    def read_secret(self, name, namespace):
        return self.secrets.get((namespace, name))

    def read_config_map(self, name, namespace):
        return self.config_maps.get((namespace, name))

    def read_service(self, name, namespace):
        return self.services.get((namespace, name))

    def list_dns_records(self, namespace=None):
        return [r for (ns, _), r in self.records.items() if namespace in (None, ns)]

    def get_dns_record(self, name, namespace):
        return self.records[(namespace, name)]

    def request_reconcile(self, name, namespace):
        self.reconcile_requests.append((name, namespace))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cloudflare_api():
    return FakeCloudflareApi()


@pytest.fixture
def provider(cloudflare_api, clock):
    return CloudflareClient(
        "token", cache=ProviderCache(clock=clock), session=cloudflare_api, base_url=BASE_URL
    )


@pytest.fixture
def kube():
    return FakeKube()


def make_context(kube, provider, interval=None, lookup=None):
    match_state = DnsMatchState()
    checker = DnsPropagationChecker(
        kube,
        match_state,
        emit=kube.request_reconcile,
        interval=interval,
        lookup=lookup or (lambda *args, **kwargs: []),
    )
    return OperatorContext(kube=kube, provider=provider, match_state=match_state, checker=checker)


@pytest.fixture
def context(kube, provider):
    return make_context(kube, provider)


@pytest.fixture
def checked_context(kube, provider):
    return make_context(kube, provider, interval=60.0)
