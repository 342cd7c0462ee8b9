"""
Background DNS propagation checks

One loop serves two sources: a periodic tick that checks every
CloudflareDNSRecord in the cluster, and a queue of single-record requests the
controller posts after creating a record. Whenever the lookup result of a record
flips, the record is handed to `emit` so the controller reconciles it again and
updates its `pending` status.
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from cloudflare_dns_operator.models import parse_spec, record_key
from cloudflare_dns_operator.services import resolve_content
from cloudflare_dns_operator.state import DnsMatchState
from cloudflare_dns_operator.utils import dns as dns_utils

logger = logging.getLogger(__name__)

REQUEST_QUEUE_SIZE = 64
# Upper bound for a single queue wait so a stop request is noticed promptly
STOP_POLL_INTERVAL = 1.0


class DnsCheckRequest(NamedTuple):
    """Check a single record right away"""

    name: str
    namespace: str


class DnsPropagationChecker:
    def __init__(
        self,
        kube,
        match_state: DnsMatchState,
        emit: Callable[[str, str], None],
        interval: Optional[float] = None,
        nameserver: str = dns_utils.DEFAULT_NAMESERVER,
        lookup: Callable[..., Optional[List[str]]] = dns_utils.resolve,
        clock: Callable[[], float] = time.monotonic,
        queue_size: int = REQUEST_QUEUE_SIZE,
    ):
        self.kube = kube
        self.match_state = match_state
        self.interval = interval
        self.nameserver = nameserver
        self._emit = emit
        self._lookup = lookup
        self._clock = clock
        self._requests: "queue.Queue[DnsCheckRequest]" = queue.Queue(maxsize=queue_size)
        self._closed = threading.Event()

    @property
    def enabled(self) -> bool:
        return self.interval is not None

    def request_check(self, name: str, namespace: str) -> bool:
        """Queue a check for one record. Best effort: dropped when full or stopped."""
        if not self.enabled or self._closed.is_set():
            return False
        try:
            self._requests.put_nowait(DnsCheckRequest(name=name, namespace=namespace))
        except queue.Full:
            logger.warning(f"DNS check queue full, dropping request for {namespace}/{name}")
            return False
        return True

    def run(self, stopped: threading.Event) -> None:
        if not self.enabled:
            logger.info("DNS checks disabled")
            self._closed.set()
            return

        logger.info(f"Starting DNS checks every {self.interval}s against {self.nameserver}")
        next_tick = self._clock()
        try:
            while not stopped.is_set():
                now = self._clock()
                if now >= next_tick:
                    next_tick = now + self.interval
                    self._run_cycle(self._list_all)
                    continue

                try:
                    request = self._requests.get(
                        timeout=min(next_tick - now, STOP_POLL_INTERVAL)
                    )
                except queue.Empty:
                    continue
                self.serve_request(request)
        finally:
            self._closed.set()
            logger.info("DNS checks stopped")

    def serve_request(self, request: DnsCheckRequest) -> None:
        """Check one record right after its first apply.

        The request may be served before the status patch lands, so the record
        is checked even without a status.
        """
        logger.debug(f"Request to check single DNS record {request.namespace}/{request.name}")
        self._run_cycle(lambda: self._get_one(request), require_status=False)

    def _list_all(self) -> List[Dict[str, Any]]:
        return self.kube.list_dns_records()

    def _get_one(self, request: DnsCheckRequest) -> List[Dict[str, Any]]:
        return [self.kube.get_dns_record(request.name, request.namespace)]

    def _run_cycle(
        self, fetch: Callable[[], List[Dict[str, Any]]], require_status: bool = True
    ) -> None:
        try:
            resources = fetch()
        except Exception as e:
            logger.error(f"Failed to fetch CloudflareDNSRecord resources: {e}")
            return
        self.check(resources, require_status=require_status)

    def check(
        self, resources: Iterable[Dict[str, Any]], require_status: bool = True
    ) -> List[Tuple[str, str]]:
        """Look up every resource once, emitting those whose match state changed"""
        resources = list(resources)
        logger.debug(f"Checking DNS of {len(resources)} CloudflareDNSRecord resources")

        changed = []
        for resource in resources:
            try:
                ref = self.check_resource(resource, require_status)
            except Exception as e:
                meta = resource.get("metadata") or {}
                logger.error(
                    f"DNS check of {meta.get('namespace')}/{meta.get('name')} failed: {e}"
                )
                continue
            if ref is None:
                continue
            changed.append(ref)
            try:
                self._emit(*ref)
            except Exception as e:
                logger.error(f"Failed to request reconcile of {ref[1]}/{ref[0]}: {e}")
        return changed

    def check_resource(
        self, resource: Dict[str, Any], require_status: bool = True
    ) -> Optional[Tuple[str, str]]:
        """Returns (name, namespace) when the record's lookup result flipped"""
        meta = resource.get("metadata") or {}
        name = meta.get("name")
        namespace = meta.get("namespace")
        if not name or not namespace:
            logger.error(f"Resource without name or namespace: {meta}")
            return None

        key = record_key(namespace, name)

        if require_status and not resource.get("status"):
            # Status is written by the first reconcile
            logger.warning(f"Resource {key} has no status yet")
            return None

        spec = parse_spec(resource.get("spec"))
        content = resolve_content(spec, namespace, self.kube)
        if content is None:
            logger.error(f"Unable to resolve content for CloudflareDNSRecord {key}")
            return None

        try:
            answers = self._lookup(spec.name, spec.record_type, nameserver=self.nameserver)
        except Exception as e:
            logger.error(f"Failed to resolve DNS record for {key}: {e}")
            answers = []

        if answers is None:
            logger.error(f"Unable to resolve unsupported record type {spec.record_type.value} for {key}")
            return None

        matches = content in answers
        logger.debug(f"DNS answers for {key}: {answers}, expected {content!r}, matches={matches}")

        if self.match_state.update(key, matches):
            logger.info(f"DNS match state of {key} changed to {matches}")
            return name, namespace
        return None
