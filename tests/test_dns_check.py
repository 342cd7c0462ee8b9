"""Tests for the DNS propagation checker"""

import threading
import time

from cloudflare_dns_operator.dns_check import DnsCheckRequest, DnsPropagationChecker
from cloudflare_dns_operator.models import RecordType
from cloudflare_dns_operator.reconcile import apply_record
from cloudflare_dns_operator.state import DnsMatchState
from conftest import make_context

RECORD_SPEC = {
    "name": "app.example.com",
    "type": "A",
    "content": {"value": "10.0.0.1"},
    "zone": {"id": {"value": "zone-1"}},
}


class FakeLookup:
    def __init__(self, answers=()):
        self.answers = None if answers is None else list(answers)
        self.queries = []
        self.error = None

    def __call__(self, qname, record_type, nameserver=None):
        self.queries.append((qname, record_type, nameserver))
        if self.error:
            raise self.error
        return self.answers


def make_checker(kube, lookup, interval=60.0, clock=None):
    kwargs = {"clock": clock} if clock else {}
    return DnsPropagationChecker(
        kube,
        DnsMatchState(),
        emit=kube.request_reconcile,
        interval=interval,
        nameserver="9.9.9.9:53",
        lookup=lookup,
        **kwargs,
    )


def test_match_flip_emits_once(kube):
    record = kube.add_record("default", "app", RECORD_SPEC, status={"pending": True})
    lookup = FakeLookup(["10.0.0.1"])
    checker = make_checker(kube, lookup)

    assert checker.check([record]) == [("app", "default")]
    assert checker.check([record]) == []

    assert kube.reconcile_requests == [("app", "default")]
    assert checker.match_state.matches("default:app")
    assert lookup.queries[0] == ("app.example.com", RecordType.A, "9.9.9.9:53")


def test_no_match_without_previous_state_emits_nothing(kube):
    record = kube.add_record("default", "app", RECORD_SPEC, status={"pending": True})
    checker = make_checker(kube, FakeLookup(["10.0.0.2"]))

    assert checker.check([record]) == []
    assert kube.reconcile_requests == []


def test_match_lost_emits_again(kube):
    record = kube.add_record("default", "app", RECORD_SPEC, status={"pending": False})
    lookup = FakeLookup(["10.0.0.1"])
    checker = make_checker(kube, lookup)
    checker.check([record])

    lookup.answers = ["10.0.0.9"]

    assert checker.check([record]) == [("app", "default")]
    assert not checker.match_state.matches("default:app")


def test_skips_resources_without_status(kube):
    record = kube.add_record("default", "app", RECORD_SPEC)
    lookup = FakeLookup(["10.0.0.1"])

    assert make_checker(kube, lookup).check([record]) == []
    assert lookup.queries == []


def test_skips_unsupported_record_types(kube):
    record = kube.add_record(
        "default", "app", dict(RECORD_SPEC, type="SRV", content={"value": "x"}), status={"pending": True}
    )
    checker = make_checker(kube, FakeLookup(None))

    assert checker.check([record]) == []
    assert len(checker.match_state) == 0


def test_lookup_failure_counts_as_no_match(kube):
    record = kube.add_record("default", "app", RECORD_SPEC, status={"pending": False})
    lookup = FakeLookup(["10.0.0.1"])
    checker = make_checker(kube, lookup)
    checker.check([record])

    lookup.error = TimeoutError("resolver timed out")

    assert checker.check([record]) == [("app", "default")]


def test_one_broken_resource_does_not_stop_the_cycle(kube):
    broken = kube.add_record("default", "broken", {"name": "x"}, status={"pending": True})
    good = kube.add_record("default", "app", RECORD_SPEC, status={"pending": True})
    checker = make_checker(kube, FakeLookup(["10.0.0.1"]))

    assert checker.check([broken, good]) == [("app", "default")]


def test_request_check_is_best_effort(kube):
    checker = DnsPropagationChecker(
        kube, DnsMatchState(), emit=kube.request_reconcile, interval=60.0, queue_size=1
    )

    assert checker.request_check("a", "default") is True
    assert checker.request_check("b", "default") is False


def test_request_check_when_disabled(kube):
    checker = make_checker(kube, FakeLookup(), interval=None)

    assert checker.request_check("a", "default") is False
    checker.run(threading.Event())
    assert kube.reconcile_requests == []


def test_run_serves_queued_requests_and_ticks(kube):
    kube.add_record("default", "app", RECORD_SPEC, status={"pending": True})
    kube.add_record("default", "other", dict(RECORD_SPEC, name="other.example.com"), status={"pending": True})
    lookup = FakeLookup(["10.0.0.1"])
    checker = make_checker(kube, lookup, interval=3600.0)
    stopped = threading.Event()

    thread = threading.Thread(target=checker.run, args=(stopped,))
    thread.start()
    try:
        # The first tick checks every record right away
        for _ in range(50):
            if len(kube.reconcile_requests) == 2:
                break
            time.sleep(0.05)
        assert sorted(kube.reconcile_requests) == [("app", "default"), ("other", "default")]

        queries = len(lookup.queries)
        assert checker.request_check("app", "default")
        for _ in range(50):
            if len(lookup.queries) > queries:
                break
            time.sleep(0.05)
        assert lookup.queries[-1][0] == "app.example.com"
    finally:
        stopped.set()
        thread.join(timeout=5)

    assert not thread.is_alive()
    assert checker.request_check("app", "default") is False


def test_request_tuple():
    assert DnsCheckRequest(name="app", namespace="default") == ("app", "default")


def test_first_apply_check_runs_before_status_is_persisted(kube, provider):
    # The object as the checker reads it before kopf patches the status
    kube.add_record("default", "app", RECORD_SPEC)
    lookup = FakeLookup(["10.0.0.1"])
    context = make_context(kube, provider, interval=60.0, lookup=lookup)

    status = apply_record(context, "app", "default", RECORD_SPEC, None)
    assert status["pending"] is True

    context.checker.serve_request(context.checker._requests.get_nowait())

    assert lookup.queries[0][0] == "app.example.com"
    assert kube.reconcile_requests == [("app", "default")]
    assert context.match_state.matches("default:app")


def test_periodic_check_still_skips_records_without_status(kube):
    kube.add_record("default", "app", RECORD_SPEC)
    lookup = FakeLookup(["10.0.0.1"])
    checker = make_checker(kube, lookup)

    checker._run_cycle(checker._list_all)

    assert lookup.queries == []
