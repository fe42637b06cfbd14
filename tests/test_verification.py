"""
Tests for the verification orchestrator over the in-memory store.
"""

import threading
from datetime import timedelta

import pytest

from conftest import NOW, SECRET, UID, make_record
from core.clone_detector import BURST_REASON
from core.counter_guard import MAX_SCAN_COUNTER
from core.errors import ErrorKind, StorageUnavailable
from core.memory_store import InMemoryTagStore
from core.records import ScanContext, ScanEvent
from core.signature import compute_signature
from core.verification import STATUS_EXPIRED, STATUS_VALID, TagVerifier, VerificationRequest

CTX = ScanContext(ip_address="203.0.113.7", user_agent="pytest-agent")


def signed(counter, uid=UID, secret=SECRET, **kwargs):
    return VerificationRequest(
        uid=uid,
        counter=counter,
        signature=compute_signature(secret, uid, counter),
        **kwargs,
    )


class TestRejections:

    def test_bad_identifier(self, verifier):
        result = verifier.verify(VerificationRequest(uid="xyz"), CTX)
        assert not result.success and not result.authentic
        assert result.kind == ErrorKind.BAD_REQUEST

    def test_missing_identifier(self, verifier):
        result = verifier.verify(VerificationRequest(uid=None), CTX)
        assert result.kind == ErrorKind.BAD_REQUEST

    def test_unknown_identifier(self, verifier):
        result = verifier.verify(VerificationRequest(uid="04FFFFFFFFFFFF"), CTX)
        assert result.kind == ErrorKind.NOT_FOUND

    def test_inactive_rejected_even_with_valid_signature(self, store, verifier):
        store.add(make_record(active=False, scan_counter=3))
        result = verifier.verify(signed(4), CTX)
        assert result.kind == ErrorKind.FORBIDDEN
        assert store.find_by_identifier(UID).scan_counter == 3
        assert store.find_by_identifier(UID).scan_history == ()

    def test_invalid_signature(self, store, verifier):
        store.add(make_record(scan_counter=3))
        request = VerificationRequest(uid=UID, counter=4, signature="0" * 64)
        result = verifier.verify(request, CTX)
        assert result.kind == ErrorKind.FORBIDDEN
        assert store.find_by_identifier(UID).scan_counter == 3

    @pytest.mark.parametrize("counter", [0, 2, 3])
    def test_replayed_counter(self, store, verifier, counter):
        store.add(make_record(scan_counter=3))
        result = verifier.verify(signed(counter), CTX)
        assert result.kind == ErrorKind.FORBIDDEN
        assert store.find_by_identifier(UID).scan_counter == 3

    def test_counter_out_of_range(self, store, verifier):
        store.add(make_record(scan_counter=3))
        result = verifier.verify(signed(MAX_SCAN_COUNTER + 1), CTX)
        assert result.kind == ErrorKind.BAD_REQUEST
        assert store.find_by_identifier(UID).scan_counter == 3

    def test_forbidden_reasons_are_distinct_but_details_generic(self, store, verifier):
        store.add(make_record(scan_counter=3))
        store.add(make_record(identifier="04000000000001", product_id="MB-0002", active=False))
        bad_sig = verifier.verify(VerificationRequest(uid=UID, counter=4, signature="00"), CTX)
        replay = verifier.verify(signed(3), CTX)
        inactive = verifier.verify(VerificationRequest(uid="04000000000001"), CTX)
        assert len({bad_sig.error, replay.error, inactive.error}) == 3
        assert bad_sig.details == replay.details == inactive.details


class TestAcceptance:

    def test_next_counter_with_valid_signature(self, store, verifier):
        store.add(make_record(scan_counter=3))
        result = verifier.verify(signed(4, location="Loja Centro"), CTX)
        assert result.success and result.authentic
        assert result.product.scan_count == 4
        assert not result.product.is_first_scan

        stored = store.find_by_identifier(UID)
        assert stored.scan_counter == 4
        assert stored.last_scan == ScanEvent(
            timestamp=NOW, location="Loja Centro",
            ip_address="203.0.113.7", user_agent="pytest-agent",
        )

    def test_signature_uses_raw_uid_as_sent(self, store, verifier):
        store.add(make_record())
        raw_uid = "04:a1:b2:c3:d4:e5:f6"
        result = verifier.verify(signed(1, uid=raw_uid), CTX)
        assert result.success
        assert result.product.is_first_scan

    def test_without_counter_increments_and_uses_default_location(self, store, verifier):
        store.add(make_record(scan_counter=7))
        result = verifier.verify(VerificationRequest(uid=UID), CTX)
        assert result.product.scan_count == 8
        assert store.find_by_identifier(UID).last_scan.location == "Web"

    def test_record_without_secret_ignores_supplied_signature(self, store, verifier):
        store.add(make_record(secret=None, scan_counter=2))
        request = VerificationRequest(uid=UID, counter=3, signature="not-a-real-signature")
        result = verifier.verify(request, CTX)
        assert result.success and result.authentic
        assert store.find_by_identifier(UID).scan_counter == 3

    @pytest.mark.parametrize("record_kwargs, uid", [
        ({"trusted_source": True}, UID),
        ({"identifier": "04AABBCCDDDEEFF"}, "04:AA:BB:CC:DD:DE:EF:F"),
    ])
    def test_trusted_and_demo_tags_skip_checks(self, store, verifier, record_kwargs, uid):
        store.add(make_record(scan_counter=5, **record_kwargs))
        identifier = record_kwargs.get("identifier", UID)
        for expected, counter in ((6, 1), (7, 99), (8, None)):
            request = VerificationRequest(uid=uid, counter=counter, signature="garbage")
            result = verifier.verify(request, CTX)
            assert result.success
            assert store.find_by_identifier(identifier).scan_counter == expected

    def test_first_scan_flag(self, store, verifier):
        store.add(make_record(trusted_source=True))
        assert verifier.verify(VerificationRequest(uid=UID), CTX).product.is_first_scan
        assert not verifier.verify(VerificationRequest(uid=UID), CTX).product.is_first_scan

    def test_age_in_days_is_floored(self, store, verifier):
        store.add(make_record(manufacturing_date=NOW - timedelta(days=10, hours=3)))
        result = verifier.verify(VerificationRequest(uid=UID), CTX)
        assert result.product.age_in_days == 10

    def test_age_unknown_without_manufacturing_date(self, store, verifier):
        store.add(make_record())
        result = verifier.verify(VerificationRequest(uid=UID), CTX)
        assert result.product.age_in_days is None
        assert result.product.is_expired is False
        assert result.product.status == STATUS_VALID

    def test_expired_product_is_still_authentic(self, store, verifier):
        store.add(make_record(expiry_date=NOW - timedelta(days=1)))
        result = verifier.verify(signed(1), CTX)
        assert result.authentic
        assert result.product.is_expired
        assert result.product.status == STATUS_EXPIRED == "Vencido"

    def test_burst_only_annotates(self, store, verifier):
        history = tuple(
            ScanEvent(timestamp=NOW - timedelta(seconds=s), location="Web", ip_address="1.1.1.1")
            for s in (25, 20, 15, 10, 5)
        )
        store.add(make_record(trusted_source=True, scan_counter=5, scan_history=history))
        result = verifier.verify(VerificationRequest(uid=UID), CTX)
        assert result.authentic
        assert result.verification.suspicious
        assert result.warning == BURST_REASON

    def test_metadata(self, store, verifier):
        store.add(make_record())
        result = verifier.verify(VerificationRequest(uid=UID), CTX)
        assert result.verification.timestamp == NOW
        assert result.verification.response_time_ms >= 0
        assert not result.verification.suspicious
        assert result.warning is None


class TestConcurrency:

    def test_same_counter_accepted_only_once(self, store, verifier):
        store.add(make_record(scan_counter=3))
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(verifier.verify(signed(4), CTX))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        accepted = [r for r in results if r.success]
        assert len(accepted) == 1
        assert all(r.kind == ErrorKind.FORBIDDEN for r in results if not r.success)
        assert store.find_by_identifier(UID).scan_counter == 4
        assert len(store.find_by_identifier(UID).scan_history) == 1

    def test_concurrent_increments_never_lose_updates(self, store, verifier):
        store.add(make_record(trusted_source=True))
        barrier = threading.Barrier(10)
        counts = []

        def worker():
            barrier.wait()
            counts.append(verifier.verify(VerificationRequest(uid=UID), CTX).product.scan_count)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(counts) == list(range(1, 11))
        stored = store.find_by_identifier(UID)
        assert stored.scan_counter == 10
        assert len(stored.scan_history) == 10


class ConflictingStore(InMemoryTagStore):
    """Simula otra escritura ganando siempre la carrera."""
    def compare_and_update(self, *args, **kwargs):
        return False


class TimeoutStore(InMemoryTagStore):
    def find_by_identifier(self, identifier):
        raise StorageUnavailable("timeout")


class BrokenStore(InMemoryTagStore):
    def find_by_identifier(self, identifier):
        raise RuntimeError("boom")


def test_conflicts_exhausted_are_unavailable(clock):
    store = ConflictingStore([make_record(trusted_source=True)])
    result = TagVerifier(store, clock=clock, max_retries=3).verify(VerificationRequest(uid=UID), CTX)
    assert result.kind == ErrorKind.UNAVAILABLE


def test_storage_timeout_is_unavailable(clock):
    result = TagVerifier(TimeoutStore(), clock=clock).verify(VerificationRequest(uid=UID), CTX)
    assert result.kind == ErrorKind.UNAVAILABLE


def test_unexpected_error_is_internal(clock):
    result = TagVerifier(BrokenStore(), clock=clock).verify(VerificationRequest(uid=UID), CTX)
    assert result.kind == ErrorKind.INTERNAL
    assert not result.authentic


def test_lock_timeout_raises_unavailable():
    store = InMemoryTagStore([make_record()], timeout=0.05)
    store._locks[UID].acquire()
    try:
        with pytest.raises(StorageUnavailable):
            store.find_by_identifier(UID)
    finally:
        store._locks[UID].release()
