import pytest
from conftest import make_data

from verity_core.errors import QueueFullError, RemoteErrorCode, RemoteResolveError
from verity_core.queue import PendingQueue
from verity_core.storage.models import PendingStatus


def tok(i):
    return f"qr_queue{i}test1234567890ab"


def test_enqueue_creates_pending(store, clock):
    q = PendingQueue(store, clock=clock)
    entry = q.enqueue("qr_pendingTest12345678abcd")

    assert entry.status is PendingStatus.PENDING
    assert entry.retry_count == 0
    assert entry.scanned_at == clock()
    assert len(q.all()) == 1


def test_enqueue_duplicate_is_noop(store, clock):
    q = PendingQueue(store, clock=clock)
    q.enqueue("qr_duplicateTest123456abcd")
    q.enqueue("qr_duplicateTest123456abcd")
    assert len(q.all()) == 1


def test_enqueue_sixth_fails_without_mutation(store, clock):
    q = PendingQueue(store, clock=clock)
    for i in range(5):
        q.enqueue(tok(i))

    with pytest.raises(QueueFullError):
        q.enqueue(tok(5))

    assert q.pending_count() == 5
    assert store.get_pending(tok(5)) is None
    # already-queued tokens are still accepted as no-ops when full
    assert q.enqueue(tok(0)).token == tok(0)


def test_failed_entries_free_capacity(store, clock):
    q = PendingQueue(store, clock=clock)
    for i in range(5):
        q.enqueue(tok(i))
    entry = store.get_pending(tok(0))
    entry.status = PendingStatus.FAILED
    store.save_pending(entry)

    q.enqueue(tok(5))
    assert q.pending_count() == 5
    assert len(q.all()) == 6


def test_retry_eligible_oldest_first(store, clock):
    q = PendingQueue(store, clock=clock)
    for i in (2, 0, 1):
        q.enqueue(tok(i), scanned_at=clock.now.replace(minute=i))
    assert [e.token for e in q.retry_eligible()] == [tok(0), tok(1), tok(2)]


def test_drain_success_removes_entry(store, clock):
    q = PendingQueue(store, clock=clock)
    q.enqueue(tok(0))
    settled = []

    report = q.drain(lambda t: make_data(), lambda t, d: settled.append((t, d)))

    assert report.resolved == [tok(0)]
    assert settled and settled[0][0] == tok(0)
    assert q.all() == []


def test_drain_terminal_errors_fail_immediately(store, clock):
    q = PendingQueue(store, clock=clock)
    q.enqueue(tok(0))
    q.enqueue(tok(1))
    codes = {tok(0): RemoteErrorCode.NOT_FOUND, tok(1): RemoteErrorCode.INACTIVE}

    def resolve(t):
        raise RemoteResolveError(codes[t])

    report = q.drain(resolve, lambda t, d: None)

    assert sorted(report.failed) == [tok(0), tok(1)]
    assert all(e.status is PendingStatus.FAILED and e.retry_count == 1 for e in q.all())
    assert q.retry_eligible() == []


def test_drain_network_error_requeues(store, clock):
    q = PendingQueue(store, clock=clock)
    q.enqueue(tok(0))

    def resolve(t):
        raise RemoteResolveError(RemoteErrorCode.NETWORK_ERROR)

    report = q.drain(resolve, lambda t, d: None)

    entry = store.get_pending(tok(0))
    assert report.requeued == [tok(0)]
    assert entry.status is PendingStatus.PENDING
    assert entry.retry_count == 1
    assert entry.last_retry_at == clock()


def test_three_transient_failures_exhaust_entry(store, clock):
    q = PendingQueue(store, clock=clock)
    q.enqueue(tok(0))

    def resolve(t):
        raise RemoteResolveError(RemoteErrorCode.SERVER_ERROR)

    for attempt in range(1, 4):
        clock.advance(60)
        q.drain(resolve, lambda t, d: None)
        entry = store.get_pending(tok(0))
        assert entry.retry_count == attempt

    assert entry.status is PendingStatus.FAILED
    assert q.retry_eligible() == []
    assert len(q.all()) == 1  # kept for visibility

    # a further drain does not touch it
    assert q.drain(resolve, lambda t, d: None).attempted == 0


def test_drain_isolates_failures(store, clock):
    q = PendingQueue(store, clock=clock)
    for i in range(3):
        q.enqueue(tok(i), scanned_at=clock.now.replace(minute=i))
    seen = []

    def resolve(t):
        seen.append(t)
        if t == tok(0):
            raise RuntimeError("boom")
        if t == tok(1):
            raise RemoteResolveError(RemoteErrorCode.RATE_LIMITED)
        return make_data()

    report = q.drain(resolve, lambda t, d: None)

    assert seen == [tok(0), tok(1), tok(2)]
    assert report.resolved == [tok(2)]
    assert report.requeued == [tok(0), tok(1)]


def test_settle_failure_keeps_entry(store, clock):
    q = PendingQueue(store, clock=clock)
    q.enqueue(tok(0))

    def settle(t, d):
        raise RemoteResolveError(RemoteErrorCode.DECODING_ERROR)

    report = q.drain(lambda t: make_data(), settle)
    assert report.requeued == [tok(0)]
    assert store.get_pending(tok(0)) is not None


class Cancelled(BaseException):
    """Stands in for task cancellation or an interrupt during a network call."""


@pytest.mark.parametrize("error", [RemoteResolveError(RemoteErrorCode.NETWORK_ERROR), RuntimeError("socket closed")])
def test_network_failures_share_attempt_cap(store, clock, error):
    q = PendingQueue(store, clock=clock)
    q.enqueue(tok(0))

    def resolve(t):
        raise error

    reports = []
    for _ in range(3):
        clock.advance(60)
        reports.append(q.drain(resolve, lambda t, d: None))

    assert [r.requeued for r in reports[:2]] == [[tok(0)], [tok(0)]]
    assert reports[2].failed == [tok(0)]
    entry = store.get_pending(tok(0))
    assert entry.status is PendingStatus.FAILED
    assert entry.retry_count == 3
    assert q.retry_eligible() == []
    assert q.pending_count() == 0


def test_interrupted_drain_puts_entry_back(store, clock):
    q = PendingQueue(store, clock=clock)
    q.enqueue(tok(0))

    def resolve(t):
        raise Cancelled()

    with pytest.raises(Cancelled):
        q.drain(resolve, lambda t, d: None)

    entry = store.get_pending(tok(0))
    assert entry.status is PendingStatus.PENDING
    assert entry.retry_count == 1
    assert [e.token for e in q.retry_eligible()] == [tok(0)]


def test_resolving_entry_recovered_after_restart(tmp_path, clock):
    from verity_core.storage import SQLiteStorage

    path = str(tmp_path / "verity_state.db")
    s1 = SQLiteStorage(path)
    PendingQueue(s1, clock=clock).enqueue(tok(0))
    entry = s1.get_pending(tok(0))
    entry.status = PendingStatus.RESOLVING
    entry.retry_count = 1
    s1.save_pending(entry)
    s1.close()

    s2 = SQLiteStorage(path)
    q = PendingQueue(s2, clock=clock)

    assert q.pending_count() == 1
    assert [e.token for e in q.retry_eligible()] == [tok(0)]
    report = q.drain(lambda t: make_data(), lambda t, d: None)
    assert report.resolved == [tok(0)]
    s2.close()


def test_recovery_respects_attempt_cap(store, clock):
    q = PendingQueue(store, clock=clock)
    q.enqueue(tok(0))
    entry = store.get_pending(tok(0))
    entry.status = PendingStatus.RESOLVING
    entry.retry_count = 3
    store.save_pending(entry)

    assert q.recover_interrupted() == [tok(0)]
    assert store.get_pending(tok(0)).status is PendingStatus.FAILED
