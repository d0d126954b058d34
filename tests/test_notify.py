"""Tests for snapshot subscriptions."""

from aid_ledger.core.models import LedgerSnapshot, User
from aid_ledger.notify import Publisher


def _user(n: int) -> User:
    return User(user_id=f"u{n}", full_name=f"User {n}", email=f"user{n}@example.edu")


def test_subscribe_delivers_current_snapshot_immediately(store) -> None:
    seen = []
    store.subscribe(seen.append)
    assert seen == [store.get_snapshot()]


def test_every_commit_is_delivered_in_order(store) -> None:
    seen = []
    store.subscribe(seen.append)
    for n in range(3):
        store.mutate(_user(n))

    assert [s.version for s in seen] == [0, 1, 2, 3]
    assert [len(s.users) for s in seen] == [0, 1, 2, 3]


def test_cancel_stops_delivery_without_affecting_others(store) -> None:
    first, second = [], []
    handle = store.subscribe(first.append)
    store.subscribe(second.append)
    assert store.subscriber_count == 2

    handle()  # handles are callable
    store.mutate(_user(1))

    assert len(first) == 1
    assert len(second) == 2
    assert store.subscriber_count == 1

    handle.cancel()  # cancelling twice is harmless
    assert store.subscriber_count == 1


def test_failing_subscriber_does_not_break_others(store) -> None:
    def explode(snapshot):
        raise RuntimeError("render failed")

    seen = []
    store.subscribe(explode)
    store.subscribe(seen.append)
    store.mutate(_user(1))

    assert [s.version for s in seen] == [0, 1]
    assert store.find_user("u1") is not None


def test_delivery_is_monotonic_with_reentrant_writers(store) -> None:
    """A subscriber that writes while being notified must not cause stale
    deliveries to subscribers notified after it."""

    def writer(snapshot):
        if snapshot.version == 1:
            store.mutate(_user(99))

    late = []
    store.subscribe(writer)
    store.subscribe(late.append)
    store.mutate(_user(1))

    versions = [s.version for s in late]
    assert versions == sorted(versions)
    assert versions[-1] == 2
    assert len(versions) == len(set(versions))


def test_failed_mutation_is_not_published(store) -> None:
    seen = []
    store.subscribe(seen.append)
    try:
        with store.transaction() as txn:
            txn.append(_user(1))
            raise ValueError("validation failed")
    except ValueError:
        pass
    assert len(seen) == 1


def test_close_drops_subscribers(tmp_path) -> None:
    from aid_ledger.core.storage import LedgerStore

    store = LedgerStore(tmp_path / "ledger.json", seed=LedgerSnapshot()).open()
    store.subscribe(lambda snap: None)
    store.close()
    assert store.subscriber_count == 0


def test_publisher_drops_stale_snapshots() -> None:
    current = LedgerSnapshot(version=5)
    publisher = Publisher(lambda: current)
    seen = []
    sub = publisher.subscribe(seen.append)

    publisher.publish(LedgerSnapshot(version=3))
    publisher.publish(LedgerSnapshot(version=5))
    publisher.publish(LedgerSnapshot(version=6))

    assert [s.version for s in seen] == [5, 6]
    assert sub.last_version == 6
