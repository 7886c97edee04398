# pylint: disable=missing-module-docstring,missing-function-docstring

import threading

import pytest

from rolling_restart_sim.registry import CounterIdentity, CounterRegistry, RegistryError


def test_register_starts_visible_at_initial_value():
    registry = CounterRegistry()
    identity = CounterIdentity(batch=0, slot=1)

    registry.register(identity, initial_value=4)

    assert identity in registry
    assert registry.is_visible(identity)
    assert registry.value(identity) == 4
    assert [(s.identity, s.value) for s in registry.snapshot()] == [(identity, 4)]


def test_double_register_is_fatal():
    registry = CounterRegistry()
    identity = CounterIdentity(0, 0)
    registry.register(identity)

    with pytest.raises(RegistryError):
        registry.register(identity)


def test_retired_identity_cannot_be_reused():
    registry = CounterRegistry()
    identity = CounterIdentity(0, 0)
    registry.register(identity)
    registry.unregister(identity)

    assert identity not in registry
    with pytest.raises(RegistryError):
        registry.register(identity)


def test_unregister_absent_identity_is_fatal():
    registry = CounterRegistry()

    with pytest.raises(RegistryError):
        registry.unregister(CounterIdentity(3, 3))


def test_increment_requires_live_identity():
    registry = CounterRegistry()

    with pytest.raises(RegistryError):
        registry.increment(CounterIdentity(0, 0))


def test_counters_never_decrease():
    registry = CounterRegistry()
    identity = CounterIdentity(0, 0)

    with pytest.raises(RegistryError):
        registry.register(identity, initial_value=-1)
    registry.register(identity)
    with pytest.raises(RegistryError):
        registry.increment(identity, -2)


def test_hidden_counter_keeps_accumulating():
    registry = CounterRegistry()
    identity = CounterIdentity(1, 0)
    registry.register(identity)
    registry.increment(identity)

    registry.set_visible(identity, False)
    registry.increment(identity)
    registry.increment(identity)

    assert registry.snapshot() == []
    assert len(registry) == 1

    registry.set_visible(identity, True)
    assert [s.value for s in registry.snapshot()] == [3]


def test_snapshot_is_ordered_and_unique():
    registry = CounterRegistry()
    for identity in (CounterIdentity(1, 2), CounterIdentity(0, 1), CounterIdentity(1, 0), CounterIdentity(0, 0)):
        registry.register(identity)
    registry.set_visible(CounterIdentity(1, 0), False)

    identities = [sample.identity for sample in registry.snapshot()]

    assert identities == [CounterIdentity(0, 0), CounterIdentity(0, 1), CounterIdentity(1, 2)]
    assert registry.live_identities() == [
        CounterIdentity(0, 0),
        CounterIdentity(0, 1),
        CounterIdentity(1, 0),
        CounterIdentity(1, 2),
    ]


def test_snapshot_values_are_monotonic():
    registry = CounterRegistry()
    identity = CounterIdentity(0, 0)
    registry.register(identity)

    seen = []
    for _ in range(5):
        registry.increment(identity)
        seen.append(registry.snapshot()[0].value)

    assert seen == sorted(seen)
    assert all(value >= 0 for value in seen)


def test_identity_labels():
    assert CounterIdentity(batch=7, slot=2).labels() == {"batch": "7", "task": "2"}


# ---------------------------------------------------------------------
# Concurrent writers and readers
# ---------------------------------------------------------------------

def test_concurrent_increments_and_snapshots():
    registry = CounterRegistry()
    identities = [CounterIdentity(0, slot) for slot in range(8)]
    increments = 2000
    done = threading.Event()
    snapshots = []

    def writer(identity):
        registry.register(identity)
        for _ in range(increments):
            registry.increment(identity)

    def reader():
        while not done.is_set():
            snapshots.append({s.identity: s.value for s in registry.snapshot()})

    reader_thread = threading.Thread(target=reader)
    reader_thread.start()
    writers = [threading.Thread(target=writer, args=(identity,)) for identity in identities]
    for thread in writers:
        thread.start()
    for thread in writers:
        thread.join()
    final = {s.identity: s.value for s in registry.snapshot()}
    done.set()
    reader_thread.join()

    assert final == {identity: increments for identity in identities}
    last_seen = {}
    for snapshot in snapshots:
        assert len(snapshot) <= len(identities)
        for identity, value in snapshot.items():
            assert 0 <= value <= increments
            assert value >= last_seen.get(identity, 0)
            last_seen[identity] = value


def test_concurrent_register_and_unregister():
    registry = CounterRegistry()
    errors = []

    def churn(slot):
        try:
            for batch in range(200):
                identity = CounterIdentity(batch, slot)
                registry.register(identity)
                registry.increment(identity)
                registry.unregister(identity)
        except Exception as exc:  # pylint: disable=broad-except
            errors.append(exc)

    threads = [threading.Thread(target=churn, args=(slot,)) for slot in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(registry) == 0
