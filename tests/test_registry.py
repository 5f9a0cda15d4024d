import pytest

from commands import PlainCommand, encode_script
from errors import ValidationError
from presence import is_online
from registry import Registry


def online(registry, device_id):
    record = registry.get(device_id)
    return is_online(registry.clock(), record["last_seen"], registry.window)


def test_dequeue_returns_commands_in_enqueue_order(registry):
    for text in ("first", "second", "third"):
        registry.enqueue("PC1", PlainCommand(text))

    assert [registry.dequeue_one("PC1").text for _ in range(3)] == ["first", "second", "third"]
    assert registry.dequeue_one("PC1") is None


def test_dequeue_unknown_device_is_empty(registry):
    assert registry.dequeue_one("nobody") is None


def test_queues_are_per_device(registry):
    registry.enqueue("PC1", PlainCommand("a"))
    registry.enqueue("PC2", PlainCommand("b"))

    assert registry.dequeue_one("PC2").text == "b"
    assert registry.dequeue_one("PC1").text == "a"


def test_enqueue_returns_pending_count(registry):
    assert registry.enqueue("PC1", PlainCommand("a")) == 1
    assert registry.enqueue("PC1", encode_script("Get-Date")) == 2
    assert registry.queue_sizes() == {"PC1": 2}


def test_queue_cap_rejects_overflow(clock):
    registry = Registry(window=30, queue_max=2, clock=clock)
    registry.enqueue("PC1", PlainCommand("a"))
    registry.enqueue("PC1", PlainCommand("b"))

    with pytest.raises(ValidationError) as exc:
        registry.enqueue("PC1", PlainCommand("c"))

    assert exc.value.code == "queue_full"
    assert registry.queue_sizes() == {"PC1": 2}


def test_record_contact_keeps_unset_fields(registry):
    registry.record_contact("PC1", "10.0.0.5", hostname="A", username="alice", os="Windows 11")
    record = registry.record_contact("PC1", "")

    assert record["hostname"] == "A"
    assert record["username"] == "alice"
    assert record["os"] == "Windows 11"
    assert record["ip"] == "10.0.0.5"


def test_record_contact_last_writer_wins(registry, clock):
    registry.record_contact("PC1", "10.0.0.5", hostname="A")
    clock.advance(5)
    record = registry.record_contact("PC1", "10.0.0.9", hostname="B")

    assert record["hostname"] == "B"
    assert record["ip"] == "10.0.0.9"
    assert record["last_seen"] == clock.now


def test_record_contact_stringifies_metadata(registry):
    record = registry.record_contact("PC1", "", os=11)
    assert record["os"] == "11"


@pytest.mark.parametrize("elapsed, expected", [
    (0, True),
    (29.999, True),
    (30.0, True),
    (30.001, False),
    (300, False),
])
def test_online_flag_at_window_boundary(registry, clock, elapsed, expected):
    registry.record_contact("PC1", "10.0.0.5")
    clock.advance(elapsed)

    (device,) = registry.list()
    assert device["online"] is expected
    assert online(registry, "PC1") is expected


def test_contact_brings_stale_device_back_online(registry, clock):
    registry.record_contact("PC1", "10.0.0.5")
    clock.advance(120)
    assert online(registry, "PC1") is False

    registry.record_contact("PC1", "10.0.0.5")
    assert online(registry, "PC1") is True


def test_list_orders_by_most_recent_contact(registry, clock):
    registry.record_contact("old", "")
    clock.advance(1)
    registry.record_contact("middle", "")
    clock.advance(1)
    registry.record_contact("new", "")

    assert [d["id"] for d in registry.list()] == ["new", "middle", "old"]


def test_remove_drops_record_and_queue(registry):
    registry.record_contact("PC1", "10.0.0.5")
    registry.enqueue("PC1", PlainCommand("notepad.exe"))

    assert registry.remove("PC1") is True
    assert registry.dequeue_one("PC1") is None
    assert registry.list() == []
    assert registry.queue_sizes() == {}


def test_remove_unknown_device(registry):
    assert registry.remove("ghost") is False


def test_stats_counts(registry, clock):
    registry.record_contact("a", "")
    registry.record_contact("b", "")
    clock.advance(60)
    registry.record_contact("c", "")
    registry.remove("b")

    stats = registry.stats()
    assert stats["installed"] == 3
    assert stats["active"] == 1
    assert stats["offline"] == 1
    assert stats["deleted"] == 1
    assert stats["ts"] == int(clock.now * 1000)
