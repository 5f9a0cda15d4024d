from presence import SEEN, STALE, UNKNOWN, is_online, presence_state


def test_is_online_boundary():
    assert is_online(now=130.0, last_seen=100.0, window=30.0)
    assert is_online(now=129.999, last_seen=100.0, window=30.0)
    assert not is_online(now=130.001, last_seen=100.0, window=30.0)


def test_presence_state():
    record = {"last_seen": 100.0}

    assert presence_state(None, 100.0, 30.0) == UNKNOWN
    assert presence_state(record, 110.0, 30.0) == SEEN
    assert presence_state(record, 200.0, 30.0) == STALE
