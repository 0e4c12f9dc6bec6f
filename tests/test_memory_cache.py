"""
Tests for the in-memory response cache.
"""

import pytest

from mindmend_relay.entities import ChatMessage, Role
from mindmend_relay.repositories import InMemoryResponseCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def user(text):
    return ChatMessage(role=Role.USER, content=text)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return InMemoryResponseCache(ttl_seconds=300, max_entries=100, key_length=50, clock=clock)


def test_key_uses_latest_user_message(cache):
    messages = [
        user("earlier message"),
        ChatMessage(role=Role.ASSISTANT, content="a reply"),
        user("I feel  anxious\ttoday"),
    ]
    assert cache.compute_key(messages) == "chat_I_feel_anxious_today"


def test_key_is_none_without_user_message(cache):
    assert cache.compute_key([]) is None
    assert cache.compute_key([ChatMessage(role=Role.SYSTEM, content="be kind")]) is None


def test_long_messages_with_same_prefix_share_a_key(cache):
    prefix = "x" * 50
    assert cache.compute_key([user(prefix + " first")]) == cache.compute_key([user(prefix + " second")])


def test_get_returns_value_within_ttl(cache, clock):
    cache.put("chat_hello", "Hi there")
    clock.advance(299.9)
    assert cache.get("chat_hello") == "Hi there"


def test_expired_entry_is_removed_on_read(cache, clock):
    cache.put("chat_hello", "Hi there")
    clock.advance(300.1)
    assert cache.get("chat_hello") is None
    assert "chat_hello" not in cache
    assert len(cache) == 0


def test_missing_key_is_a_miss(cache):
    assert cache.get("chat_nothing") is None
    assert cache.get_stats()["misses"] == 1


def test_capacity_evicts_oldest_insert(cache):
    for i in range(101):
        cache.put(f"chat_{i}", f"reply {i}")

    assert len(cache) == 100
    assert "chat_0" not in cache
    assert "chat_100" in cache
    assert cache.get_stats()["evictions"] == 1


def test_reads_do_not_change_eviction_order(clock):
    cache = InMemoryResponseCache(max_entries=2, clock=clock)
    cache.put("chat_a", "A")
    cache.put("chat_b", "B")
    assert cache.get("chat_a") == "A"

    cache.put("chat_c", "C")

    assert cache.keys() == ["chat_b", "chat_c"]


def test_overwrite_keeps_insertion_position(clock):
    cache = InMemoryResponseCache(max_entries=2, clock=clock)
    cache.put("chat_a", "A")
    cache.put("chat_b", "B")
    cache.put("chat_a", "A2")

    cache.put("chat_c", "C")

    assert "chat_a" not in cache
    assert cache.get("chat_b") == "B"


def test_clear_returns_count(cache):
    cache.put("chat_a", "A")
    cache.put("chat_b", "B")
    assert cache.clear() == 2
    assert len(cache) == 0


def test_stats(cache):
    cache.put("chat_a", "A")
    cache.get("chat_a")
    cache.get("chat_b")

    stats = cache.get_stats()

    assert stats["total_entries"] == 1
    assert stats["max_entries"] == 100
    assert stats["ttl_seconds"] == 300
    assert stats["hits"] == 1
    assert stats["misses"] == 1


def test_rejects_invalid_bounds():
    with pytest.raises(ValueError):
        InMemoryResponseCache(ttl_seconds=0)
    with pytest.raises(ValueError):
        InMemoryResponseCache(max_entries=0)
