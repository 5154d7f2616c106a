"""Tests for the conversation slot store."""

from __future__ import annotations

import random

import pytest

from convstore.errors import CapacityError, InvalidAccountData, InvalidIndexError
from convstore.state import DEFAULT_CAPACITY, Conversation, Conversations, Message, Sender

OWNER = bytes(range(32))


def make_conversation(n: int = 0) -> Conversation:
    return Conversation(
        owner=OWNER,
        created_at=1625097600 + n,
        messages=[],
        content_summary=[f"test{n}"],
        description=f"Test description {n}",
    )


def assert_invariants(store: Conversations) -> None:
    assert len(store.slots) == store.capacity
    assert store.occupied_count == sum(1 for s in store.slots if s is not None)
    assert store.occupied_count <= store.capacity


class TestAdd:
    def test_first_add_lands_in_slot_zero(self):
        store = Conversations.new(3)
        assert store.occupied_count == 0

        conv = make_conversation()
        assert store.add(conv) == 0
        assert store.occupied_count == 1
        assert store.slots[0] is conv
        assert store.is_initialized()

    def test_fills_slots_in_order(self):
        store = Conversations.new(3)
        assert [store.add(make_conversation(i)) for i in range(3)] == [0, 1, 2]
        assert store.is_full()

    def test_reuses_lowest_empty_slot(self):
        store = Conversations.new(3)
        for i in range(3):
            store.add(make_conversation(i))
        store.remove(1)
        store.remove(2)
        assert store.add(make_conversation(9)) == 1
        assert store.slots[1].created_at == 1625097609

    def test_full_capacity(self):
        store = Conversations.new(1)
        store.add(make_conversation(1))
        with pytest.raises(CapacityError):
            store.add(make_conversation(2))
        assert store.occupied_count == 1
        assert len(store.slots) == 1

    def test_zero_capacity(self):
        store = Conversations.new(0)
        assert not store.is_initialized()
        assert store.is_full()
        with pytest.raises(CapacityError):
            store.add(make_conversation())
        assert store.slots == []

    def test_negative_capacity_rejected(self):
        with pytest.raises(ValueError):
            Conversations.new(-1)


class TestRemove:
    def test_remove_then_remove_again(self):
        store = Conversations.new(3)
        conv = make_conversation()
        store.add(conv)

        assert store.remove(0) is conv
        assert store.occupied_count == 0
        assert store.slots[0] is None

        with pytest.raises(InvalidIndexError):
            store.remove(0)
        assert store.occupied_count == 0

    @pytest.mark.parametrize("index", [3, 99, -1])
    def test_out_of_range(self, index: int):
        store = Conversations.new(3)
        store.add(make_conversation())
        with pytest.raises(InvalidIndexError):
            store.remove(index)
        assert store.occupied_count == 1


class TestQueries:
    def test_get(self):
        store = Conversations.new(2)
        conv = make_conversation()
        store.add(conv)
        assert store.get(0) is conv
        assert store.get(1) is None
        with pytest.raises(InvalidIndexError):
            store.get(2)

    def test_occupied(self):
        store = Conversations.new(3)
        for i in range(3):
            store.add(make_conversation(i))
        store.remove(1)
        assert [index for index, _ in store.occupied()] == [0, 2]


class TestFromBytes:
    def test_empty_buffer_initializes_default_store(self):
        store = Conversations.from_bytes(b"")
        assert store.capacity == DEFAULT_CAPACITY == 3
        assert store.occupied_count == 0
        assert store.slots == [None, None, None]
        assert store.is_initialized()

    def test_empty_buffer_uses_configured_capacity(self):
        store = Conversations.from_bytes(b"", capacity=5)
        assert store.capacity == 5
        assert len(store.slots) == 5

    def test_round_trip(self):
        store = Conversations.new(3)
        store.add(make_conversation(0))
        store.add(
            Conversation(
                owner=bytes(32),
                created_at=1,
                messages=[Message(Sender.USER, "hi", image_url="u", image_description=None)],
                content_summary=[],
                description="",
            )
        )
        store.remove(0)
        assert Conversations.from_bytes(store.to_bytes()) == store

    def test_stored_capacity_wins(self):
        data = Conversations.new(2).to_bytes()
        assert Conversations.from_bytes(data, capacity=5).capacity == 2

    def test_malformed_buffer(self):
        with pytest.raises(InvalidAccountData):
            Conversations.from_bytes(b"\x01")

    def test_trailing_bytes(self):
        with pytest.raises(InvalidAccountData):
            Conversations.from_bytes(Conversations.new(1).to_bytes() + b"\x00")

    def test_inconsistent_count(self):
        data = Conversations(slots=[None], capacity=1, occupied_count=1).to_bytes()
        with pytest.raises(InvalidAccountData):
            Conversations.from_bytes(data)

    def test_slot_length_mismatch(self):
        data = Conversations(slots=[None], capacity=2, occupied_count=0).to_bytes()
        with pytest.raises(InvalidAccountData):
            Conversations.from_bytes(data)


class TestInvariants:
    def test_random_operations_keep_count_in_sync(self):
        rng = random.Random(1234)
        store = Conversations.new(4)
        for step in range(300):
            if rng.random() < 0.55:
                try:
                    store.add(make_conversation(step))
                except CapacityError:
                    assert store.is_full()
            else:
                index = rng.randrange(-1, 6)
                try:
                    store.remove(index)
                except InvalidIndexError:
                    pass
            assert_invariants(store)
            assert Conversations.from_bytes(store.to_bytes()) == store
