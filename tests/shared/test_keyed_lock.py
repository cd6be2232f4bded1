"""Tests for KeyedLock."""

import asyncio

from streamcart.shared.keyed_lock import KeyedLock


class TestKeyedLock:
    async def test_same_key_serializes(self):
        locks = KeyedLock("session")
        order: list[str] = []

        async def worker(name: str, delay: float):
            async with locks.hold("se_1"):
                order.append(f"{name}:in")
                await asyncio.sleep(delay)
                order.append(f"{name}:out")

        await asyncio.gather(worker("a", 0.02), worker("b", 0))

        assert order == ["a:in", "a:out", "b:in", "b:out"]

    async def test_different_keys_do_not_block(self):
        locks = KeyedLock("session")

        async with locks.hold("se_1"):
            assert locks.is_locked("se_1") is True
            assert locks.is_locked("se_2") is False
            async with locks.hold("se_2"):
                assert len(locks) == 2

    async def test_entries_dropped_when_released(self):
        locks = KeyedLock("session")

        async with locks.hold("se_1"):
            pass

        assert len(locks) == 0
