"""Unit tests for UserSyncLocks."""

import pytest

from app.services.sync import UserSyncLocks


class TestUserSyncLocks:
    @pytest.mark.asyncio
    async def test_first_holder_acquires(self):
        locks = UserSyncLocks()

        async with locks.hold("u1") as acquired:
            assert acquired is True
            assert locks.is_locked("u1")

    @pytest.mark.asyncio
    async def test_second_holder_does_not_wait(self):
        locks = UserSyncLocks()

        async with locks.hold("u1"):
            async with locks.hold("u1") as acquired:
                assert acquired is False

    @pytest.mark.asyncio
    async def test_users_do_not_block_each_other(self):
        locks = UserSyncLocks()

        async with locks.hold("u1"), locks.hold("u2") as acquired:
            assert acquired is True
            assert len(locks) == 2

    @pytest.mark.asyncio
    async def test_released_and_forgotten_after_exit(self):
        locks = UserSyncLocks()

        async with locks.hold("u1"):
            pass

        assert not locks.is_locked("u1")
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_released_when_body_raises(self):
        locks = UserSyncLocks()

        with pytest.raises(RuntimeError):
            async with locks.hold("u1"):
                raise RuntimeError("boom")

        async with locks.hold("u1") as acquired:
            assert acquired is True

    @pytest.mark.asyncio
    async def test_rejected_holder_leaves_lock_in_place(self):
        locks = UserSyncLocks()

        async with locks.hold("u1"):
            async with locks.hold("u1"):
                pass
            assert locks.is_locked("u1")
