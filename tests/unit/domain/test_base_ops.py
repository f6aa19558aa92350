"""Unit tests for BaseOperations, all DB calls mocked.

Uses SelectedRepository as the concrete type since BaseOperations requires a
real SQLModel class for select() to build valid query expressions.
"""

from unittest.mock import AsyncMock

import pytest

from app.domain.base_operations import BaseOperations
from app.models.selected_repository import SelectedRepository

from tests.helpers.mock_factories import (
    mock_rowcount_result,
    mock_scalar_result,
)


class TestCountByUser:
    def setup_method(self):
        self.ops = BaseOperations(SelectedRepository)
        self.db = AsyncMock()

    @pytest.mark.asyncio
    async def test_count(self):
        self.db.execute = AsyncMock(return_value=mock_scalar_result(4))

        assert await self.ops.count_by_user(self.db, "u") == 4

    @pytest.mark.asyncio
    async def test_none_is_zero(self):
        self.db.execute = AsyncMock(return_value=mock_scalar_result(None))

        assert await self.ops.count_by_user(self.db, "u") == 0


class TestDeleteAllForUser:
    def setup_method(self):
        self.ops = BaseOperations(SelectedRepository)
        self.db = AsyncMock()

    @pytest.mark.asyncio
    async def test_returns_rowcount_and_flushes(self):
        self.db.execute = AsyncMock(return_value=mock_rowcount_result(3))

        assert await self.ops.delete_all_for_user(self.db, "u") == 3
        self.db.flush.assert_awaited_once()
