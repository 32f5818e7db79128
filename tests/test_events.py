"""Tests for EventEmitter."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from migrator.utils.events import EventEmitter


class TestEventEmitter:
    @pytest.mark.asyncio
    async def test_sync_and_async_listeners(self):
        emitter = EventEmitter()
        sync_cb = MagicMock()
        async_cb = AsyncMock()
        emitter.on("batch_complete", sync_cb)
        emitter.on("batch_complete", async_cb)

        await emitter.emit("batch_complete", 1, 3)

        sync_cb.assert_called_once_with(1, 3)
        async_cb.assert_awaited_once_with(1, 3)

    @pytest.mark.asyncio
    async def test_listener_error_is_logged_not_raised(self):
        emitter = EventEmitter()
        after = MagicMock()
        emitter.on("finish", MagicMock(side_effect=RuntimeError("display broke")))
        emitter.on("finish", after)

        await emitter.emit("finish", "summary")

        after.assert_called_once_with("summary")

    @pytest.mark.asyncio
    async def test_off(self):
        emitter = EventEmitter()
        cb = MagicMock()
        emitter.on("phase", cb)
        emitter.off("phase", cb)

        await emitter.emit("phase", "init")

        cb.assert_not_called()
