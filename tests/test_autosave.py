"""
Autosave tests - debounced draft writes
"""
import asyncio

import pytest
from unittest.mock import AsyncMock

from kare.api.errors import ApiError
from kare.navigation.autosave import AutosaveCoordinator

DELAY = 0.05


@pytest.mark.asyncio
async def test_changes_within_delay_write_once():
    """Test two quick changes produce one write with the latest answers"""
    save = AsyncMock()
    autosave = AutosaveCoordinator(save, delay=DELAY)

    autosave.set_answer("insurance", "private")
    await asyncio.sleep(DELAY / 5)
    autosave.set_answer("insurance", "medicare")
    await asyncio.sleep(DELAY * 4)

    save.assert_awaited_once_with({"insurance": "medicare"})
    await autosave.aclose()


@pytest.mark.asyncio
async def test_changes_after_delay_write_again():
    """Test changes separated by the quiet period each get written"""
    save = AsyncMock()
    autosave = AutosaveCoordinator(save, delay=DELAY)

    autosave.set_answer("insurance", "private")
    await asyncio.sleep(DELAY * 4)
    autosave.update({"employment": "retired"})
    await asyncio.sleep(DELAY * 4)

    assert save.await_count == 2
    assert save.await_args.args[0] == {"insurance": "private", "employment": "retired"}
    await autosave.aclose()


@pytest.mark.asyncio
async def test_empty_draft_is_not_written():
    """Test a flush with no answers makes no write"""
    save = AsyncMock()
    autosave = AutosaveCoordinator(save, delay=DELAY)
    await autosave.flush()
    save.assert_not_called()


@pytest.mark.asyncio
async def test_no_write_while_loading():
    """Test changes made during the initial load do not trigger a write"""
    save = AsyncMock()
    autosave = AutosaveCoordinator(save, delay=DELAY)
    release = asyncio.Event()

    async def fetch():
        await release.wait()
        return {"insurance": "medicaid", "employment": "full_time"}

    loading = asyncio.create_task(autosave.load(fetch))
    await asyncio.sleep(0)
    autosave.set_answer("employment", "retired")
    release.set()
    answers = await loading
    await asyncio.sleep(DELAY * 4)

    save.assert_not_called()
    assert answers == {"insurance": "medicaid", "employment": "retired"}


@pytest.mark.asyncio
async def test_cancel_drops_pending_write():
    """Test a cancelled draft is never written"""
    save = AsyncMock()
    autosave = AutosaveCoordinator(save, delay=DELAY)

    autosave.set_answer("insurance", "private")
    assert autosave.has_pending_write
    autosave.cancel()
    await asyncio.sleep(DELAY * 4)

    save.assert_not_called()
    assert not autosave.has_pending_write


@pytest.mark.asyncio
async def test_flush_writes_immediately():
    """Test flush writes the draft without waiting and clears the pending write"""
    save = AsyncMock()
    autosave = AutosaveCoordinator(save, delay=10)

    autosave.set_answer("insurance", "private")
    await autosave.flush()

    save.assert_awaited_once_with({"insurance": "private"})
    assert not autosave.has_pending_write


@pytest.mark.asyncio
async def test_write_failure_is_not_raised(caplog):
    """Test a failed write is logged and the draft is kept"""
    save = AsyncMock(side_effect=ApiError("Unable to connect to server"))
    autosave = AutosaveCoordinator(save, delay=DELAY)

    autosave.set_answer("insurance", "private")
    await asyncio.sleep(DELAY * 4)

    assert save.await_count == 1
    assert autosave.writes == 0
    assert autosave.answers == {"insurance": "private"}
    assert "Autosave failed" in caplog.text
    await autosave.aclose()
