from unittest.mock import AsyncMock

import pytest
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError, TelegramRetryAfter

from ledgerforge.telegram.api_utils import safe_api_call, safe_message_answer


class DummyForbidden(TelegramForbiddenError):
    def __init__(self) -> None:
        Exception.__init__(self, "forbidden")


class DummyRetryAfter(TelegramRetryAfter):
    def __init__(self, retry_after: float) -> None:
        Exception.__init__(self, f"retry after {retry_after}")
        self.retry_after = retry_after


class DummyBadRequest(TelegramBadRequest):
    def __init__(self, message: str) -> None:
        Exception.__init__(self, message)
        self.message = message

    def __str__(self) -> str:
        return self.message


@pytest.mark.asyncio()
async def test_safe_api_call_returns_result():
    async def ok() -> int:
        return 42

    result = await safe_api_call("test", ok)
    assert result == 42


@pytest.mark.asyncio()
async def test_safe_api_call_handles_forbidden():
    async def forbidden() -> None:
        raise DummyForbidden()

    result = await safe_api_call("forbidden", forbidden)
    assert result is None


@pytest.mark.asyncio()
async def test_safe_api_call_ignores_unmodified_message():
    call = AsyncMock(side_effect=DummyBadRequest("Bad Request: message is not modified"))
    assert await safe_api_call("edit", call) is None
    assert call.await_count == 1


@pytest.mark.asyncio()
async def test_safe_api_call_retries_on_retry_after(monkeypatch):
    mock_call = AsyncMock(side_effect=[DummyRetryAfter(0.0), 7])
    delays = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("ledgerforge.telegram.api_utils.asyncio.sleep", fake_sleep)

    result = await safe_api_call("retry", mock_call, retries=2)
    assert result == 7
    assert mock_call.await_count == 2
    assert delays == [1.0]


@pytest.mark.asyncio()
async def test_safe_api_call_gives_up_after_retries(monkeypatch):
    mock_call = AsyncMock(side_effect=[DummyRetryAfter(120.0), DummyRetryAfter(120.0)])
    delays = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("ledgerforge.telegram.api_utils.asyncio.sleep", fake_sleep)

    assert await safe_api_call("retry", mock_call, retries=2) is None
    assert delays == [30.0]


@pytest.mark.asyncio()
async def test_safe_message_answer_without_message():
    assert await safe_message_answer(None, "hi") is False
