"""Telegram Bot API calls that never take a committed ledger operation down with them."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from aiogram.exceptions import (
    TelegramAPIError,
    TelegramBadRequest,
    TelegramForbiddenError,
    TelegramRetryAfter,
)
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

P = ParamSpec("P")
T = TypeVar("T")

logger = logging.getLogger(__name__)

MAX_RETRY_DELAY = 30.0


async def safe_api_call(
    label: str,
    func: Callable[P, Awaitable[T]],
    *args: P.args,
    retries: int = 3,
    **kwargs: P.kwargs,
) -> T | None:
    """Run a Telegram API call; flood-control waits are retried, other API errors logged.

    The economic operation behind a reply is already committed by the time the
    reply is sent, so a delivery failure is reported and swallowed here.
    """
    attempt = 0
    while True:
        try:
            return await func(*args, **kwargs)
        except TelegramRetryAfter as exc:
            attempt += 1
            retry_after = getattr(exc, "retry_after", None)
            if attempt >= retries:
                logger.warning(
                    "Telegram call '%s' gave up after %s attempts (retry_after=%s).",
                    label,
                    attempt,
                    retry_after,
                )
                return None
            delay = min(float(retry_after or 1.0), MAX_RETRY_DELAY)
            logger.info(
                "Telegram call '%s' throttled; retrying in %.1f s (%s/%s).",
                label,
                delay,
                attempt,
                retries,
            )
            await asyncio.sleep(delay)
        except TelegramForbiddenError:
            logger.info("Telegram call '%s' forbidden; the bot was probably blocked.", label)
            return None
        except TelegramBadRequest as exc:
            text = str(exc)
            if "message is not modified" in text.lower():
                logger.debug("Telegram call '%s' skipped: nothing changed.", label)
            else:
                logger.warning("Telegram call '%s' rejected: %s", label, text)
            return None
        except TelegramAPIError as exc:
            logger.error("Telegram call '%s' failed: %s", label, exc, exc_info=True)
            return None


async def safe_message_answer(message: Message | None, text: str, **kwargs) -> bool:
    if not message:
        return False
    return (await safe_api_call("message.answer", message.answer, text, **kwargs)) is not None


async def safe_message_edit_text(message: Message | None, text: str, **kwargs) -> bool:
    if not message:
        return False
    return (
        await safe_api_call("message.edit_text", message.edit_text, text, **kwargs)
    ) is not None


async def safe_callback_answer(
    callback: CallbackQuery | None,
    text: str | None = None,
    **kwargs,
) -> bool:
    """Acknowledge a callback query so the client stops its spinner."""
    if not callback:
        return False
    params = dict(kwargs)
    if text is not None:
        params["text"] = text
    return (await safe_api_call("callback.answer", callback.answer, **params)) is not None


async def safe_callback_update(
    callback: CallbackQuery,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
) -> bool:
    """Replace the text of the message a callback came from, then acknowledge it."""
    edited = await safe_message_edit_text(callback.message, text, reply_markup=reply_markup)
    await safe_callback_answer(callback)
    return edited
