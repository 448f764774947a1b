"""Keyboard helpers for LedgerForge bots."""

from __future__ import annotations

from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from ..storage.base import ShopItemRecord

CALLBACK_PREFIX = "ledgerforge"


def blackjack_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="🃏 Ещё", callback_data=f"{CALLBACK_PREFIX}:bj:hit"),
                InlineKeyboardButton(text="✋ Хватит", callback_data=f"{CALLBACK_PREFIX}:bj:stand"),
            ],
            [InlineKeyboardButton(text="🏳️ Сдаться", callback_data=f"{CALLBACK_PREFIX}:bj:abandon")],
        ]
    )


def shop_keyboard(items: Sequence[ShopItemRecord]) -> InlineKeyboardMarkup:
    buttons = [
        [
            InlineKeyboardButton(
                text=f"🛒 {item.name} — {item.price}",
                callback_data=f"{CALLBACK_PREFIX}:buy:{item.item_id}",
            )
        ]
        for item in items
    ]
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def welcome_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="💰 Баланс", callback_data=f"{CALLBACK_PREFIX}:balance")],
            [InlineKeyboardButton(text="🛍️ Магазин", callback_data=f"{CALLBACK_PREFIX}:shop")],
            [InlineKeyboardButton(text="ℹ️ Помощь", callback_data=f"{CALLBACK_PREFIX}:help")],
        ]
    )
