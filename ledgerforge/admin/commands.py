"""Admin command wiring for aiogram."""

from __future__ import annotations

from typing import TYPE_CHECKING

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from ..domain.exceptions import LedgerForgeError
from ..storage.base import ShopItemRecord
from ..telegram.aiogram_router import command_args, describe_error, parse_amount
from ..telegram.api_utils import safe_message_answer
from ..telegram.filters import AdminFilter

if TYPE_CHECKING:
    from ..app import EconomyApp


def build_admin_router(app: EconomyApp) -> Router:
    router = Router()
    router.message.filter(AdminFilter(app.config))
    service = app.admin
    commands = app.config.admin.commands

    @router.message(Command(commands.grant_coins))
    async def handle_grant_coins(message: Message) -> None:
        parts = command_args(message.text)
        amount = parse_amount(parts[1]) if len(parts) > 1 else None
        if amount is None:
            await safe_message_answer(message, f"Использование: /{commands.grant_coins} <user_id> <сумма>")
            return
        guild_id, target = str(message.chat.id), parts[0]
        try:
            wallet = await service.grant_coins(
                guild_id, target, amount, actor_id=str(message.from_user.id)
            )
        except LedgerForgeError as exc:
            await safe_message_answer(message, describe_error(exc))
            return
        await safe_message_answer(message, f"Выдано {amount} пользователю {target}. Кошелёк: {wallet}.")

    @router.message(Command(commands.add_item))
    async def handle_add_item(message: Message) -> None:
        parts = command_args(message.text)
        price = parse_amount(parts[1]) if len(parts) > 1 else None
        if len(parts) < 3 or price is None:
            await safe_message_answer(
                message,
                f"Использование: /{commands.add_item} <item_id> <цена> <название> [| описание]",
            )
            return
        name, _, description = " ".join(parts[2:]).partition("|")
        item = ShopItemRecord(
            guild_id=str(message.chat.id),
            item_id=parts[0],
            name=name.strip(),
            price=price,
            description=description.strip(),
        )
        try:
            await service.create_item(item)
        except ValueError as exc:
            await safe_message_answer(message, f"Не удалось добавить товар: {exc}")
            return
        except LedgerForgeError as exc:
            await safe_message_answer(message, describe_error(exc))
            return
        await safe_message_answer(message, f"Товар {item.item_id} добавлен в магазин.")

    @router.message(Command(commands.restock))
    async def handle_restock(message: Message) -> None:
        parts = command_args(message.text)
        amount = parse_amount(parts[1]) if len(parts) > 1 else None
        if amount is None:
            await safe_message_answer(message, f"Использование: /{commands.restock} <item_id> <кол-во>")
            return
        try:
            item = await service.restock(str(message.chat.id), parts[0], amount)
        except LedgerForgeError as exc:
            await safe_message_answer(message, describe_error(exc))
            return
        stock = "∞" if item.unlimited else item.stock
        await safe_message_answer(message, f"Товар {item.item_id}: в наличии {stock}.")

    @router.message(Command(commands.disable_item))
    async def handle_disable_item(message: Message) -> None:
        parts = command_args(message.text)
        if not parts:
            await safe_message_answer(message, f"Использование: /{commands.disable_item} <item_id>")
            return
        try:
            await service.disable_item(str(message.chat.id), parts[0])
        except LedgerForgeError as exc:
            await safe_message_answer(message, describe_error(exc))
            return
        await safe_message_answer(message, f"Товар {parts[0]} снят с продажи.")

    @router.message(Command(commands.reset_cooldowns))
    async def handle_reset_cooldowns(message: Message) -> None:
        parts = command_args(message.text)
        if not parts:
            await safe_message_answer(message, f"Использование: /{commands.reset_cooldowns} <user_id>")
            return
        try:
            await service.reset_cooldowns(str(message.chat.id), parts[0])
        except LedgerForgeError as exc:
            await safe_message_answer(message, describe_error(exc))
            return
        await safe_message_answer(message, f"Кулдауны пользователя {parts[0]} сброшены.")

    return router
