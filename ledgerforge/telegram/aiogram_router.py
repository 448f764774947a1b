"""Factory helpers to wire LedgerForge services into aiogram."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from ..domain.blackjack import BlackjackGame, GameResult
from ..domain.cards import format_hand
from ..domain.exceptions import (
    CooldownActive,
    GameAlreadyActive,
    InsufficientFunds,
    InvalidAmount,
    InvalidBet,
    InvalidTarget,
    ItemNotFound,
    LedgerForgeError,
    NoActiveGame,
    OutOfStock,
    SelfTransfer,
    StorageUnavailable,
)
from ..domain.ledger import Balance, Cooldowns, LeaderboardEntry, RewardClaim
from ..domain.shop import PurchaseResult
from ..domain.wagers import WagerOutcome
from ..storage.base import InventoryRecord, ShopItemRecord, TransactionRecord
from .api_utils import safe_callback_answer, safe_callback_update, safe_message_answer
from .filters import HumanSenderFilter, RewardCooldownFilter
from .keyboards import CALLBACK_PREFIX, blackjack_keyboard, shop_keyboard, welcome_keyboard

if TYPE_CHECKING:
    from ..app import EconomyApp

logger = logging.getLogger(__name__)


def build_router(app: EconomyApp) -> Router:
    router = Router()
    router.message.filter(HumanSenderFilter())
    router.callback_query.filter(HumanSenderFilter())
    ledger = app.ledger
    blackjack = app.blackjack
    wagers = app.wagers
    shop = app.shop

    async def reply_error(message: Message, exc: LedgerForgeError) -> None:
        await safe_message_answer(message, describe_error(exc))

    async def alert_error(callback: CallbackQuery, exc: LedgerForgeError) -> None:
        await safe_callback_answer(callback, describe_error(exc), show_alert=True)

    @router.message(Command("start"))
    async def handle_start(message: Message) -> None:
        await safe_message_answer(message, render_help_message(), reply_markup=welcome_keyboard())

    @router.message(Command("help"))
    async def handle_help(message: Message) -> None:
        await safe_message_answer(message, render_help_message(), reply_markup=welcome_keyboard())

    @router.message(Command("balance"))
    async def handle_balance(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        try:
            balance = await ledger.get_balance(guild_id, user_id)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_balance_message(balance))

    @router.message(Command("daily"))
    async def handle_daily(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        try:
            claim = await ledger.claim_daily(guild_id, user_id)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_daily_message(claim))

    @router.message(Command("work"))
    async def handle_work(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        try:
            claim = await ledger.work(guild_id, user_id)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_work_message(claim))

    @router.message(Command("cooldowns"), RewardCooldownFilter(ledger))
    async def handle_cooldowns(
        message: Message, cooldowns: Cooldowns | None, cooldown_error: LedgerForgeError | None
    ) -> None:
        if cooldown_error is not None:
            await reply_error(message, cooldown_error)
            return
        await safe_message_answer(message, format_cooldowns_message(cooldowns))

    @router.message(Command("pay"))
    async def handle_pay(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        target = message.reply_to_message.from_user if message.reply_to_message else None
        args = command_args(message.text)
        if target is not None:
            recipient_id, recipient_is_bot, raw_amount = str(target.id), target.is_bot, args[:1]
        elif len(args) >= 2:
            recipient_id, recipient_is_bot, raw_amount = args[0], False, args[1:2]
        else:
            await safe_message_answer(
                message, "Использование: /pay <user_id> <сумма> или ответом на сообщение: /pay <сумма>"
            )
            return
        amount = parse_amount(raw_amount[0] if raw_amount else None)
        if amount is None:
            await safe_message_answer(message, "Сумма должна быть целым числом.")
            return
        try:
            result = await ledger.transfer(
                guild_id, user_id, recipient_id, amount, recipient_is_bot=recipient_is_bot
            )
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(
            message,
            f"💸 Переведено {result.amount} пользователю {recipient_id}.\n"
            f"Твой кошелёк: {result.sender_wallet}",
        )

    @router.message(Command("deposit"))
    async def handle_deposit(message: Message) -> None:
        await _move_funds(message, deposit=True)

    @router.message(Command("withdraw"))
    async def handle_withdraw(message: Message) -> None:
        await _move_funds(message, deposit=False)

    async def _move_funds(message: Message, *, deposit: bool) -> None:
        guild_id, user_id = message_identity(message)
        command = "deposit" if deposit else "withdraw"
        amount = parse_amount(first_arg(message.text))
        if amount is None:
            await safe_message_answer(message, f"Использование: /{command} <сумма>")
            return
        try:
            if deposit:
                balance = await ledger.deposit(guild_id, user_id, amount)
            else:
                balance = await ledger.withdraw(guild_id, user_id, amount)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_balance_message(balance))

    @router.message(Command("history"))
    async def handle_history(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        try:
            records = await ledger.transactions(guild_id, user_id, limit=10)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_history_message(records))

    @router.message(Command("leaderboard"))
    async def handle_leaderboard(message: Message) -> None:
        guild_id, _ = message_identity(message)
        by = (first_arg(message.text) or "total").lower()
        try:
            entries = await ledger.leaderboard(guild_id, by=by)
        except ValueError:
            await safe_message_answer(message, "Сортировка: wallet, bank или total.")
            return
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_leaderboard_message(entries, by))

    @router.message(Command("blackjack"))
    async def handle_blackjack(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        bet = parse_amount(first_arg(message.text))
        if bet is None:
            await safe_message_answer(message, "Использование: /blackjack <ставка>")
            return
        try:
            game = await blackjack.start(guild_id, user_id, bet)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(
            message,
            format_game_message(game),
            reply_markup=None if game.is_resolved else blackjack_keyboard(),
        )

    @router.callback_query(lambda c: c.data and c.data.startswith(f"{CALLBACK_PREFIX}:bj:"))
    async def handle_blackjack_action(callback: CallbackQuery) -> None:
        if not callback.message or not callback.data:
            return
        guild_id, user_id = callback_identity(callback)
        action = callback.data.rsplit(":", 1)[-1]
        handlers = {"hit": blackjack.hit, "stand": blackjack.stand, "abandon": blackjack.abandon}
        handler = handlers.get(action)
        if handler is None:
            await safe_callback_answer(callback)
            return
        try:
            game = await handler(guild_id, user_id)
        except LedgerForgeError as exc:
            await alert_error(callback, exc)
            return
        await safe_callback_update(
            callback,
            format_game_message(game),
            reply_markup=None if game.is_resolved else blackjack_keyboard(),
        )

    @router.message(Command("coinflip"))
    async def handle_coinflip(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        args = command_args(message.text)
        bet = parse_amount(args[0] if args else None)
        if bet is None or len(args) < 2:
            await safe_message_answer(message, "Использование: /coinflip <ставка> <heads|tails>")
            return
        try:
            outcome = await wagers.coinflip(guild_id, user_id, bet, args[1])
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_wager_message(outcome))

    @router.message(Command("slots"))
    async def handle_slots(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        bet = parse_amount(first_arg(message.text))
        if bet is None:
            await safe_message_answer(message, "Использование: /slots <ставка>")
            return
        try:
            outcome = await wagers.slots(guild_id, user_id, bet)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_wager_message(outcome))

    @router.message(Command("roulette"))
    async def handle_roulette(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        args = command_args(message.text)
        bet = parse_amount(args[0] if args else None)
        if bet is None or len(args) < 2:
            await safe_message_answer(
                message, "Использование: /roulette <ставка> <red|black|green|even|odd|0-36>"
            )
            return
        choice = args[1].lower()
        bet_type, bet_value = ("number", int(choice)) if choice.isdigit() else (choice, None)
        try:
            outcome = await wagers.roulette(guild_id, user_id, bet, bet_type, bet_value)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_wager_message(outcome))

    @router.message(Command("shop"))
    async def handle_shop(message: Message) -> None:
        guild_id, _ = message_identity(message)
        try:
            items = await shop.list_items(guild_id)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(
            message,
            format_shop_message(items),
            reply_markup=shop_keyboard(items) if items else None,
        )

    @router.message(Command("buy"))
    async def handle_buy(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        args = command_args(message.text)
        if not args:
            await safe_message_answer(message, "Использование: /buy <item_id> [кол-во]")
            return
        quantity = parse_amount(args[1]) if len(args) > 1 else 1
        if quantity is None:
            await safe_message_answer(message, "Количество должно быть целым числом.")
            return
        try:
            result = await shop.purchase(guild_id, user_id, args[0], quantity)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_purchase_message(result))

    @router.callback_query(lambda c: c.data and c.data.startswith(f"{CALLBACK_PREFIX}:buy:"))
    async def handle_buy_callback(callback: CallbackQuery) -> None:
        if not callback.message or not callback.data:
            return
        guild_id, user_id = callback_identity(callback)
        item_id = callback.data.split(":", 2)[-1]
        try:
            result = await shop.purchase(guild_id, user_id, item_id)
        except LedgerForgeError as exc:
            await alert_error(callback, exc)
            return
        await safe_callback_answer(callback, format_purchase_message(result), show_alert=True)

    @router.message(Command("inventory"))
    async def handle_inventory(message: Message) -> None:
        guild_id, user_id = message_identity(message)
        try:
            entries = await shop.inventory(guild_id, user_id)
            items = await shop.list_items(guild_id)
        except LedgerForgeError as exc:
            await reply_error(message, exc)
            return
        await safe_message_answer(message, format_inventory_message(entries, items))

    @router.callback_query(lambda c: c.data == f"{CALLBACK_PREFIX}:balance")
    async def handle_balance_callback(callback: CallbackQuery) -> None:
        if not callback.message:
            return
        try:
            balance = await ledger.get_balance(*callback_identity(callback))
        except LedgerForgeError as exc:
            await alert_error(callback, exc)
            return
        await safe_callback_answer(callback, format_balance_message(balance), show_alert=True)

    @router.callback_query(lambda c: c.data == f"{CALLBACK_PREFIX}:shop")
    async def handle_shop_callback(callback: CallbackQuery) -> None:
        if not callback.message:
            return
        guild_id, _ = callback_identity(callback)
        try:
            items = await shop.list_items(guild_id)
        except LedgerForgeError as exc:
            await alert_error(callback, exc)
            return
        await safe_callback_answer(callback)
        await safe_message_answer(
            callback.message,
            format_shop_message(items),
            reply_markup=shop_keyboard(items) if items else None,
        )

    @router.callback_query(lambda c: c.data == f"{CALLBACK_PREFIX}:help")
    async def handle_help_callback(callback: CallbackQuery) -> None:
        await safe_callback_answer(callback)
        await safe_message_answer(callback.message, render_help_message(), reply_markup=welcome_keyboard())

    return router


def message_identity(message: Message) -> tuple[str, str]:
    return str(message.chat.id), str(message.from_user.id)


def callback_identity(callback: CallbackQuery) -> tuple[str, str]:
    return str(callback.message.chat.id), str(callback.from_user.id)


def command_args(text: str | None) -> list[str]:
    if not text:
        return []
    return text.strip().split()[1:]


def first_arg(text: str | None) -> str | None:
    args = command_args(text)
    return args[0] if args else None


def parse_amount(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.replace("_", ""))
    except ValueError:
        return None


def format_duration(seconds: int) -> str:
    hours, rest = divmod(max(0, seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours} ч {minutes} мин"
    if minutes:
        return f"{minutes} мин {secs} сек"
    return f"{secs} сек"


def describe_error(exc: LedgerForgeError) -> str:
    if isinstance(exc, InsufficientFunds):
        where = "в банке" if exc.source == "bank" else "в кошельке"
        return f"Недостаточно средств {where}: есть {exc.available}, нужно {exc.required}."
    if isinstance(exc, CooldownActive):
        return f"Подожди ещё {format_duration(exc.seconds_remaining)}."
    if isinstance(exc, OutOfStock):
        return f"Недостаточно товара: осталось {exc.available}."
    if isinstance(exc, InvalidAmount):
        return "Сумма должна быть положительным целым числом."
    if isinstance(exc, InvalidBet):
        return f"Некорректная ставка: {exc}"
    if isinstance(exc, SelfTransfer):
        return "Нельзя переводить самому себе."
    if isinstance(exc, InvalidTarget):
        return "Этому получателю нельзя переводить монеты."
    if isinstance(exc, GameAlreadyActive):
        return "У тебя уже идёт партия в блэкджек."
    if isinstance(exc, NoActiveGame):
        return "Активной партии нет. Начни новую командой /blackjack <ставка>."
    if isinstance(exc, ItemNotFound):
        return "Такого товара нет в магазине."
    if isinstance(exc, StorageUnavailable):
        logger.warning("Storage unavailable while serving a command: %s", exc)
        return "Хранилище временно недоступно, попробуй позже."
    return str(exc)


def render_help_message() -> str:
    lines = [
        "Привет! Этот бот демонстрирует LedgerForge.",
        "",
        "Экономика:",
        "• /balance — кошелёк и банк",
        "• /daily — ежедневная награда",
        "• /work — поработать",
        "• /cooldowns — когда будут доступны награды",
        "• /pay <user_id> <сумма> — перевести монеты",
        "• /deposit и /withdraw <сумма> — банк",
        "• /history — последние операции",
        "• /leaderboard [wallet|bank|total] — таблица лидеров",
        "",
        "Игры:",
        "• /blackjack <ставка>",
        "• /coinflip <ставка> <heads|tails>",
        "• /slots <ставка>",
        "• /roulette <ставка> <red|black|green|even|odd|0-36>",
        "",
        "Магазин:",
        "• /shop, /buy <item_id> [кол-во], /inventory",
    ]
    return "\n".join(lines)


def format_balance_message(balance: Balance) -> str:
    return "\n".join(
        [
            "💰 Баланс:",
            f"  Кошелёк: {balance.wallet}",
            f"  Банк: {balance.bank}",
            f"  Всего: {balance.total}",
        ]
    )


def format_daily_message(claim: RewardClaim) -> str:
    lines = [f"🎁 Ежедневная награда: +{claim.amount}"]
    if claim.streak:
        lines.append(f"🔥 Серия: {claim.streak} дн.")
    lines.append(f"Кошелёк: {claim.new_balance}")
    return "\n".join(lines)


def format_work_message(claim: RewardClaim) -> str:
    lines = [f"🛠️ {claim.message}" if claim.message else "🛠️ Работа выполнена!"]
    lines.append(f"Заработано: +{claim.amount}")
    lines.append(f"Кошелёк: {claim.new_balance}")
    return "\n".join(lines)


def format_cooldowns_message(cooldowns: Cooldowns) -> str:
    def status(seconds: int) -> str:
        return "доступно" if seconds <= 0 else f"через {format_duration(seconds)}"

    return "\n".join(
        [
            "⏱️ Награды:",
            f"  /daily — {status(cooldowns.daily_seconds)}",
            f"  /work — {status(cooldowns.work_seconds)}",
        ]
    )


def format_history_message(records: Sequence[TransactionRecord]) -> str:
    if not records:
        return "Операций пока нет."
    lines = ["🧾 Последние операции:"]
    for record in records:
        sign = "+" if record.amount > 0 else ""
        lines.append(
            f"• {record.timestamp:%d.%m %H:%M} {sign}{record.amount} ({record.kind}) {record.description}"
        )
    return "\n".join(lines)


def format_leaderboard_message(entries: Iterable[LeaderboardEntry], by: str) -> str:
    entries = list(entries)
    if not entries:
        return "Таблица лидеров пуста."
    lines = [f"🏆 Лидеры ({by}):"]
    for entry in entries:
        value = getattr(entry, by)
        lines.append(f"{entry.rank}. {entry.user_id} — {value}")
    return "\n".join(lines)


_RESULT_LINES = {
    GameResult.WIN: "🎉 Победа!",
    GameResult.TIE: "🤝 Ничья, ставка возвращена.",
    GameResult.LOSE: "💥 Поражение.",
}


def format_game_message(game: BlackjackGame) -> str:
    hide = not game.is_resolved
    dealer_value = "?" if hide else str(game.dealer_value)
    lines = [
        f"🃏 Блэкджек, ставка {game.bet}",
        f"Ты: {format_hand(game.player_hand)} ({game.player_value})",
        f"Дилер: {format_hand(game.dealer_hand, hide_hole=hide)} ({dealer_value})",
    ]
    if game.is_resolved and game.result is not None:
        lines.append("")
        lines.append(_RESULT_LINES[game.result])
        if game.payout:
            lines.append(f"Выплата: {game.payout}")
    return "\n".join(lines)


def format_wager_message(outcome: WagerOutcome) -> str:
    detail = outcome.detail
    if outcome.game == "coinflip":
        header = f"🪙 Выпало: {detail['result']}"
    elif outcome.game == "slots":
        header = "🎰 " + " | ".join(detail["reels"])
    else:
        header = f"🎡 Выпало {detail['pocket']} ({detail['color']})"
    verdict = f"🎉 Выигрыш {outcome.payout}!" if outcome.won else f"💥 Ставка {outcome.bet} проиграна."
    return "\n".join([header, verdict, f"Кошелёк: {outcome.new_balance}"])


def format_shop_message(items: Sequence[ShopItemRecord]) -> str:
    if not items:
        return "Магазин пока пуст."
    lines = ["🛍️ Магазин:"]
    for item in items:
        stock = "∞" if item.unlimited else str(item.stock)
        lines.append(f"• {item.item_id}: {item.name} — {item.price} (в наличии: {stock})")
        if item.description:
            lines.append(f"  {item.description}")
    return "\n".join(lines)


def format_purchase_message(result: PurchaseResult) -> str:
    lines = [
        f"✅ Куплено {result.quantity}x {result.item.name} за {result.total_price}.",
        f"Кошелёк: {result.new_balance}",
    ]
    if result.capability_granted is False:
        lines.append("⚠️ Не удалось выдать бонус товара, обратись к администратору.")
    return "\n".join(lines)


def format_inventory_message(
    entries: Sequence[InventoryRecord], items: Iterable[ShopItemRecord]
) -> str:
    if not entries:
        return "Инвентарь пуст. Загляни в /shop."
    names = {item.item_id: item.name for item in items}
    lines = ["🎒 Инвентарь:"]
    for entry in sorted(entries, key=lambda e: e.item_id):
        lines.append(f"• {names.get(entry.item_id, entry.item_id)}: {entry.quantity} шт.")
    return "\n".join(lines)
