"""Command line helpers for LedgerForge."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from random import Random

from .config import LedgerForgeConfig
from .diagnostics.blackjack_simulator import BlackjackSimulator
from .loaders import validate_catalog_file
from .validators import validate_config


def run_simulator() -> None:
    parser = argparse.ArgumentParser(description="LedgerForge blackjack simulator")
    parser.add_argument("--hands", type=int, default=10000, help="Количество раздач для симуляции")
    parser.add_argument("--bet", type=int, default=100, help="Ставка на каждую раздачу")
    parser.add_argument(
        "--player-stands-on",
        type=int,
        default=17,
        help="Игрок берёт карты, пока сумма ниже этого значения",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed генератора случайных чисел")
    args = parser.parse_args()

    config = LedgerForgeConfig.from_env()
    seed = args.seed if args.seed is not None else config.rng_seed
    simulator = BlackjackSimulator(config.blackjack, rng=Random(seed))
    result = simulator.simulate(
        hands=args.hands, bet=args.bet, player_stands_on=args.player_stands_on
    )
    print(f"Симулировано {result.hands} раздач по {result.bet}.")
    print("Исходы:")
    for outcome, count in sorted(result.outcomes.items()):
        print(f"  {outcome}: {count}")
    print(f"Блэкджеков у игрока: {result.naturals}")
    print(f"Поставлено: {result.wagered}, выплачено: {result.returned}")
    print(f"Преимущество казино: {result.house_edge:.2%}")


def run_validate() -> None:
    parser = argparse.ArgumentParser(description="LedgerForge validator")
    parser.add_argument(
        "--catalog",
        help="Path to shop catalog JSON file for validation",
    )
    args = parser.parse_args()

    failed = False
    if args.catalog:
        errors = validate_catalog_file(Path(args.catalog))
        if errors:
            failed = True
            print("Ошибки каталога:")
            for err in errors:
                print(f"- {err}")
        else:
            print("Каталог валиден ✅")

    try:
        config = LedgerForgeConfig.from_env()
    except ValueError as exc:
        print(f"Ошибка окружения: {exc}")
        sys.exit(1)
    issues = validate_config(config)
    if issues:
        failed = True
        print("Обнаружены ошибки конфигурации:")
        for issue in issues:
            print(f"- {issue}")
    else:
        print("Конфигурация бота валидна ✅")

    if failed:
        sys.exit(1)
