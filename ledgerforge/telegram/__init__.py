"""Telegram integration helpers."""

from .aiogram_router import build_router
from .filters import AdminFilter, HumanSenderFilter, RewardCooldownFilter
from .granter import InviteLinkGranter
from .keyboards import blackjack_keyboard, shop_keyboard, welcome_keyboard

__all__ = [
    "build_router",
    "AdminFilter",
    "HumanSenderFilter",
    "RewardCooldownFilter",
    "InviteLinkGranter",
    "blackjack_keyboard",
    "shop_keyboard",
    "welcome_keyboard",
]
