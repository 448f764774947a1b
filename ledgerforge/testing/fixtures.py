"""Pytest fixtures for LedgerForge."""

from __future__ import annotations

import pytest

from ..app import EconomyApp
from ..config import LedgerForgeConfig


@pytest.fixture()
def memory_app() -> EconomyApp:
    return app_fixture()


def app_fixture(bot_token: str = "test", **kwargs) -> EconomyApp:
    """Helper for ad-hoc tests where pytest is not available."""
    app_kwargs = {
        key: kwargs.pop(key)
        for key in ("rng", "clock", "granter", "event_bus")
        if key in kwargs
    }
    config = LedgerForgeConfig(bot_token=bot_token, **kwargs)
    return EconomyApp(config, **app_kwargs)
