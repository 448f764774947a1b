"""Exceptions raised by LedgerForge domain services."""


class LedgerForgeError(RuntimeError):
    """Base class for domain exceptions."""


class InvalidAmount(LedgerForgeError):
    """Raised when an amount or quantity is not a positive integer."""


class InsufficientFunds(LedgerForgeError):
    """Raised when a balance cannot cover a debit."""

    def __init__(self, required: int, available: int, *, source: str = "wallet") -> None:
        super().__init__(f"Insufficient {source} balance: have {available}, need {required}")
        self.required = required
        self.available = available
        self.source = source


class SelfTransfer(LedgerForgeError):
    """Raised when sender and recipient of a transfer are the same account."""


class InvalidTarget(LedgerForgeError):
    """Raised when a transfer recipient is not allowed to hold funds."""


class CooldownActive(LedgerForgeError):
    """Raised when a reward is claimed before its cooldown expires."""

    def __init__(self, seconds_remaining: int) -> None:
        super().__init__(f"Cooldown active for {seconds_remaining} seconds")
        self.seconds_remaining = seconds_remaining


class GameAlreadyActive(LedgerForgeError):
    """Raised when a player starts a game while another one is live."""


class NoActiveGame(LedgerForgeError):
    """Raised when a game action targets a player without a live game."""


class InvalidBet(LedgerForgeError):
    """Raised when a wager is not positive or exceeds the table limit."""


class ItemNotFound(LedgerForgeError):
    """Raised when a shop item does not exist or is inactive."""


class OutOfStock(LedgerForgeError):
    """Raised when finite stock cannot satisfy a purchase."""

    def __init__(self, available: int, requested: int) -> None:
        super().__init__(f"Insufficient stock: available {available}, requested {requested}")
        self.available = available
        self.requested = requested


class StorageUnavailable(LedgerForgeError):
    """Raised when the storage backend fails to serve a request."""
