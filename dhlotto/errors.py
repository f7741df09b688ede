from __future__ import annotations

from typing import Optional

SNIPPET_LIMIT = 500


def snippet(text: Optional[str], limit: int = SNIPPET_LIMIT) -> str:
    """Return at most ``limit`` characters of ``text`` for log output."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class LotteryError(Exception):
    """Base error for the dhlottery integration."""


class TransportError(LotteryError):
    """Network failure, timeout or redirect loop."""


class ParseError(LotteryError):
    """A body that had to be JSON or HTML could not be parsed."""

    def __init__(self, message: str, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.snippet = snippet(body)


class ProtocolError(LotteryError):
    """The remote system answered with a recognized but unexpected shape."""


class KeyFetchError(ProtocolError):
    """The RSA public key could not be retrieved."""


class MissingPurchaseContext(ProtocolError):
    """Round or draw date missing from the purchase page."""


class QueueWaitError(ProtocolError):
    """The admission queue is not empty; purchasing must stop this cycle."""

    def __init__(self, count: int, eta_seconds: Optional[int] = None) -> None:
        message = f"purchase queue has {count} waiting"
        if eta_seconds is not None:
            message += f" (eta {eta_seconds}s)"
        super().__init__(message)
        self.count = count
        self.eta_seconds = eta_seconds


class AuthenticationError(LotteryError):
    """Credentials rejected or session not confirmed."""


class InvalidCredentials(AuthenticationError):
    pass


class LoginUnconfirmed(AuthenticationError):
    pass


class EncryptionError(LotteryError):
    pass


class DomainRejection(LotteryError):
    """A purchase refused by a business rule; an expected outcome, not a bug."""


class QuantityOutOfRange(DomainRejection, ValueError):
    pass


class InsufficientBalance(DomainRejection):
    def __init__(self, balance: Optional[int], required: int) -> None:
        shown = "unknown" if balance is None else str(balance)
        super().__init__(f"balance {shown} below required {required}")
        self.balance = balance
        self.required = required


class ConfigError(RuntimeError):
    pass


class NotifierError(LotteryError):
    pass
