"""
Error taxonomy for the sniper.

Fatal errors end the process, attempt-aborting errors skip one launch before
any transaction is sent, and SwapSubmissionError is reported as a failed
outcome. Degrade-and-continue failures never surface as exceptions.
"""

from typing import Any

from .models import FailureDetails


class SniperError(Exception):
    """Base class for all sniper errors."""


# ─── Fatal ───


class ConfigError(SniperError):
    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class TransportClosedError(SniperError):
    """The WebSocket transport closed; the supervisor restarts us."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


# ─── Attempt-aborting (no transaction sent) ───


class AttemptAbortedError(SniperError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.context = context


class HookResolutionError(AttemptAbortedError):
    pass


class PoolNotFoundError(AttemptAbortedError):
    pass


class BalanceCheckError(AttemptAbortedError):
    """The wallet balance could not be read."""


class InsufficientBalanceError(AttemptAbortedError):
    def __init__(self, balance: int, required: int, **context: Any) -> None:
        super().__init__(
            f"Insufficient balance: have {balance} wei, need {required} wei",
            balance=balance,
            required=required,
            **context,
        )
        self.balance = balance
        self.required = required


# ─── Terminal-reported ───


class SwapSubmissionError(SniperError):
    def __init__(self, details: FailureDetails) -> None:
        super().__init__(details.message)
        self.details = details
