"""Explicit per-process context handed to every launch task."""

from dataclasses import dataclass

from .config import ModePolicy, Settings, policy_for
from .models import ExecutionMode


@dataclass(frozen=True)
class SniperContext:
    """Read-only: the chain client plus everything fixed for the process lifetime."""
    client: object
    mode: ExecutionMode
    amount_in: int
    receiver: str
    check_balance: bool = True
    receipt_timeout: float = 120.0

    @property
    def policy(self) -> ModePolicy:
        return policy_for(self.mode)

    @classmethod
    def from_settings(cls, client, settings: Settings) -> "SniperContext":
        return cls(
            client=client,
            mode=settings.mode,
            amount_in=settings.amount_in_wei,
            receiver=client.address,
            check_balance=settings.check_balance,
            receipt_timeout=settings.receipt_timeout,
        )
