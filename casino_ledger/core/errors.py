"""Error taxonomy for ledger operations.

Every business-rule failure is a CasinoError carrying a stable ``code`` and
the numbers an agent needs to adjust its next action. The HTTP layer turns
these into ``{"success": false, "error": code, ...details}`` responses; the
CLI prints them. Only PersistenceError signals an unexpected failure.
"""

from __future__ import annotations

from typing import Any


class CasinoError(Exception):
    """Base class for typed, recoverable operation failures."""

    code: str = "server_error"
    status_code: int = 500

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.details = {k: v for k, v in details.items() if v is not None}
        super().__init__(message or self.code)

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": self.code, **self.details}


class InvalidInputError(CasinoError):
    """Schema or range violation, raised before any side effect."""

    code = "invalid_input"
    status_code = 400


class UnauthorizedError(CasinoError):
    code = "invalid_api_key"
    status_code = 401


class InsufficientFundsError(CasinoError):
    """Casino balance too low for the requested debit."""

    code = "insufficient_funds"
    status_code = 400

    def __init__(self, balance: int, required: int, **details: Any) -> None:
        self.balance = balance
        self.required = required
        super().__init__(
            f"Balance {balance} is below required {required}",
            balance=balance,
            required=required,
            **details,
        )


class InsufficientBankError(InsufficientFundsError):
    """Bank balance too low for the requested cash-in."""

    code = "insufficient_bank"

    def __init__(self, balance: int, required: int, **details: Any) -> None:
        super().__init__(balance, required, bank_balance=balance, **details)


class AgentPausedError(CasinoError):
    code = "agent_paused"
    status_code = 403

    def __init__(self, agent_id: str, reason: str | None = None) -> None:
        self.agent_id = agent_id
        super().__init__(f"Agent {agent_id} is paused", reason=reason)


class LimitBreachedError(CasinoError):
    """Stop-loss or take-profit threshold reached relative to anchor_balance."""

    status_code = 403

    def __init__(self, kind: str, threshold: int, balance: int, anchor_balance: int) -> None:
        self.kind = kind
        self.threshold = threshold
        self.balance = balance
        self.anchor_balance = anchor_balance
        super().__init__(
            f"{kind} reached: pnl {balance - anchor_balance} vs threshold {threshold}",
            **{kind: threshold, "balance": balance, "anchor_balance": anchor_balance},
        )

    @property
    def code(self) -> str:  # type: ignore[override]
        return self.kind


class RateLimitedError(CasinoError):
    code = "rate_limited"
    status_code = 429

    def __init__(self, kind: str, retry_after_seconds: int) -> None:
        self.kind = kind
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Too many {kind} actions, retry after {retry_after_seconds}s",
            action=kind,
            retry_after_seconds=retry_after_seconds,
        )


class TargetNotFoundError(CasinoError):
    code = "target_not_found"
    status_code = 404

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No agent named {name!r}", target=name)


class SelfTipError(CasinoError):
    code = "no_self_tip"
    status_code = 400


class NameTakenError(CasinoError):
    code = "name_taken"
    status_code = 409

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Agent name {name!r} is already registered", name=name)


class NotBrokeError(CasinoError):
    code = "not_broke"
    status_code = 400

    def __init__(self, total_wealth: int) -> None:
        self.total_wealth = total_wealth
        super().__init__(f"Total wealth is {total_wealth}", total_wealth=total_wealth)


class NotArmedError(CasinoError):
    code = "not_armed"
    status_code = 400


class TooSoonError(CasinoError):
    code = "too_soon"
    status_code = 429

    def __init__(self, remaining_seconds: int) -> None:
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Faucet available in {remaining_seconds}s",
            remaining_seconds=remaining_seconds,
        )


class PersistenceError(CasinoError):
    """Unexpected failure of the durable store; the transaction was rolled back."""

    code = "server_error"
    status_code = 500
