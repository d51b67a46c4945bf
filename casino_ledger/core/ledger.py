"""Ledger Store: the only component that writes balances.

Every operation runs inside the caller's UnitOfWork, checks funds before it
debits, and stamps ``updated_at`` on each row it changes. Because the unit of
work is one transaction, multi-row operations (transfer, move_to_bank,
move_from_bank) either fully apply or leave no visible effect.
"""

from __future__ import annotations

import logging

from casino_ledger.core.errors import (
    InsufficientBankError,
    InsufficientFundsError,
    InvalidInputError,
)
from casino_ledger.persistence.store import UnitOfWork

logger = logging.getLogger(__name__)

CASINO = "balances"
BANK = "bank_balances"


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidInputError("amount must be a positive integer", amount=amount)


class LedgerStore:
    """Casino and bank balances of every agent."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_balance(self, uow: UnitOfWork, agent_id: str) -> int:
        return self._read(uow, CASINO, agent_id)

    def get_bank_balance(self, uow: UnitOfWork, agent_id: str) -> int:
        return self._read(uow, BANK, agent_id)

    def total_wealth(self, uow: UnitOfWork, agent_id: str) -> int:
        return self.get_balance(uow, agent_id) + self.get_bank_balance(uow, agent_id)

    # ------------------------------------------------------------------
    # Account creation
    # ------------------------------------------------------------------

    def open_accounts(self, uow: UnitOfWork, agent_id: str, initial_balance: int) -> None:
        """Create the casino and bank rows of a new agent."""
        if initial_balance < 0:
            raise InvalidInputError("initial balance must be non-negative", amount=initial_balance)
        self._upsert(uow, CASINO, agent_id, initial_balance)
        self._upsert(uow, BANK, agent_id, 0)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def debit(self, uow: UnitOfWork, agent_id: str, amount: int) -> int:
        """Remove chips from the casino balance.

        Returns:
            The new balance

        Raises:
            InsufficientFundsError: The balance would go negative (nothing changes)
        """
        _require_positive(amount)
        balance = self.get_balance(uow, agent_id)
        if balance < amount:
            raise InsufficientFundsError(balance=balance, required=amount)
        return self._add(uow, CASINO, agent_id, -amount)

    def credit(self, uow: UnitOfWork, agent_id: str, amount: int) -> int:
        """Add chips to the casino balance. Returns the new balance."""
        _require_positive(amount)
        return self._add(uow, CASINO, agent_id, amount)

    def transfer(self, uow: UnitOfWork, from_agent_id: str, to_agent_id: str, amount: int) -> tuple[int, int]:
        """Move chips between two casino balances.

        Returns:
            (sender balance, receiver balance) after the transfer
        """
        _require_positive(amount)
        if from_agent_id == to_agent_id:
            raise InvalidInputError("cannot transfer to the same agent", agent_id=from_agent_id)

        from_balance = self.debit(uow, from_agent_id, amount)
        to_balance = self.credit(uow, to_agent_id, amount)
        logger.debug("Transfer %s -> %s amount=%d", from_agent_id, to_agent_id, amount)
        return from_balance, to_balance

    def move_to_bank(self, uow: UnitOfWork, agent_id: str, amount: int) -> tuple[int, int]:
        """Casino -> bank (cash out).

        Returns:
            (casino balance, bank balance) afterwards
        """
        _require_positive(amount)
        casino = self.get_balance(uow, agent_id)
        if casino < amount:
            raise InsufficientFundsError(balance=casino, required=amount, casino_balance=casino)
        self._ensure_row(uow, BANK, agent_id)
        return self._add(uow, CASINO, agent_id, -amount), self._add(uow, BANK, agent_id, amount)

    def move_from_bank(self, uow: UnitOfWork, agent_id: str, amount: int) -> tuple[int, int]:
        """Bank -> casino (cash in).

        Returns:
            (casino balance, bank balance) afterwards
        """
        _require_positive(amount)
        self._ensure_row(uow, BANK, agent_id)
        bank = self.get_bank_balance(uow, agent_id)
        if bank < amount:
            raise InsufficientBankError(balance=bank, required=amount)
        bank_after = self._add(uow, BANK, agent_id, -amount)
        return self._add(uow, CASINO, agent_id, amount), bank_after

    # ------------------------------------------------------------------
    # Row helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read(uow: UnitOfWork, table: str, agent_id: str) -> int:
        row = uow.fetchone(f"SELECT amount FROM {table} WHERE agent_id = ?", [agent_id])
        return int(row[0]) if row else 0

    def _ensure_row(self, uow: UnitOfWork, table: str, agent_id: str) -> None:
        """Insert a zero row when the agent has none; leave an existing row untouched."""
        exists = uow.fetchone(f"SELECT 1 FROM {table} WHERE agent_id = ?", [agent_id])
        if exists is None:
            uow.execute(
                f"INSERT INTO {table} (agent_id, amount, updated_at) VALUES (?, 0, ?)",
                [agent_id, uow.now],
            )

    def _upsert(self, uow: UnitOfWork, table: str, agent_id: str, amount: int) -> None:
        """Insert-or-update: afterwards exactly one row holds ``amount``."""
        exists = uow.fetchone(f"SELECT 1 FROM {table} WHERE agent_id = ?", [agent_id])
        if exists is None:
            uow.execute(
                f"INSERT INTO {table} (agent_id, amount, updated_at) VALUES (?, ?, ?)",
                [agent_id, amount, uow.now],
            )
        else:
            uow.execute(
                f"UPDATE {table} SET amount = ?, updated_at = ? WHERE agent_id = ?",
                [amount, uow.now, agent_id],
            )

    def _add(self, uow: UnitOfWork, table: str, agent_id: str, delta: int) -> int:
        self._ensure_row(uow, table, agent_id)
        uow.execute(
            f"UPDATE {table} SET amount = amount + ?, updated_at = ? WHERE agent_id = ?",
            [delta, uow.now, agent_id],
        )
        return self._read(uow, table, agent_id)
