# ledgerfolio/services/valuation/ledger.py
"""
Lot ledger replay.

Replays one asset's operation history into FIFO lots, the held quantity,
the cost basis of what is held, and realized P&L.

Per-operation semantics:
    BUY       push lot(q, price + fees / q); cost += q × price + fees
    SELL      consume oldest lots first; realized += (q × price - fees) - basis
    DIVIDEND  realized += price_per_unit (the total cash amount)
    SPLIT     quantity and lot sizes × ratio, lot cost per unit ÷ ratio
    FEE       cost += q × price + fees; quantity unchanged

BUY/SELL with quantity <= 0 and SPLIT with ratio <= 0 are no-ops.

Oversell (a SELL larger than the held lots):
    strict=False  drain every lot, record a warning, keep going
    strict=True   raise InsufficientQuantityError

Usage:
    replayer = LedgerReplayer()
    result = replayer.replay(operations)
    result.quantity, result.total_cost, result.realized_pnl
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

from ledgerfolio.models import OperationType
from ledgerfolio.services.constants import ZERO
from ledgerfolio.services.exceptions import InsufficientQuantityError
from ledgerfolio.services.valuation.types import Lot, ReplayResult

if TYPE_CHECKING:
    from ledgerfolio.models import InvestmentOperation

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def replay_order_key(operation: InvestmentOperation) -> tuple:
    """
    Sort key for replay: occurred_at, then created_at.

    Operations not yet persisted (created_at unset) sort after persisted ones
    with the same occurred_at. Remaining ties keep source order because
    sorted() is stable.
    """
    created_at = getattr(operation, "created_at", None)
    occurred_at = _as_utc(operation.occurred_at)
    if created_at is None:
        return occurred_at, True, occurred_at
    return occurred_at, False, _as_utc(created_at)


def sort_operations(operations: Iterable[InvestmentOperation]) -> list[InvestmentOperation]:
    """Return operations in deterministic replay order."""
    return sorted(operations, key=replay_order_key)


class _ReplayState:
    """Running state of one replay. Lots are a deque: SELLs pop from the left."""

    def __init__(self) -> None:
        self.quantity = ZERO
        self.total_cost = ZERO
        self.realized_pnl = ZERO
        self.lots: deque[Lot] = deque()
        self.warnings: list[str] = []

    @property
    def lot_quantity(self) -> Decimal:
        return sum((lot.quantity for lot in self.lots), ZERO)

    def to_result(self) -> ReplayResult:
        return ReplayResult(
            quantity=self.quantity,
            total_cost=self.total_cost,
            realized_pnl=self.realized_pnl,
            remaining_lots=list(self.lots),
            warnings=list(self.warnings),
        )


class LedgerReplayer:
    """
    Replays operations of a single asset using FIFO lot accounting.

    Stateless between calls: every replay starts from an empty lot queue, so
    one instance can be shared by concurrent valuations.
    """

    def replay(
            self,
            operations: Iterable[InvestmentOperation],
            strict: bool = False,
            presorted: bool = False,
    ) -> ReplayResult:
        """
        Replay operations of one asset.

        Args:
            operations: The asset's live operations, in any order
            strict: Raise on oversell instead of draining the lots
            presorted: Skip sorting when the caller already ordered them

        Returns:
            ReplayResult with quantity, cost, realized P&L and remaining lots

        Raises:
            InsufficientQuantityError: strict=True and a SELL exceeds the held lots
        """
        ordered = list(operations) if presorted else sort_operations(operations)
        state = _ReplayState()

        for operation in ordered:
            self._apply(state, operation, strict)

        return state.to_result()

    def _apply(
            self,
            state: _ReplayState,
            operation: InvestmentOperation,
            strict: bool,
    ) -> None:
        op_type = OperationType(operation.type)
        quantity = Decimal(operation.quantity)
        price = Decimal(operation.price_per_unit)
        fees = Decimal(operation.fees or ZERO)

        if op_type == OperationType.BUY:
            if quantity <= ZERO:
                logger.debug(f"Skipping BUY {operation.id} with quantity {quantity}")
                return
            state.lots.append(Lot(quantity=quantity, cost_per_unit=price + fees / quantity))
            state.quantity += quantity
            state.total_cost += quantity * price + fees

        elif op_type == OperationType.SELL:
            if quantity <= ZERO:
                logger.debug(f"Skipping SELL {operation.id} with quantity {quantity}")
                return
            cost_basis = self._consume_lots(state, operation, quantity, strict)
            proceeds = quantity * price - fees
            state.realized_pnl += proceeds - cost_basis
            state.quantity -= quantity
            state.total_cost -= cost_basis

        elif op_type == OperationType.DIVIDEND:
            state.realized_pnl += price

        elif op_type == OperationType.SPLIT:
            ratio = quantity
            if ratio <= ZERO:
                logger.debug(f"Skipping SPLIT {operation.id} with ratio {ratio}")
                return
            state.quantity *= ratio
            for lot in state.lots:
                lot.quantity *= ratio
                lot.cost_per_unit /= ratio

        elif op_type == OperationType.FEE:
            state.total_cost += quantity * price + fees

    def _consume_lots(
            self,
            state: _ReplayState,
            operation: InvestmentOperation,
            quantity: Decimal,
            strict: bool,
    ) -> Decimal:
        """Take `quantity` units from the oldest lots; return their cost basis."""
        available = state.lot_quantity
        if quantity > available:
            if strict:
                raise InsufficientQuantityError(
                    asset_id=operation.asset_id,
                    requested=quantity,
                    available=available,
                    occurred_at=operation.occurred_at,
                )
            message = (
                f"SELL {operation.id} of {quantity} units exceeds the {available} "
                f"units held; all lots drained"
            )
            logger.warning(f"Asset {operation.asset_id}: {message}")
            state.warnings.append(message)

        remaining = quantity
        cost_basis = ZERO

        while remaining > ZERO and state.lots:
            lot = state.lots[0]
            taken = min(remaining, lot.quantity)
            cost_basis += taken * lot.cost_per_unit
            lot.quantity -= taken
            remaining -= taken
            if lot.quantity <= ZERO:
                state.lots.popleft()

        return cost_basis
