# ledgerfolio/services/operations.py
"""
Operation Service - writes and reads the operation ledger.

Operations are append-only: they are recorded, listed and soft-deleted,
never edited. total_amount is derived once when an operation is recorded:

    BUY       quantity × price + fees
    SELL      quantity × price - fees
    DIVIDEND  price_per_unit (the total cash amount)
    FEE/SPLIT quantity × price

Writes are checked with a strict replay of the asset's ledger: a write that
would make any SELL exceed the quantity held at that point in time is
rejected with InsufficientQuantityError. Read-time valuation stays lenient.

Usage:
    service = OperationService(db)
    operation = service.record_operation(user_id, OperationCreate(...))
    service.remove_operation(user_id, operation.id)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from ledgerfolio.models import InvestmentOperation, OperationType
from ledgerfolio.services.exceptions import (
    AssetNotFoundError,
    InsufficientQuantityError,
    OperationNotFoundError,
)
from ledgerfolio.services.repositories import SqlAssetRepository, SqlLedgerSource
from ledgerfolio.services.valuation.ledger import LedgerReplayer

if TYPE_CHECKING:
    from ledgerfolio.schemas.operations import OperationCreate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_total_amount(
        op_type: OperationType,
        quantity: Decimal,
        price_per_unit: Decimal,
        fees: Decimal,
) -> Decimal:
    """Display amount of an operation (never read by replay)."""
    op_type = OperationType(op_type)
    if op_type == OperationType.BUY:
        return quantity * price_per_unit + fees
    if op_type == OperationType.SELL:
        return quantity * price_per_unit - fees
    if op_type == OperationType.DIVIDEND:
        return price_per_unit
    return quantity * price_per_unit


@dataclass
class OperationPage:
    """One page of a filtered operation listing."""

    items: list[InvestmentOperation] = field(default_factory=list)
    total: int = 0
    skip: int = 0
    limit: int = 20


class OperationService:
    """
    Records, lists and removes ledger operations.

    Attributes:
        ledger: SqlLedgerSource used for reads and writes
    """

    def __init__(
            self,
            db: Session,
            clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.ledger = SqlLedgerSource(db)
        self._assets = SqlAssetRepository(db)
        self._replayer = LedgerReplayer()
        self._clock = clock

    # =========================================================================
    # WRITE
    # =========================================================================

    def record_operation(self, user_id: int, data: OperationCreate) -> InvestmentOperation:
        """
        Record a new operation.

        Raises:
            AssetNotFoundError: Unknown asset
            InsufficientQuantityError: The operation would create an oversell
        """
        asset = self._assets.get_asset(data.asset_id)
        if asset is None:
            raise AssetNotFoundError(data.asset_id)

        fees = data.fees or Decimal("0")
        operation = InvestmentOperation(
            user_id=user_id,
            asset_id=data.asset_id,
            type=data.type,
            quantity=data.quantity,
            price_per_unit=data.price_per_unit,
            total_amount=compute_total_amount(data.type, data.quantity, data.price_per_unit, fees),
            fees=fees,
            currency=data.currency or asset.currency,
            occurred_at=data.occurred_at,
            notes=data.notes,
            created_at=self._clock(),
        )

        existing = self.ledger.list_operations(user_id, asset_id=data.asset_id)
        self._check_ledger(existing, existing + [operation])

        self.ledger.add_operation(operation)
        logger.info(
            f"Recorded {OperationType(operation.type).value} {operation.id} "
            f"on asset {operation.asset_id} for user {user_id}"
        )
        return operation

    def remove_operation(self, user_id: int, operation_id: int) -> InvestmentOperation:
        """
        Soft-delete an operation.

        Raises:
            OperationNotFoundError: Unknown, already deleted, or foreign operation
            InsufficientQuantityError: Removing it would create an oversell
                (e.g. removing a BUY that a later SELL depends on)
        """
        operation = self.get_operation(user_id, operation_id)

        existing = self.ledger.list_operations(user_id, asset_id=operation.asset_id)
        remaining = [op for op in existing if op.id != operation.id]
        self._check_ledger(existing, remaining)

        self.ledger.soft_delete(operation, self._clock())
        logger.info(f"Removed operation {operation_id} of user {user_id}")
        return operation

    # =========================================================================
    # READ
    # =========================================================================

    def get_operation(self, user_id: int, operation_id: int) -> InvestmentOperation:
        operation = self.ledger.get_operation(user_id, operation_id)
        if operation is None:
            raise OperationNotFoundError(operation_id)
        return operation

    def list_operations(
            self,
            user_id: int,
            asset_id: int | None = None,
            type: OperationType | None = None,
            start: datetime | None = None,
            end: datetime | None = None,
            skip: int = 0,
            limit: int = 20,
    ) -> OperationPage:
        """Live operations matching all given filters, newest first."""
        items, total = self.ledger.search_operations(
            user_id,
            asset_id=asset_id,
            type=type,
            start=start,
            end=end,
            skip=skip,
            limit=limit,
        )
        return OperationPage(items=items, total=total, skip=skip, limit=limit)

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    def _check_ledger(
            self,
            before: list[InvestmentOperation],
            after: list[InvestmentOperation],
    ) -> None:
        """
        Reject a write that makes a consistent ledger oversell.

        A ledger that already oversells (legacy data) is not checked, so it
        never blocks unrelated writes.
        """
        try:
            self._replayer.replay(before, strict=True)
        except InsufficientQuantityError:
            logger.warning("Ledger already oversells; skipping write-time check")
            return

        self._replayer.replay(after, strict=True)
