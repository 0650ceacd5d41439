# ledgerfolio/services/repositories.py
"""
SQLAlchemy implementations of the engine's collaborator protocols.

Each class wraps a Session and satisfies one protocol from
ledgerfolio.services.protocols structurally (no inheritance):

    SqlLedgerSource          LedgerSource (+ operation CRUD helpers)
    SqlAssetRepository       AssetRepository
    SqlPriceProvider         PriceProvider
    SqlExchangeRateProvider  ExchangeRateProvider
    SqlGoalStore             GoalStore
    SqlNotificationSink      NotificationSink

Repositories flush but never commit: the caller owns the transaction
(see ledgerfolio.database.session_scope).
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import false, func, select, update
from sqlalchemy.orm import Session

from ledgerfolio.config import settings
from ledgerfolio.models import (
    Asset,
    AssetPrice,
    ExchangeRate,
    InvestmentGoal,
    InvestmentOperation,
    Notification,
    NotificationKind,
    OperationType,
)
from ledgerfolio.services.constants import ONE, ZERO
from ledgerfolio.services.goals.types import GoalFlagChanges
from ledgerfolio.services.valuation.types import PriceQuote

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# LEDGER
# =============================================================================

class SqlLedgerSource:
    """Live operations of a user, stored in investment_operations."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def list_operations(
            self,
            user_id: int,
            asset_id: int | None = None,
    ) -> list[InvestmentOperation]:
        query = select(InvestmentOperation).where(
            InvestmentOperation.user_id == user_id,
            InvestmentOperation.deleted_at.is_(None),
        )
        if asset_id is not None:
            query = query.where(InvestmentOperation.asset_id == asset_id)
        query = query.order_by(
            InvestmentOperation.occurred_at,
            InvestmentOperation.created_at,
            InvestmentOperation.id,
        )
        return list(self._db.scalars(query).all())

    def get_operation(self, user_id: int, operation_id: int) -> InvestmentOperation | None:
        """Live operation owned by user_id, or None."""
        return self._db.scalar(
            select(InvestmentOperation).where(
                InvestmentOperation.id == operation_id,
                InvestmentOperation.user_id == user_id,
                InvestmentOperation.deleted_at.is_(None),
            )
        )

    def search_operations(
            self,
            user_id: int,
            asset_id: int | None = None,
            type: OperationType | None = None,
            start: datetime | None = None,
            end: datetime | None = None,
            skip: int = 0,
            limit: int = 20,
    ) -> tuple[list[InvestmentOperation], int]:
        """
        Filtered page of live operations, newest first.

        Returns:
            (operations on this page, total matching operations)
        """
        conditions = [
            InvestmentOperation.user_id == user_id,
            InvestmentOperation.deleted_at.is_(None),
        ]
        if asset_id is not None:
            conditions.append(InvestmentOperation.asset_id == asset_id)
        if type is not None:
            conditions.append(InvestmentOperation.type == type)
        if start is not None:
            conditions.append(InvestmentOperation.occurred_at >= start)
        if end is not None:
            conditions.append(InvestmentOperation.occurred_at <= end)

        total = self._db.scalar(
            select(func.count(InvestmentOperation.id)).where(*conditions)
        ) or 0

        query = (
            select(InvestmentOperation)
            .where(*conditions)
            .order_by(InvestmentOperation.occurred_at.desc(), InvestmentOperation.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(self._db.scalars(query).all()), total

    def add_operation(self, operation: InvestmentOperation) -> InvestmentOperation:
        self._db.add(operation)
        self._db.flush()
        return operation

    def soft_delete(self, operation: InvestmentOperation, deleted_at: datetime) -> None:
        operation.deleted_at = deleted_at
        self._db.flush()


# =============================================================================
# ASSETS AND PRICES
# =============================================================================

class SqlAssetRepository:

    def __init__(self, db: Session) -> None:
        self._db = db

    def get_asset(self, asset_id: int) -> Asset | None:
        return self._db.get(Asset, asset_id)


class SqlPriceProvider:
    """Latest stored quote per asset, as the source reported it."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def get_latest_price(self, asset_id: int) -> PriceQuote | None:
        row = self._db.scalar(
            select(AssetPrice)
            .where(AssetPrice.asset_id == asset_id)
            .order_by(AssetPrice.fetched_at.desc(), AssetPrice.id.desc())
            .limit(1)
        )
        if row is None:
            return None
        return PriceQuote(price=row.price, currency=row.currency, fetched_at=row.fetched_at)


class SqlExchangeRateProvider:
    """
    Stored exchange rates.

    Lookup order for from -> to:
        1. same currency: 1
        2. freshest stored from/to rate
        3. 1 / freshest stored to/from rate
        4. None

    Rates older than max_age are still returned (last known rate) but logged.
    """

    def __init__(self, db: Session, max_age: timedelta | None = None) -> None:
        self._db = db
        self._max_age = max_age or timedelta(hours=settings.fx_rate_max_age_hours)

    def get_rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        base = from_currency.upper().strip()
        target = to_currency.upper().strip()

        if base == target:
            return ONE

        direct = self._latest(base, target)
        if direct is not None and direct.rate > ZERO:
            self._check_age(direct)
            return Decimal(direct.rate)

        reverse = self._latest(target, base)
        if reverse is not None and reverse.rate > ZERO:
            self._check_age(reverse)
            logger.debug(f"Using inverse of {target}/{base} for {base}/{target}")
            return ONE / Decimal(reverse.rate)

        return None

    def _latest(self, base: str, target: str) -> ExchangeRate | None:
        return self._db.scalar(
            select(ExchangeRate)
            .where(
                ExchangeRate.base_currency == base,
                ExchangeRate.target_currency == target,
            )
            .order_by(ExchangeRate.fetched_at.desc(), ExchangeRate.id.desc())
            .limit(1)
        )

    def _check_age(self, rate: ExchangeRate) -> None:
        age = datetime.now(timezone.utc) - _as_utc(rate.fetched_at)
        if age > self._max_age:
            logger.info(
                f"Using stale {rate.base_currency}/{rate.target_currency} rate "
                f"from {rate.fetched_at.isoformat()}"
            )


# =============================================================================
# GOALS AND NOTIFICATIONS
# =============================================================================

class SqlGoalStore:
    """Goal persistence with conditional (compare-and-set) flag updates."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def list_goals(self, user_id: int) -> list[InvestmentGoal]:
        query = (
            select(InvestmentGoal)
            .where(InvestmentGoal.user_id == user_id)
            .order_by(InvestmentGoal.created_at, InvestmentGoal.id)
        )
        return list(self._db.scalars(query).all())

    def get_goal(self, goal_id: int) -> InvestmentGoal | None:
        return self._db.get(InvestmentGoal, goal_id)

    def add_goal(self, goal: InvestmentGoal) -> InvestmentGoal:
        self._db.add(goal)
        self._db.flush()
        return goal

    def save_goal(self, goal: InvestmentGoal) -> InvestmentGoal:
        self._db.flush()
        return goal

    def delete_goal(self, goal: InvestmentGoal) -> None:
        self._db.delete(goal)
        self._db.flush()

    def update_goal_flags(
            self,
            goal_id: int,
            alert_80_sent: bool | None = None,
            alert_100_sent: bool | None = None,
            achieved_at: datetime | None = None,
    ) -> GoalFlagChanges:
        """
        Flip requested flags only where they are still unset.

        Each flag is its own UPDATE ... WHERE flag is unset, so the row count
        tells whether this call (and not a concurrent one) made the change.
        """
        flipped_80 = bool(alert_80_sent) and self._set_if(
            goal_id, InvestmentGoal.alert_80_sent == false(), alert_80_sent=True
        )
        flipped_100 = bool(alert_100_sent) and self._set_if(
            goal_id, InvestmentGoal.alert_100_sent == false(), alert_100_sent=True
        )
        flipped_achieved = achieved_at is not None and self._set_if(
            goal_id, InvestmentGoal.achieved_at.is_(None), achieved_at=achieved_at
        )
        if flipped_80 or flipped_100 or flipped_achieved:
            self._db.refresh(self._db.get(InvestmentGoal, goal_id))
        return GoalFlagChanges(
            alert_80_sent=flipped_80,
            alert_100_sent=flipped_100,
            achieved_at=flipped_achieved,
        )

    def _set_if(self, goal_id: int, condition, **values: Any) -> bool:
        result = self._db.execute(
            update(InvestmentGoal)
            .where(InvestmentGoal.id == goal_id, condition)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class SqlNotificationSink:
    """Stores notifications in the notifications table."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def notify(
            self,
            user_id: int,
            kind: NotificationKind,
            payload: dict[str, Any],
    ) -> None:
        notification = Notification(
            user_id=user_id,
            kind=kind,
            title=payload.get("title", kind.value),
            message=payload.get("message", ""),
            payload=payload,
        )
        self._db.add(notification)
        self._db.flush()
