# tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- In-memory fakes for every collaborator protocol
- Sample data factories
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import count
from typing import Any, Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerfolio.models import (
    Asset,
    AssetType,
    Base,
    GoalScope,
    NotificationKind,
    OperationType,
)
from ledgerfolio.services.goals.types import GoalFlagChanges
from ledgerfolio.services.valuation.types import PriceQuote

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def usd_stock(db) -> Asset:
    """A USD stock stored in the test database."""
    asset = Asset(symbol="AAPL", name="Apple Inc.", type=AssetType.STOCK, currency="USD")
    db.add(asset)
    db.flush()
    return asset


# =============================================================================
# MOCK OBJECTS (No database needed)
# =============================================================================

@dataclass
class MockAsset:
    """Mock Asset for unit testing."""
    id: int
    symbol: str
    name: str
    type: AssetType
    currency: str


@dataclass
class MockOperation:
    """Mock InvestmentOperation for unit testing."""
    id: int
    user_id: int
    asset_id: int
    type: OperationType
    quantity: Decimal
    price_per_unit: Decimal
    fees: Decimal
    occurred_at: datetime
    created_at: datetime | None
    currency: str = "USD"
    deleted_at: datetime | None = None


@dataclass
class MockGoal:
    """Mock InvestmentGoal for unit testing."""
    id: int
    user_id: int
    name: str
    scope: GoalScope
    asset_id: int | None
    target_amount: Decimal
    currency: str
    alert_at_80: bool = True
    alert_at_100: bool = True
    alert_80_sent: bool = False
    alert_100_sent: bool = False
    achieved_at: datetime | None = None
    target_date: datetime | None = None


class OperationFactory:
    """
    Builds MockOperation records with increasing ids and creation times.

    Usage:
        op = make_op(OperationType.BUY, "10", "100", fees="5", day=0)
    """

    def __init__(self) -> None:
        self._ids = count(1)

    def __call__(
            self,
            op_type: OperationType,
            quantity: str,
            price: str,
            fees: str = "0",
            day: int = 0,
            asset_id: int = 1,
            user_id: int = 1,
    ) -> MockOperation:
        op_id = next(self._ids)
        return MockOperation(
            id=op_id,
            user_id=user_id,
            asset_id=asset_id,
            type=op_type,
            quantity=Decimal(quantity),
            price_per_unit=Decimal(price),
            fees=Decimal(fees),
            occurred_at=BASE_TIME + timedelta(days=day),
            created_at=BASE_TIME + timedelta(days=day, seconds=op_id),
        )


@pytest.fixture
def make_op() -> OperationFactory:
    return OperationFactory()


@pytest.fixture
def make_asset():
    def _make(
            asset_id: int = 1,
            symbol: str = "AAPL",
            currency: str = "USD",
            asset_type: AssetType = AssetType.STOCK,
    ) -> MockAsset:
        return MockAsset(
            id=asset_id,
            symbol=symbol,
            name=f"{symbol} name",
            type=asset_type,
            currency=currency,
        )
    return _make


@pytest.fixture
def make_goal():
    ids = count(1)

    def _make(
            target: str = "1000",
            currency: str = "USD",
            scope: GoalScope = GoalScope.PORTFOLIO,
            asset_id: int | None = None,
            user_id: int = 1,
            **flags: Any,
    ) -> MockGoal:
        return MockGoal(
            id=next(ids),
            user_id=user_id,
            name="Retirement",
            scope=scope,
            asset_id=asset_id,
            target_amount=Decimal(target),
            currency=currency,
            **flags,
        )
    return _make


# =============================================================================
# IN-MEMORY COLLABORATORS
# =============================================================================

class FakeLedger:
    """LedgerSource over a list; skips soft-deleted operations."""

    def __init__(self, operations: list | None = None) -> None:
        self.operations = list(operations or [])

    def list_operations(self, user_id: int, asset_id: int | None = None) -> list:
        return [
            op for op in self.operations
            if op.user_id == user_id
            and op.deleted_at is None
            and (asset_id is None or op.asset_id == asset_id)
        ]


class FakeAssets:
    """AssetRepository over a dict; ids in `failing` raise."""

    def __init__(self, *assets: MockAsset) -> None:
        self.assets = {asset.id: asset for asset in assets}
        self.failing: set[int] = set()

    def get_asset(self, asset_id: int):
        if asset_id in self.failing:
            raise RuntimeError(f"asset store unavailable for {asset_id}")
        return self.assets.get(asset_id)


class FakePrices:
    """PriceProvider with configurable quotes and failures."""

    def __init__(self) -> None:
        self.quotes: dict[int, PriceQuote] = {}
        self.failing: set[int] = set()
        self.calls: list[int] = []

    def set(self, asset_id: int, price: str, currency: str | None = "USD") -> None:
        self.quotes[asset_id] = PriceQuote(price=Decimal(price), currency=currency)

    def get_latest_price(self, asset_id: int) -> PriceQuote | None:
        self.calls.append(asset_id)
        if asset_id in self.failing:
            raise RuntimeError(f"price feed down for {asset_id}")
        return self.quotes.get(asset_id)


class FakeRates:
    """ExchangeRateProvider with rates keyed by (from, to)."""

    def __init__(self, **pairs: str) -> None:
        # FakeRates(USD_EUR="0.9") -> 1 USD = 0.9 EUR
        self.rates: dict[tuple[str, str], Decimal] = {}
        for key, value in pairs.items():
            base, target = key.split("_")
            self.rates[(base, target)] = Decimal(value)
        self.calls: list[tuple[str, str]] = []

    def get_rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        self.calls.append((from_currency, to_currency))
        return self.rates.get((from_currency, to_currency))


class FakeGoalStore:
    """GoalStore over a dict with the same conditional flag semantics as SQL."""

    def __init__(self, *goals: MockGoal) -> None:
        self.goals = {goal.id: goal for goal in goals}
        self.flag_calls: list[dict] = []
        self.failing: set[int] = set()
        self._ids = count(100)

    def list_goals(self, user_id: int) -> list:
        return [goal for goal in self.goals.values() if goal.user_id == user_id]

    def get_goal(self, goal_id: int):
        return self.goals.get(goal_id)

    def add_goal(self, goal):
        if getattr(goal, "id", None) is None:
            goal.id = next(self._ids)
        self.goals[goal.id] = goal
        return goal

    def save_goal(self, goal):
        self.goals[goal.id] = goal
        return goal

    def delete_goal(self, goal) -> None:
        del self.goals[goal.id]

    def update_goal_flags(
            self,
            goal_id: int,
            alert_80_sent: bool | None = None,
            alert_100_sent: bool | None = None,
            achieved_at: datetime | None = None,
    ) -> GoalFlagChanges:
        self.flag_calls.append({
            "goal_id": goal_id,
            "alert_80_sent": alert_80_sent,
            "alert_100_sent": alert_100_sent,
            "achieved_at": achieved_at,
        })
        if goal_id in self.failing:
            raise RuntimeError(f"goal store unavailable for {goal_id}")

        goal = self.goals[goal_id]
        flipped_80 = bool(alert_80_sent) and not goal.alert_80_sent
        flipped_100 = bool(alert_100_sent) and not goal.alert_100_sent
        flipped_achieved = achieved_at is not None and goal.achieved_at is None
        if flipped_80:
            goal.alert_80_sent = True
        if flipped_100:
            goal.alert_100_sent = True
        if flipped_achieved:
            goal.achieved_at = achieved_at
        return GoalFlagChanges(
            alert_80_sent=flipped_80,
            alert_100_sent=flipped_100,
            achieved_at=flipped_achieved,
        )


@dataclass
class FakeNotificationSink:
    """NotificationSink that records what was sent."""
    sent: list[tuple[int, NotificationKind, dict]] = field(default_factory=list)

    def notify(self, user_id: int, kind: NotificationKind, payload: dict) -> None:
        self.sent.append((user_id, kind, payload))

    @property
    def kinds(self) -> list[NotificationKind]:
        return [kind for _, kind, _ in self.sent]


@pytest.fixture
def fake_prices() -> FakePrices:
    return FakePrices()


@pytest.fixture
def fake_rates() -> FakeRates:
    return FakeRates()


@pytest.fixture
def notifications() -> FakeNotificationSink:
    return FakeNotificationSink()


@pytest.fixture
def fakes():
    """Constructors for the in-memory collaborators, for tests that need several."""
    return {
        "ledger": FakeLedger,
        "assets": FakeAssets,
        "prices": FakePrices,
        "rates": FakeRates,
        "goals": FakeGoalStore,
        "notifications": FakeNotificationSink,
    }
