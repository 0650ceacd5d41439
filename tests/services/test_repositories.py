# tests/services/test_repositories.py
"""
Tests for the SQLAlchemy collaborator implementations.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ledgerfolio.models import (
    AssetPrice,
    ExchangeRate,
    GoalScope,
    InvestmentGoal,
    InvestmentOperation,
    Notification,
    NotificationKind,
    OperationType,
)
from ledgerfolio.services.repositories import (
    SqlExchangeRateProvider,
    SqlGoalStore,
    SqlLedgerSource,
    SqlNotificationSink,
    SqlPriceProvider,
)

NOW = datetime.now(timezone.utc)


def _rate(db, base, target, rate, hours_ago=0):
    db.add(ExchangeRate(
        base_currency=base,
        target_currency=target,
        rate=Decimal(rate),
        fetched_at=NOW - timedelta(hours=hours_ago),
    ))
    db.flush()


@pytest.fixture
def goal(db) -> InvestmentGoal:
    goal = InvestmentGoal(
        user_id=1,
        name="Retirement",
        scope=GoalScope.PORTFOLIO,
        target_amount=Decimal("1000"),
        currency="USD",
    )
    db.add(goal)
    db.flush()
    return goal


class TestSqlLedgerSource:

    def test_excludes_soft_deleted_and_other_users(self, db, usd_stock):
        def add(user_id, deleted=False):
            op = InvestmentOperation(
                user_id=user_id,
                asset_id=usd_stock.id,
                type=OperationType.BUY,
                quantity=Decimal("1"),
                price_per_unit=Decimal("10"),
                total_amount=Decimal("10"),
                fees=Decimal("0"),
                currency="USD",
                occurred_at=NOW,
                deleted_at=NOW if deleted else None,
            )
            db.add(op)
            return op

        live = add(1)
        add(1, deleted=True)
        add(2)
        db.flush()

        operations = SqlLedgerSource(db).list_operations(1)

        assert [op.id for op in operations] == [live.id]


class TestSqlPriceProvider:

    def test_latest_quote_as_reported(self, db, usd_stock):
        db.add_all([
            AssetPrice(asset_id=usd_stock.id, price=Decimal("150"), currency="GBp",
                       fetched_at=NOW - timedelta(hours=2)),
            AssetPrice(asset_id=usd_stock.id, price=Decimal("155"), currency="GBp",
                       fetched_at=NOW),
        ])
        db.flush()

        quote = SqlPriceProvider(db).get_latest_price(usd_stock.id)

        assert quote.price == Decimal("155")
        assert quote.currency == "GBp"

    def test_no_quote(self, db, usd_stock):
        assert SqlPriceProvider(db).get_latest_price(usd_stock.id) is None


class TestSqlExchangeRateProvider:

    def test_same_currency(self, db):
        assert SqlExchangeRateProvider(db).get_rate("EUR", "eur") == Decimal("1")

    def test_direct_rate_freshest_wins(self, db):
        _rate(db, "USD", "EUR", "0.80", hours_ago=48)
        _rate(db, "USD", "EUR", "0.90", hours_ago=0)

        assert SqlExchangeRateProvider(db).get_rate("USD", "EUR") == Decimal("0.9")

    def test_inverse_rate(self, db):
        _rate(db, "EUR", "USD", "1.25")

        assert SqlExchangeRateProvider(db).get_rate("USD", "EUR") == Decimal("0.8")

    def test_stale_rate_is_still_used(self, db, caplog):
        caplog.set_level("INFO", logger="ledgerfolio.services.repositories")
        _rate(db, "USD", "JPY", "150", hours_ago=72)

        rate = SqlExchangeRateProvider(db, max_age=timedelta(hours=1)).get_rate("USD", "JPY")

        assert rate == Decimal("150")
        assert "stale" in caplog.text

    def test_no_rate(self, db):
        assert SqlExchangeRateProvider(db).get_rate("USD", "CHF") is None


class TestSqlGoalStore:

    def test_flag_flips_only_once(self, db, goal):
        store = SqlGoalStore(db)

        first = store.update_goal_flags(goal.id, alert_80_sent=True)
        second = store.update_goal_flags(goal.id, alert_80_sent=True)

        assert first.alert_80_sent is True
        assert second.alert_80_sent is False
        assert not second.any_changed
        assert goal.alert_80_sent is True

    def test_achieved_at_is_never_overwritten(self, db, goal):
        store = SqlGoalStore(db)
        first_time = NOW - timedelta(days=1)

        store.update_goal_flags(goal.id, achieved_at=first_time)
        changes = store.update_goal_flags(goal.id, achieved_at=NOW)

        assert changes.achieved_at is False
        db.refresh(goal)
        assert goal.achieved_at.replace(tzinfo=None) == first_time.replace(tzinfo=None)

    def test_unrequested_flags_are_untouched(self, db, goal):
        changes = SqlGoalStore(db).update_goal_flags(goal.id, alert_100_sent=True)

        assert changes.alert_100_sent is True
        assert changes.alert_80_sent is False
        assert goal.alert_80_sent is False

    def test_list_goals_per_user(self, db, goal):
        store = SqlGoalStore(db)

        assert store.list_goals(1) == [goal]
        assert store.list_goals(2) == []


class TestSqlNotificationSink:

    def test_writes_notification(self, db):
        SqlNotificationSink(db).notify(1, NotificationKind.GOAL_ACHIEVED, {
            "goal_id": 3,
            "title": "Goal achieved",
            "message": "'House' is at 100% of its 1000 USD target",
        })

        notification = db.query(Notification).one()
        assert notification.user_id == 1
        assert notification.kind == NotificationKind.GOAL_ACHIEVED
        assert notification.title == "Goal achieved"
        assert notification.payload["goal_id"] == 3
        assert notification.read_at is None
