# tests/services/valuation/test_valuation_integration.py
"""
Integration tests: ledger and market data in SQLite, valued end to end.

Operations are written through OperationService so that the stored rows
look exactly like production rows (derived total_amount, timestamps).
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ledgerfolio.models import Asset, AssetPrice, AssetType, ExchangeRate, OperationType
from ledgerfolio.schemas.operations import OperationCreate
from ledgerfolio.services import OperationService, build_valuation_service

T0 = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


def _record(db, asset_id, op_type, quantity, price, fees="0", day=0):
    return OperationService(db).record_operation(
        user_id=1,
        data=OperationCreate(
            asset_id=asset_id,
            type=op_type,
            quantity=Decimal(quantity),
            price_per_unit=Decimal(price),
            fees=Decimal(fees),
            occurred_at=T0 + timedelta(days=day),
        ),
    )


def _price(db, asset_id, price, currency, minutes_ago=0):
    db.add(AssetPrice(
        asset_id=asset_id,
        price=Decimal(price),
        currency=currency,
        fetched_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
    ))
    db.flush()


@pytest.fixture
def london_etf(db) -> Asset:
    asset = Asset(symbol="VUSA.L", name="Vanguard S&P 500", type=AssetType.ETF, currency="GBP")
    db.add(asset)
    db.flush()
    return asset


class TestValuationIntegration:
    """Holdings and portfolio valued from database rows."""

    def test_end_to_end_buy_then_sell(self, db, usd_stock):
        _record(db, usd_stock.id, OperationType.BUY, "10", "100", fees="5", day=0)
        _record(db, usd_stock.id, OperationType.SELL, "4", "120", fees="2", day=1)
        _price(db, usd_stock.id, "130", "USD")

        holdings = build_valuation_service(db).get_holdings(user_id=1)

        assert len(holdings) == 1
        holding = holdings[0]
        assert holding.quantity == Decimal("6")
        assert holding.average_cost == Decimal("100.5")
        assert holding.realized_pnl == Decimal("76")
        assert holding.total_invested == Decimal("603")
        assert holding.current_value == Decimal("780")

    def test_latest_price_wins(self, db, usd_stock):
        _record(db, usd_stock.id, OperationType.BUY, "1", "100")
        _price(db, usd_stock.id, "90", "USD", minutes_ago=60)
        _price(db, usd_stock.id, "110", "USD", minutes_ago=1)

        holding = build_valuation_service(db).get_holdings(user_id=1)[0]

        assert holding.current_price == Decimal("110")

    def test_pence_quote_is_normalized(self, db, london_etf):
        _record(db, london_etf.id, OperationType.BUY, "100", "1.20")
        _price(db, london_etf.id, "150", "GBp")

        holding = build_valuation_service(db).get_holdings(user_id=1)[0]

        assert holding.current_price == Decimal("1.50")
        assert holding.current_value == Decimal("150")
        assert holding.unrealized_pnl == Decimal("30")

    def test_foreign_quote_uses_stored_rate(self, db, london_etf):
        _record(db, london_etf.id, OperationType.BUY, "10", "1")
        _price(db, london_etf.id, "2", "USD")
        db.add(ExchangeRate(
            base_currency="GBP",
            target_currency="USD",
            rate=Decimal("1.25"),
            fetched_at=datetime.now(timezone.utc),
        ))
        db.flush()

        holding = build_valuation_service(db).get_holdings(user_id=1)[0]

        # 2 USD at 1 GBP = 1.25 USD (inverse rate) -> 1.6 GBP
        assert holding.current_price == Decimal("1.6")
        assert holding.current_value == Decimal("16")

    def test_missing_price_keeps_portfolio_value_unknown(self, db, usd_stock, london_etf):
        _record(db, usd_stock.id, OperationType.BUY, "2", "50")
        _record(db, london_etf.id, OperationType.BUY, "10", "1")
        _price(db, usd_stock.id, "60", "USD")

        summary = build_valuation_service(db).get_portfolio_summary(user_id=1)

        assert summary.total_invested == Decimal("110")
        assert summary.total_current_value is None
        assert summary.by_asset_type["STOCK"].current_value == Decimal("120")
        assert summary.by_asset_type["ETF"].current_value is None

    def test_removed_operation_is_not_replayed(self, db, usd_stock):
        _record(db, usd_stock.id, OperationType.BUY, "10", "100", day=0)
        extra = _record(db, usd_stock.id, OperationType.BUY, "5", "100", day=1)
        OperationService(db).remove_operation(user_id=1, operation_id=extra.id)
        _price(db, usd_stock.id, "100", "USD")

        holding = build_valuation_service(db).get_holdings(user_id=1)[0]

        assert holding.quantity == Decimal("10")
