# tests/services/test_operation_service.py
"""
Tests for OperationService against an in-memory SQLite database.

Test Coverage:
- Derived total_amount per operation type
- Currency defaulting to the asset currency
- Write-time oversell rejection (record and remove)
- Soft delete and ownership checks
- Filtered, paginated listing
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ledgerfolio.models import InvestmentOperation, OperationType
from ledgerfolio.schemas.operations import OperationCreate, OperationListResponse
from ledgerfolio.services.exceptions import (
    AssetNotFoundError,
    InsufficientQuantityError,
    OperationNotFoundError,
)
from ledgerfolio.services.operations import OperationService, compute_total_amount

T0 = datetime(2024, 5, 1, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(db) -> OperationService:
    return OperationService(db)


@pytest.fixture
def record(service, usd_stock):
    def _record(
            op_type: OperationType,
            quantity: str,
            price: str,
            fees: str = "0",
            day: int = 0,
            user_id: int = 1,
            **extra,
    ) -> InvestmentOperation:
        return service.record_operation(user_id, OperationCreate(
            asset_id=usd_stock.id,
            type=op_type,
            quantity=Decimal(quantity),
            price_per_unit=Decimal(price),
            fees=Decimal(fees),
            occurred_at=T0 + timedelta(days=day),
            **extra,
        ))
    return _record


class TestComputeTotalAmount:
    """Display amount derived once at creation."""

    @pytest.mark.parametrize(
        ("op_type", "expected"),
        [
            (OperationType.BUY, Decimal("1005")),
            (OperationType.SELL, Decimal("995")),
            (OperationType.DIVIDEND, Decimal("100")),
            (OperationType.FEE, Decimal("1000")),
            (OperationType.SPLIT, Decimal("1000")),
        ],
    )
    def test_total_amount(self, op_type, expected):
        assert compute_total_amount(op_type, Decimal("10"), Decimal("100"), Decimal("5")) == expected


class TestRecordOperation:
    """Recording operations."""

    def test_records_buy(self, record, usd_stock):
        operation = record(OperationType.BUY, "10", "100", fees="5", notes="first lot")

        assert operation.id is not None
        assert operation.user_id == 1
        assert operation.asset_id == usd_stock.id
        assert operation.total_amount == Decimal("1005")
        assert operation.currency == "USD"
        assert operation.notes == "first lot"
        assert operation.deleted_at is None

    def test_explicit_currency_is_kept(self, record):
        operation = record(OperationType.BUY, "10", "120", currency="GBp")

        assert operation.currency == "GBp"

    def test_unknown_asset(self, service):
        with pytest.raises(AssetNotFoundError):
            service.record_operation(1, OperationCreate(
                asset_id=999,
                type=OperationType.BUY,
                quantity=Decimal("1"),
                price_per_unit=Decimal("1"),
                occurred_at=T0,
            ))

    def test_sell_within_holding_is_accepted(self, record):
        record(OperationType.BUY, "10", "100", day=0)

        sell = record(OperationType.SELL, "10", "120", fees="2", day=1)

        assert sell.total_amount == Decimal("1198")

    def test_oversell_is_rejected(self, record, service):
        record(OperationType.BUY, "5", "100", day=0)

        with pytest.raises(InsufficientQuantityError) as exc_info:
            record(OperationType.SELL, "8", "120", day=1)

        assert exc_info.value.available == Decimal("5")
        assert service.list_operations(user_id=1).total == 1

    def test_backdated_sell_before_buy_is_rejected(self, record):
        record(OperationType.BUY, "5", "100", day=5)

        with pytest.raises(InsufficientQuantityError):
            record(OperationType.SELL, "5", "120", day=1)

    def test_other_users_holdings_do_not_count(self, record):
        record(OperationType.BUY, "5", "100", day=0, user_id=2)

        with pytest.raises(InsufficientQuantityError):
            record(OperationType.SELL, "5", "120", day=1, user_id=1)


class TestRemoveOperation:
    """Soft deletion."""

    def test_soft_deletes(self, record, service, db):
        operation = record(OperationType.BUY, "10", "100")

        service.remove_operation(1, operation.id)

        assert db.get(InvestmentOperation, operation.id).deleted_at is not None
        assert service.list_operations(user_id=1).items == []
        with pytest.raises(OperationNotFoundError):
            service.get_operation(1, operation.id)

    def test_removing_a_buy_a_sell_depends_on_is_rejected(self, record, service):
        buy = record(OperationType.BUY, "10", "100", day=0)
        record(OperationType.SELL, "10", "120", day=1)

        with pytest.raises(InsufficientQuantityError):
            service.remove_operation(1, buy.id)

    def test_removing_a_sell_is_accepted(self, record, service):
        record(OperationType.BUY, "10", "100", day=0)
        sell = record(OperationType.SELL, "10", "120", day=1)

        removed = service.remove_operation(1, sell.id)

        assert removed.deleted_at is not None

    def test_unknown_operation(self, service):
        with pytest.raises(OperationNotFoundError):
            service.remove_operation(1, 12345)

    def test_operation_of_other_user(self, record, service):
        operation = record(OperationType.BUY, "10", "100", user_id=2)

        with pytest.raises(OperationNotFoundError):
            service.remove_operation(1, operation.id)


class TestListOperations:
    """Filtered listing, newest first."""

    @pytest.fixture
    def ledger(self, record):
        return [
            record(OperationType.BUY, "10", "100", day=0),
            record(OperationType.DIVIDEND, "0", "12", day=10),
            record(OperationType.SELL, "2", "110", day=20),
            record(OperationType.BUY, "1", "105", day=30),
        ]

    def test_newest_first(self, ledger, service):
        page = service.list_operations(user_id=1)

        assert [op.id for op in page.items] == [op.id for op in reversed(ledger)]
        assert page.total == 4

    def test_filter_by_type(self, ledger, service):
        page = service.list_operations(user_id=1, type=OperationType.BUY)

        assert page.total == 2
        assert all(op.type == OperationType.BUY for op in page.items)

    def test_filter_by_date_range(self, ledger, service):
        page = service.list_operations(
            user_id=1,
            start=T0 + timedelta(days=5),
            end=T0 + timedelta(days=25),
        )

        assert {op.id for op in page.items} == {ledger[1].id, ledger[2].id}

    def test_pagination(self, ledger, service):
        page = service.list_operations(user_id=1, skip=1, limit=2)

        assert page.total == 4
        assert [op.id for op in page.items] == [ledger[2].id, ledger[1].id]

    def test_filter_by_asset(self, ledger, service, usd_stock):
        assert service.list_operations(user_id=1, asset_id=usd_stock.id).total == 4
        assert service.list_operations(user_id=1, asset_id=usd_stock.id + 1).total == 0

    def test_list_response_from_page(self, ledger, service):
        page = service.list_operations(user_id=1, skip=2, limit=2)

        response = OperationListResponse.from_page(page)

        assert [item.id for item in response.items] == [op.id for op in page.items]
        assert response.pagination.page == 2
        assert response.pagination.pages == 2
        assert response.pagination.has_next is False
        assert response.pagination.has_previous is True
