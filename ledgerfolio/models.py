# ledgerfolio/models.py
import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Text, DateTime, ForeignKey, Enum, Numeric, Boolean, JSON, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class OperationType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"  # price_per_unit holds the total cash amount
    FEE = "FEE"
    SPLIT = "SPLIT"  # quantity holds the split ratio


class AssetType(str, enum.Enum):
    STOCK = "STOCK"
    ETF = "ETF"
    CRYPTO = "CRYPTO"
    BOND = "BOND"
    MUTUAL_FUND = "MUTUAL_FUND"
    OTHER = "OTHER"


class GoalScope(str, enum.Enum):
    PORTFOLIO = "PORTFOLIO"
    ASSET = "ASSET"


class NotificationKind(str, enum.Enum):
    GOAL_PROGRESS_80 = "GOAL_PROGRESS_80"
    GOAL_ACHIEVED = "GOAL_ACHIEVED"


class Asset(Base):
    """
    Global table of tradable instruments shared by all users.

    currency is the asset's home currency: cost and value of a holding are
    reported in it. It may be a pence code (GBp/GBX) for London listings.
    """
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    symbol: Mapped[str] = mapped_column(String(30), index=True)  # e.g. "VUSA.L"
    name: Mapped[str] = mapped_column(String(200))
    type: Mapped[AssetType] = mapped_column(Enum(AssetType))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    exchange: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    prices: Mapped[list["AssetPrice"]] = relationship(back_populates="asset")
    operations: Mapped[list["InvestmentOperation"]] = relationship(back_populates="asset")


class InvestmentOperation(Base):
    """
    Immutable ledger entry. Removal is a soft delete (deleted_at set).

    total_amount is derived once at creation for display; replay never
    reads it.
    """
    __tablename__ = "investment_operations"
    __table_args__ = (
        # "All live operations for user X (optionally of asset A) in time order"
        Index("ix_operation_user_asset_occurred", "user_id", "asset_id", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(index=True)
    asset_id: Mapped[int] = mapped_column(ForeignKey("assets.id"), index=True)
    type: Mapped[OperationType] = mapped_column(Enum(OperationType))

    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(18, 6))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    fees: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    asset: Mapped["Asset"] = relationship(back_populates="operations")


class AssetPrice(Base):
    """
    Price quotes as delivered by a market data source.

    currency is the quote currency reported by the source, which for UK
    listings is often GBp/GBX rather than the asset's home currency.
    """
    __tablename__ = "asset_prices"
    __table_args__ = (
        Index("ix_asset_price_asset_fetched", "asset_id", "fetched_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    asset_id: Mapped[int] = mapped_column(ForeignKey("assets.id"), index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 6))
    currency: Mapped[str] = mapped_column(String(3))
    source: Mapped[str] = mapped_column(String(50), default="manual")
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    asset: Mapped["Asset"] = relationship(back_populates="prices")


class ExchangeRate(Base):
    """
    Cached exchange rates.

    Convention: rate represents "1 base_currency = X target_currency"
    Example: base=USD, target=EUR, rate=0.92 means 1 USD = 0.92 EUR
    """
    __tablename__ = "exchange_rates"
    __table_args__ = (
        Index("ix_exchange_rate_pair_fetched", "base_currency", "target_currency", "fetched_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    base_currency: Mapped[str] = mapped_column(String(3))
    target_currency: Mapped[str] = mapped_column(String(3))
    rate: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    source: Mapped[str] = mapped_column(String(50), default="manual")
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class InvestmentGoal(Base):
    """
    User-defined savings target, portfolio-wide or for a single asset.

    alert_80_sent, alert_100_sent and achieved_at are written by goal
    evaluation only through conditional updates (false -> true, NULL -> ts).
    """
    __tablename__ = "investment_goals"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(index=True)
    name: Mapped[str] = mapped_column(String(120))
    scope: Mapped[GoalScope] = mapped_column(Enum(GoalScope), default=GoalScope.PORTFOLIO)
    asset_id: Mapped[int | None] = mapped_column(ForeignKey("assets.id"), nullable=True, index=True)
    target_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    target_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    alert_at_80: Mapped[bool] = mapped_column(Boolean, default=True)
    alert_at_100: Mapped[bool] = mapped_column(Boolean, default=True)
    alert_80_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    alert_100_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    achieved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Notification(Base):
    """In-app notification written by the goal alert pass."""
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(index=True)
    kind: Mapped[NotificationKind] = mapped_column(Enum(NotificationKind))
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
