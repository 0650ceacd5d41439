# ledgerfolio/services/protocols.py
"""
Protocol interfaces for the engine's external collaborators.

Using typing.Protocol enables structural subtyping:
- The SQLAlchemy repositories satisfy them without inheritance
- Test fakes work without explicit inheritance
- Each collaborator's contract is documented in one place
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerfolio.models import Asset, InvestmentGoal, InvestmentOperation, NotificationKind
    from ledgerfolio.services.goals.types import GoalFlagChanges
    from ledgerfolio.services.valuation.types import PriceQuote


class LedgerSource(Protocol):
    """Live (not soft-deleted) operations; order is not guaranteed."""

    def list_operations(
        self,
        user_id: int,
        asset_id: int | None = None,
    ) -> list[InvestmentOperation]:
        ...


class AssetRepository(Protocol):
    """Interface required by ValuationService and the goal/operation services."""

    def get_asset(self, asset_id: int) -> Asset | None:
        ...


class PriceProvider(Protocol):
    """Latest known quote for an asset, in the currency the source reported."""

    def get_latest_price(self, asset_id: int) -> PriceQuote | None:
        ...


class ExchangeRateProvider(Protocol):
    """Rate such that 1 from_currency = rate × to_currency; None if unavailable."""

    def get_rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        ...


class GoalStore(Protocol):
    """
    Goal persistence used by GoalService.

    update_goal_flags must be conditional: it only flips a flag from false
    to true and only sets achieved_at when it is still unset, and reports
    which of the requested changes it actually applied.
    """

    def list_goals(self, user_id: int) -> list[InvestmentGoal]:
        ...

    def get_goal(self, goal_id: int) -> InvestmentGoal | None:
        ...

    def add_goal(self, goal: InvestmentGoal) -> InvestmentGoal:
        ...

    def save_goal(self, goal: InvestmentGoal) -> InvestmentGoal:
        ...

    def delete_goal(self, goal: InvestmentGoal) -> None:
        ...

    def update_goal_flags(
        self,
        goal_id: int,
        alert_80_sent: bool | None = None,
        alert_100_sent: bool | None = None,
        achieved_at: datetime | None = None,
    ) -> GoalFlagChanges:
        ...


class NotificationSink(Protocol):
    """Fire-and-forget delivery of a user notification."""

    def notify(
        self,
        user_id: int,
        kind: NotificationKind,
        payload: dict[str, Any],
    ) -> None:
        ...
