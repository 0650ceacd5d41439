# ledgerfolio/services/factory.py
"""
Wiring of services onto a database session.

Usage:
    with session_scope(SessionLocal) as db:
        summary = build_valuation_service(db).get_portfolio_summary(user_id)
        progress = build_goal_service(db).get_goals_progress(user_id)
"""

from sqlalchemy.orm import Session

from ledgerfolio.services.goals import GoalService
from ledgerfolio.services.repositories import (
    SqlAssetRepository,
    SqlExchangeRateProvider,
    SqlGoalStore,
    SqlLedgerSource,
    SqlNotificationSink,
    SqlPriceProvider,
)
from ledgerfolio.services.valuation import ValuationService


def build_valuation_service(db: Session) -> ValuationService:
    return ValuationService(
        ledger=SqlLedgerSource(db),
        assets=SqlAssetRepository(db),
        prices=SqlPriceProvider(db),
        rates=SqlExchangeRateProvider(db),
    )


def build_goal_service(db: Session) -> GoalService:
    return GoalService(
        store=SqlGoalStore(db),
        assets=SqlAssetRepository(db),
        notifications=SqlNotificationSink(db),
        valuation=build_valuation_service(db),
    )
