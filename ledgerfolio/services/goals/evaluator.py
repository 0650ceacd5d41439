# ledgerfolio/services/goals/evaluator.py
"""
Goal Evaluator - measures goals against already-built holdings.

Current amount:
    PORTFOLIO  Σ (current value, else total invested) of every holding,
               each converted to the goal currency
    ASSET      the same for the goal's asset only; None if not held

Any failed conversion makes the amount unknown (None). Progress is
current / target × 100, capped, and None whenever the amount is unknown or
the target is not positive.

The evaluator only reads. Persisting flags and sending notifications is
GoalService.apply_alerts().
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from ledgerfolio.config import settings
from ledgerfolio.models import GoalScope, NotificationKind
from ledgerfolio.services.constants import HUNDRED, ZERO
from ledgerfolio.services.goals.types import GoalEvaluation

if TYPE_CHECKING:
    from ledgerfolio.models import InvestmentGoal
    from ledgerfolio.services.valuation.pricing import CurrencyConverter
    from ledgerfolio.services.valuation.types import HoldingSummary

logger = logging.getLogger(__name__)


class GoalEvaluator:
    """
    Evaluates goal progress in the goal's own currency.

    Attributes:
        progress_cap: Upper bound on reported progress percent
    """

    def __init__(
            self,
            converter: CurrencyConverter,
            progress_cap: Decimal | None = None,
    ) -> None:
        self._converter = converter
        self.progress_cap = (
            progress_cap if progress_cap is not None else settings.goal_progress_cap_percent
        )

    def evaluate(
            self,
            goal: InvestmentGoal,
            holdings: list[HoldingSummary],
    ) -> GoalEvaluation:
        """
        Evaluate one goal.

        Args:
            goal: The goal (scope, asset_id, target_amount, currency)
            holdings: The user's holdings, as built by ValuationService

        Returns:
            GoalEvaluation with amount and progress (None where unknown)
        """
        if GoalScope(goal.scope) == GoalScope.ASSET:
            current = self._asset_amount(goal, holdings)
        else:
            current = self._portfolio_amount(goal, holdings)

        return GoalEvaluation(
            goal_id=goal.id,
            currency=goal.currency,
            current_amount=current,
            progress_percent=self.progress(current, Decimal(goal.target_amount)),
        )

    def progress(self, current: Decimal | None, target: Decimal) -> Decimal | None:
        """current / target × 100, capped; None if current is unknown or target <= 0."""
        if current is None or target <= ZERO:
            return None
        return min(current / target * HUNDRED, self.progress_cap)

    @staticmethod
    def due_alerts(
            goal: InvestmentGoal,
            evaluation: GoalEvaluation,
    ) -> list[NotificationKind]:
        """
        Alerts this evaluation would trigger, judged from the goal as loaded.

        The authoritative check is the store's conditional update; this only
        filters out goals with nothing to do.
        """
        due: list[NotificationKind] = []
        if goal.alert_at_80 and not goal.alert_80_sent and evaluation.reached_alert_threshold:
            due.append(NotificationKind.GOAL_PROGRESS_80)
        if goal.alert_at_100 and not goal.alert_100_sent and evaluation.reached_target:
            due.append(NotificationKind.GOAL_ACHIEVED)
        return due

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    def _portfolio_amount(
            self,
            goal: InvestmentGoal,
            holdings: list[HoldingSummary],
    ) -> Decimal | None:
        total = ZERO
        for holding in holdings:
            converted = self._holding_amount(goal, holding)
            if converted is None:
                return None
            total += converted
        return total

    def _asset_amount(
            self,
            goal: InvestmentGoal,
            holdings: list[HoldingSummary],
    ) -> Decimal | None:
        holding = next((h for h in holdings if h.asset_id == goal.asset_id), None)
        if holding is None or not holding.has_position:
            logger.debug(f"Goal {goal.id}: asset {goal.asset_id} not held")
            return None
        return self._holding_amount(goal, holding)

    def _holding_amount(
            self,
            goal: InvestmentGoal,
            holding: HoldingSummary,
    ) -> Decimal | None:
        converted = self._converter.convert(
            holding.value_or_invested, holding.currency, goal.currency
        )
        if converted is None:
            logger.warning(
                f"Goal {goal.id}: cannot convert {holding.symbol} "
                f"from {holding.currency} to {goal.currency}"
            )
        return converted
