# ledgerfolio/services/goals/service.py
"""
Goal Service - goal CRUD, progress evaluation and one-shot alerts.

Alert lifecycle of a goal:
    alert_80_sent   false -> true once progress >= 80 (if alert_at_80)
    alert_100_sent  false -> true once progress >= 100 (if alert_at_100)
    achieved_at     NULL -> now once progress >= 100

Each transition is written through GoalStore.update_goal_flags(), a
conditional update, and a notification is sent only if that update
actually flipped the flag. Running the evaluation twice, or from two
workers at once, therefore notifies once.

Editing target_amount, scope, asset_id or currency re-arms the goal: all
three fields go back to their initial state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, TYPE_CHECKING

from ledgerfolio.models import GoalScope, InvestmentGoal, NotificationKind
from ledgerfolio.services.exceptions import (
    AssetNotFoundError,
    GoalNotFoundError,
    InvalidGoalScopeError,
)
from ledgerfolio.services.goals.evaluator import GoalEvaluator
from ledgerfolio.services.goals.types import GoalEvaluation, GoalProgress
from ledgerfolio.utils.context import valuation_context

if TYPE_CHECKING:
    from ledgerfolio.schemas.goals import GoalCreate, GoalUpdate
    from ledgerfolio.services.protocols import AssetRepository, GoalStore, NotificationSink
    from ledgerfolio.services.valuation import ValuationService

logger = logging.getLogger(__name__)

# Edits to these fields re-arm alerts and clear achieved_at
REARM_FIELDS: tuple[str, ...] = ("target_amount", "scope", "asset_id", "currency")

NOTIFICATION_TITLES: dict[NotificationKind, str] = {
    NotificationKind.GOAL_PROGRESS_80: "Goal 80% reached",
    NotificationKind.GOAL_ACHIEVED: "Goal achieved",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoalService:
    """
    Manages goals and evaluates them against the user's holdings.

    Example:
        service = GoalService(store, assets, notifications, valuation)
        for progress in service.get_goals_progress(user_id=1):
            print(progress.goal.name, progress.progress_percent)
    """

    def __init__(
            self,
            store: GoalStore,
            assets: AssetRepository,
            notifications: NotificationSink,
            valuation: ValuationService,
            progress_cap: Decimal | None = None,
            clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._assets = assets
        self._notifications = notifications
        self._valuation = valuation
        self._evaluator = GoalEvaluator(valuation.converter, progress_cap)
        self._clock = clock

    # =========================================================================
    # CRUD
    # =========================================================================

    def list_goals(self, user_id: int) -> list[InvestmentGoal]:
        return self._store.list_goals(user_id)

    def get_goal(self, user_id: int, goal_id: int) -> InvestmentGoal:
        """
        Raises:
            GoalNotFoundError: Unknown goal or goal of another user
        """
        goal = self._store.get_goal(goal_id)
        if goal is None or goal.user_id != user_id:
            raise GoalNotFoundError(goal_id)
        return goal

    def create_goal(self, user_id: int, data: GoalCreate) -> InvestmentGoal:
        """
        Create a goal.

        Raises:
            InvalidGoalScopeError: asset_id inconsistent with scope
            AssetNotFoundError: ASSET goal on an unknown asset
        """
        self._check_scope(data.scope, data.asset_id)

        goal = InvestmentGoal(
            user_id=user_id,
            name=data.name,
            scope=data.scope,
            asset_id=data.asset_id,
            target_amount=data.target_amount,
            currency=data.currency,
            target_date=data.target_date,
            alert_at_80=data.alert_at_80,
            alert_at_100=data.alert_at_100,
            alert_80_sent=False,
            alert_100_sent=False,
            achieved_at=None,
        )
        goal = self._store.add_goal(goal)
        logger.info(f"Created {GoalScope(goal.scope).value} goal {goal.id} for user {user_id}")
        return goal

    def update_goal(self, user_id: int, goal_id: int, data: GoalUpdate) -> InvestmentGoal:
        """
        Apply the fields sent in `data` to a goal.

        Switching to PORTFOLIO clears asset_id; switching to ASSET requires
        one. If any re-arm field actually changes, alerts are re-armed.

        Raises:
            GoalNotFoundError: Unknown goal or goal of another user
            InvalidGoalScopeError: asset_id inconsistent with the new scope
            AssetNotFoundError: ASSET goal on an unknown asset
        """
        goal = self.get_goal(user_id, goal_id)
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in ("asset_id", "target_date")
        }

        scope = GoalScope(changes.get("scope") or goal.scope)
        if scope == GoalScope.PORTFOLIO:
            if changes.get("asset_id") is not None:
                raise InvalidGoalScopeError("asset_id must be empty for PORTFOLIO goals")
            changes["asset_id"] = None
        else:
            asset_id = changes["asset_id"] if "asset_id" in changes else goal.asset_id
            self._check_scope(scope, asset_id)
            changes["asset_id"] = asset_id
        changes["scope"] = scope

        rearm = any(
            field in changes and changes[field] != getattr(goal, field)
            for field in REARM_FIELDS
        )

        for field, value in changes.items():
            setattr(goal, field, value)

        if rearm:
            goal.alert_80_sent = False
            goal.alert_100_sent = False
            goal.achieved_at = None
            logger.info(f"Goal {goal.id} re-armed after edit")

        return self._store.save_goal(goal)

    def delete_goal(self, user_id: int, goal_id: int) -> None:
        goal = self.get_goal(user_id, goal_id)
        self._store.delete_goal(goal)
        logger.info(f"Deleted goal {goal_id} of user {user_id}")

    # =========================================================================
    # EVALUATION
    # =========================================================================

    def get_goals_progress(self, user_id: int) -> list[GoalProgress]:
        """
        Evaluate all goals of a user and send any alerts now due.

        Holdings are built once and shared by every goal.
        """
        goals = self._store.list_goals(user_id)
        if not goals:
            return []

        holdings = self._valuation.get_holdings(user_id)

        with valuation_context(user_id):
            evaluations = [self._evaluator.evaluate(goal, holdings) for goal in goals]
            sent = self.apply_alerts(user_id, evaluations, goals)

        return [
            GoalProgress(goal=goal, evaluation=evaluation, alerts_sent=sent.get(goal.id, []))
            for goal, evaluation in zip(goals, evaluations)
        ]

    def apply_alerts(
            self,
            user_id: int,
            evaluations: list[GoalEvaluation],
            goals: list[InvestmentGoal] | None = None,
    ) -> dict[int, list[NotificationKind]]:
        """
        Persist due flag transitions and notify for those that happened.

        A failure on one goal is logged and does not stop the others; the
        next evaluation retries it.

        Args:
            user_id: Owner of the goals
            evaluations: Evaluations to act on
            goals: The evaluated goals (loaded from the store when omitted)

        Returns:
            Notification kinds sent, keyed by goal id
        """
        if goals is None:
            goals = self._store.list_goals(user_id)
        by_id = {goal.id: goal for goal in goals}

        sent: dict[int, list[NotificationKind]] = {}
        for evaluation in evaluations:
            goal = by_id.get(evaluation.goal_id)
            if goal is None:
                logger.warning(f"Evaluation for unknown goal {evaluation.goal_id} ignored")
                continue
            try:
                kinds = self._apply_goal_alerts(user_id, goal, evaluation)
            except Exception:
                logger.exception(f"Alert update failed for goal {goal.id}")
                continue
            if kinds:
                sent[goal.id] = kinds
        return sent

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    def _apply_goal_alerts(
            self,
            user_id: int,
            goal: InvestmentGoal,
            evaluation: GoalEvaluation,
    ) -> list[NotificationKind]:
        due = self._evaluator.due_alerts(goal, evaluation)
        mark_achieved = evaluation.reached_target and goal.achieved_at is None
        if not due and not mark_achieved:
            return []

        changes = self._store.update_goal_flags(
            goal.id,
            alert_80_sent=True if NotificationKind.GOAL_PROGRESS_80 in due else None,
            alert_100_sent=True if NotificationKind.GOAL_ACHIEVED in due else None,
            achieved_at=self._clock() if mark_achieved else None,
        )

        kinds: list[NotificationKind] = []
        if changes.alert_80_sent:
            kinds.append(NotificationKind.GOAL_PROGRESS_80)
        if changes.alert_100_sent:
            kinds.append(NotificationKind.GOAL_ACHIEVED)
        if changes.achieved_at:
            logger.info(f"Goal {goal.id} achieved")

        for kind in kinds:
            self._notifications.notify(user_id, kind, self._payload(goal, evaluation, kind))
            logger.info(f"Sent {kind.value} for goal {goal.id}")

        return kinds

    @staticmethod
    def _payload(
            goal: InvestmentGoal,
            evaluation: GoalEvaluation,
            kind: NotificationKind,
    ) -> dict[str, Any]:
        return {
            "goal_id": goal.id,
            "goal_name": goal.name,
            "title": NOTIFICATION_TITLES[kind],
            "message": (
                f"'{goal.name}' is at {evaluation.progress_percent:.0f}% "
                f"of its {goal.target_amount} {goal.currency} target"
            ),
            "target_amount": str(goal.target_amount),
            "current_amount": str(evaluation.current_amount),
            "progress_percent": str(evaluation.progress_percent),
            "currency": evaluation.currency,
        }

    def _check_scope(self, scope: GoalScope, asset_id: int | None) -> None:
        if scope == GoalScope.ASSET:
            if asset_id is None:
                raise InvalidGoalScopeError("asset_id is required for ASSET goals")
            if self._assets.get_asset(asset_id) is None:
                raise AssetNotFoundError(asset_id)
        elif asset_id is not None:
            raise InvalidGoalScopeError("asset_id must be empty for PORTFOLIO goals")
