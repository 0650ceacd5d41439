# ledgerfolio/services/goals/types.py
"""
Internal data types for goal evaluation.

Type Hierarchy:
    GoalEvaluation   - Current amount and progress of one goal
    GoalFlagChanges  - Which flag transitions a conditional update applied
    GoalProgress     - Goal + evaluation + alerts emitted during this pass
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from ledgerfolio.services.constants import GOAL_ACHIEVED_THRESHOLD, GOAL_ALERT_THRESHOLD

if TYPE_CHECKING:
    from ledgerfolio.models import InvestmentGoal, NotificationKind


@dataclass(frozen=True)
class GoalEvaluation:
    """
    Point-in-time evaluation of one goal.

    Attributes:
        goal_id: Goal identifier
        currency: Goal currency (current_amount is expressed in it)
        current_amount: Value counted toward the goal (None if unknown)
        progress_percent: current / target × 100, capped (None if unknown)
    """

    goal_id: int
    currency: str
    current_amount: Decimal | None
    progress_percent: Decimal | None

    @property
    def is_known(self) -> bool:
        return self.progress_percent is not None

    @property
    def reached_alert_threshold(self) -> bool:
        return self.is_known and self.progress_percent >= GOAL_ALERT_THRESHOLD

    @property
    def reached_target(self) -> bool:
        return self.is_known and self.progress_percent >= GOAL_ACHIEVED_THRESHOLD


@dataclass(frozen=True)
class GoalFlagChanges:
    """
    Outcome of a conditional flag update.

    Each attribute is True only if this call flipped it; a flag that was
    already set (by an earlier pass or a concurrent evaluator) reports False.
    """

    alert_80_sent: bool = False
    alert_100_sent: bool = False
    achieved_at: bool = False

    @property
    def any_changed(self) -> bool:
        return self.alert_80_sent or self.alert_100_sent or self.achieved_at


@dataclass
class GoalProgress:
    """A goal with its evaluation and the notifications sent for it in this pass."""

    goal: InvestmentGoal
    evaluation: GoalEvaluation
    alerts_sent: list[NotificationKind] = field(default_factory=list)

    @property
    def goal_id(self) -> int:
        return self.goal.id

    @property
    def current_amount(self) -> Decimal | None:
        return self.evaluation.current_amount

    @property
    def progress_percent(self) -> Decimal | None:
        return self.evaluation.progress_percent
