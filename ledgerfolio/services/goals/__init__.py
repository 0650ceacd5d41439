# ledgerfolio/services/goals/__init__.py
"""
Goal Service Package.

Usage:
    from ledgerfolio.services.goals import GoalService

    service = GoalService(store, assets, notifications, valuation_service)
    progress = service.get_goals_progress(user_id=1)

Architecture:
    goals/
    ├── __init__.py     # This file - package exports
    ├── types.py        # GoalEvaluation, GoalFlagChanges, GoalProgress
    ├── evaluator.py    # Current amount and progress (read only)
    └── service.py      # GoalService: CRUD, evaluation, alerts
"""

from ledgerfolio.services.goals.evaluator import GoalEvaluator
from ledgerfolio.services.goals.service import GoalService
from ledgerfolio.services.goals.types import GoalEvaluation, GoalFlagChanges, GoalProgress

__all__ = [
    "GoalService",
    "GoalEvaluator",
    "GoalEvaluation",
    "GoalFlagChanges",
    "GoalProgress",
]
