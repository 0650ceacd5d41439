# ledgerfolio/services/__init__.py
"""
Service layer for portfolio valuation and goals.

Services:
- Have NO knowledge of HTTP (no status codes, no request objects)
- Raise domain-specific exceptions
- Receive their collaborators via the constructor
- Are easily testable via dependency injection

Usage:
    from ledgerfolio.services import build_valuation_service, build_goal_service
    from ledgerfolio.services import OperationService
    from ledgerfolio.services import (
        AssetNotFoundError,
        InsufficientQuantityError,
        GoalNotFoundError,
    )

Architecture:
    services/
    ├── __init__.py        # This file - main exports
    ├── exceptions.py      # Domain exceptions
    ├── constants.py       # Business constants
    ├── protocols.py       # Collaborator interfaces (Protocol classes)
    ├── repositories.py    # SQLAlchemy implementations of the protocols
    ├── factory.py         # Service wiring onto a Session
    ├── operations.py      # Operation ledger service
    ├── goals/             # Goal evaluation and alerts
    │   ├── service.py     # GoalService
    │   ├── evaluator.py   # Progress computation
    │   └── types.py       # Goal data types
    └── valuation/         # Valuation engine
        ├── service.py     # Main valuation orchestrator
        ├── types.py       # Valuation data types
        ├── ledger.py      # FIFO lot replay
        ├── pricing.py     # Pence normalization, currency conversion
        └── calculators.py # Holdings and portfolio aggregation
"""

from ledgerfolio.services.exceptions import (
    # Base exceptions
    ServiceError,
    ValidationError,
    NotFoundError,
    # Validation
    InvalidGoalScopeError,
    InsufficientQuantityError,
    # Not found
    AssetNotFoundError,
    GoalNotFoundError,
    OperationNotFoundError,
)
from ledgerfolio.services.factory import build_goal_service, build_valuation_service
from ledgerfolio.services.goals import GoalEvaluation, GoalProgress, GoalService
from ledgerfolio.services.operations import OperationPage, OperationService
from ledgerfolio.services.valuation import (
    HoldingSummary,
    PortfolioSummary,
    ValuationService,
)

__all__ = [
    # Services
    "ValuationService",
    "GoalService",
    "OperationService",
    "build_valuation_service",
    "build_goal_service",
    # Types
    "HoldingSummary",
    "PortfolioSummary",
    "GoalEvaluation",
    "GoalProgress",
    "OperationPage",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "InvalidGoalScopeError",
    "InsufficientQuantityError",
    "AssetNotFoundError",
    "GoalNotFoundError",
    "OperationNotFoundError",
]
