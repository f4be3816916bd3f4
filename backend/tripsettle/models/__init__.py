"""Models package - Import all models for SQLAlchemy registration."""
from tripsettle.models.user import User
from tripsettle.models.trip import Trip, TripParticipant
from tripsettle.models.expense import Expense, ExpenseSplit
from tripsettle.models.settlement import Settlement, SettlementStatus, PaymentMethod

__all__ = [
    "User",
    "Trip",
    "TripParticipant",
    "Expense",
    "ExpenseSplit",
    "Settlement",
    "SettlementStatus",
    "PaymentMethod",
]
