"""
Read/write access to the expense subsystem's data.

The ledger never queries expense tables directly; it goes through these
functions so the expense subsystem stays the owner of its records.
"""
from datetime import datetime, timezone
from typing import List, Optional
import logging
from sqlalchemy.orm import Session
from tripsettle.core.exceptions import NotFoundError
from tripsettle.models.expense import Expense, ExpenseSplit
from tripsettle.models.settlement import Settlement, SettlementStatus
from tripsettle.models.trip import Trip, TripParticipant
from tripsettle.models.user import User

logger = logging.getLogger(__name__)


def get_trip(trip_id: int, db: Session) -> Optional[Trip]:
    return db.query(Trip).filter(Trip.id == trip_id).first()


def list_members(trip_id: int, db: Session) -> List[User]:
    """Return the trip roster in join order."""
    return db.query(User).join(TripParticipant, TripParticipant.user_id == User.id).filter(
        TripParticipant.trip_id == trip_id
    ).order_by(TripParticipant.id).all()


def is_member(trip_id: int, user_id: int, db: Session) -> bool:
    return db.query(TripParticipant).filter(
        TripParticipant.trip_id == trip_id,
        TripParticipant.user_id == user_id
    ).first() is not None


def list_expenses(trip_id: int, db: Session) -> List[Expense]:
    return db.query(Expense).filter(Expense.trip_id == trip_id).order_by(Expense.id).all()


def list_splits(trip_id: int, db: Session) -> List[ExpenseSplit]:
    """Return every split attached to an expense of the trip."""
    return db.query(ExpenseSplit).join(Expense, ExpenseSplit.expense_id == Expense.id).filter(
        Expense.trip_id == trip_id
    ).order_by(ExpenseSplit.id).all()


def list_confirmed_settlements(trip_id: int, db: Session) -> List[Settlement]:
    return db.query(Settlement).filter(
        Settlement.trip_id == trip_id,
        Settlement.status == SettlementStatus.CONFIRMED
    ).order_by(Settlement.id).all()


def mark_split_paid(split_id: int, db: Session) -> ExpenseSplit:
    """
    Mark a split as reimbursed directly to the expense payer.

    Marking an already paid split leaves its original ``paid_at``.
    """
    split = db.query(ExpenseSplit).filter(ExpenseSplit.id == split_id).first()
    if not split:
        raise NotFoundError(f"Expense split {split_id} not found")

    if not split.is_paid:
        split.is_paid = True
        split.paid_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(split)
        logger.info(f"Marked split {split_id} of expense {split.expense_id} as paid")

    return split
