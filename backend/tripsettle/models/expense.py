"""
Expense and split models, owned by the expense subsystem.

The ledger only reads these (and flips ``is_paid`` through the expense
store); the split amounts of an expense are assumed to add up to its amount.
"""
from sqlalchemy import Column, String, Numeric, ForeignKey, Integer, Text, Boolean, DateTime
from sqlalchemy.orm import relationship
from tripsettle.db.base import BaseModel


class Expense(BaseModel):
    """Expense model representing a single spending event."""
    __tablename__ = "expenses"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    payer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    description = Column(Text, nullable=True)

    # Relationships
    trip = relationship("Trip", back_populates="expenses")
    payer = relationship("User", foreign_keys=[payer_id], back_populates="expenses_paid")
    splits = relationship("ExpenseSplit", back_populates="expense", cascade="all, delete-orphan")


class ExpenseSplit(BaseModel):
    """One participant's share of an expense."""
    __tablename__ = "expense_splits"

    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    owed_amount = Column(Numeric(15, 2), nullable=False)
    is_paid = Column(Boolean, default=False, nullable=False)  # Reimbursed directly to the expense payer
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    expense = relationship("Expense", back_populates="splits")
    user = relationship("User", back_populates="expense_splits")
