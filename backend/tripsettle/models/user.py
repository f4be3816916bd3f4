"""
User model as seen by the settlement ledger.
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from tripsettle.db.base import BaseModel


class User(BaseModel):
    """User with the payment identifiers used to build settlement links."""
    __tablename__ = "users"

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=True)  # Display name, falls back to username
    venmo_username = Column(String(50), nullable=True)  # With or without leading "@"
    paypal_email = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    trips = relationship("TripParticipant", back_populates="user", cascade="all, delete-orphan")
    expenses_paid = relationship("Expense", foreign_keys="Expense.payer_id", back_populates="payer")
    expense_splits = relationship("ExpenseSplit", back_populates="user", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        return self.name or self.username
