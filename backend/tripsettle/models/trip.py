"""
Trip and roster models.
"""
from sqlalchemy import Column, String, Boolean, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from tripsettle.db.base import BaseModel


class Trip(BaseModel):
    """Trip model representing a group travel event."""
    __tablename__ = "trips"

    name = Column(String(200), nullable=False)
    base_currency = Column(String(3), nullable=False, default="USD")  # Opaque tag, never converted

    # Relationships
    participants = relationship("TripParticipant", back_populates="trip", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="trip", cascade="all, delete-orphan")
    settlements = relationship("Settlement", back_populates="trip", cascade="all, delete-orphan")


class TripParticipant(BaseModel):
    """Junction table for Trip and User many-to-many relationship."""
    __tablename__ = "trip_participants"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_creator = Column(Boolean, default=False, nullable=False)

    # Relationships
    trip = relationship("Trip", back_populates="participants")
    user = relationship("User", back_populates="trips")

    __table_args__ = (
        UniqueConstraint('trip_id', 'user_id', name='uq_trip_participant'),
    )
